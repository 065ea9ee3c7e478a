import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from parties.models import Party
from .serializers import (
    RideEntrySerializer,
    OfferCreateSerializer,
    RequestCreateSerializer,
    MatchCandidateSerializer,
)

# Import from services layer
from services.ride_management import (
    build_ledger,
    RideSharingError,
    InvalidCapacityError,
    InvalidRideDataError,
    DuplicateActiveRequestError,
    EntryNotActiveError,
    OfferFullError,
    AlreadyOnboardError,
    EntryNotFoundError,
    UnauthorizedError,
    ConcurrentUpdateError,
)

logger = logging.getLogger(__name__)

# Most specific first: PassengerNotFoundError is an EntryNotFoundError, etc.
ERROR_STATUS = [
    (InvalidCapacityError, status.HTTP_400_BAD_REQUEST),
    (InvalidRideDataError, status.HTTP_400_BAD_REQUEST),
    (UnauthorizedError, status.HTTP_403_FORBIDDEN),
    (EntryNotFoundError, status.HTTP_404_NOT_FOUND),
    (EntryNotActiveError, status.HTTP_409_CONFLICT),
    (OfferFullError, status.HTTP_409_CONFLICT),
    (AlreadyOnboardError, status.HTTP_409_CONFLICT),
    (ConcurrentUpdateError, status.HTTP_409_CONFLICT),
]


def error_response(exc: RideSharingError) -> Response:
    """Translate a ledger error into a DRF response."""
    for error_class, status_code in ERROR_STATUS:
        if isinstance(exc, error_class):
            break
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return Response({'error': str(exc), 'code': exc.error_code}, status=status_code)


def _ledger_for(party_id):
    party = get_object_or_404(Party, pk=party_id)
    return build_ledger(party.pk)


def _entry_payload(result):
    return {
        **RideEntrySerializer(result.entry).data,
        'message': result.message,
    }


# ==================== Board ====================

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def list_rides(request, party_id):
    """Active offers and requests of the party (the ride-sharing tab)"""
    ledger = _ledger_for(party_id)
    board = ledger.list_active()
    return Response({
        'offers': RideEntrySerializer(board['offers'], many=True).data,
        'requests': RideEntrySerializer(board['requests'], many=True).data,
    })


# ==================== Driver APIs ====================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_offer(request, party_id):
    """Publish a ride offer and return nearby requests"""
    ledger = _ledger_for(party_id)

    serializer = OfferCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        result = ledger.create_offer(
            owner_id=request.user.id,
            mode=data['mode'],
            location=data.get('location'),
            capacity=data['capacity'],
        )
    except RideSharingError as exc:
        return error_response(exc)

    return Response({
        'offer': RideEntrySerializer(result.entry).data,
        'matches': MatchCandidateSerializer(result.matches, many=True).data,
        'message': result.message,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def offer_matches(request, party_id, offer_id):
    """Re-rank nearby requests for an existing offer"""
    ledger = _ledger_for(party_id)
    try:
        matches = ledger.find_matches(offer_id)
    except RideSharingError as exc:
        return error_response(exc)
    return Response({
        'offer_id': str(offer_id),
        'matches': MatchCandidateSerializer(matches, many=True).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def pickup_request(request, party_id, offer_id, request_id):
    """Driver picks a request up onto their offer"""
    ledger = _ledger_for(party_id)
    try:
        result = ledger.pickup(offer_id, request_id, acting_owner_id=request.user.id)
    except RideSharingError as exc:
        return error_response(exc)
    return Response(_entry_payload(result))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def kick_passenger(request, party_id, offer_id, passenger_id):
    """Driver removes a passenger from their offer"""
    ledger = _ledger_for(party_id)
    try:
        result = ledger.kick_passenger(offer_id, passenger_id, acting_owner_id=request.user.id)
    except RideSharingError as exc:
        return error_response(exc)
    return Response({
        **_entry_payload(result),
        'request_recreated': bool(result.created_requests),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_offer(request, party_id, offer_id):
    """Driver cancels their offer; passengers get their requests back"""
    ledger = _ledger_for(party_id)
    try:
        result = ledger.cancel_offer(offer_id, acting_owner_id=request.user.id)
    except RideSharingError as exc:
        return error_response(exc)
    return Response({
        **_entry_payload(result),
        'created_requests': RideEntrySerializer(result.created_requests, many=True).data,
    })


# ==================== Passenger APIs ====================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def leave_ride(request, party_id, offer_id):
    """Passenger leaves an offer they were picked up onto"""
    ledger = _ledger_for(party_id)
    try:
        result = ledger.leave_ride(offer_id, passenger_id=request.user.id)
    except RideSharingError as exc:
        return error_response(exc)
    return Response({
        **_entry_payload(result),
        'request_recreated': bool(result.created_requests),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_request(request, party_id):
    """Publish a ride request (guest needs a lift)"""
    ledger = _ledger_for(party_id)

    serializer = RequestCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = ledger.create_request(
            owner_id=request.user.id,
            location=serializer.validated_data.get('location'),
        )
    except DuplicateActiveRequestError as exc:
        # Double submit: hand back the request that already exists
        existing = exc.existing or ledger.active_request_for(request.user.id)
        return Response({
            **RideEntrySerializer(existing).data,
            'message': str(exc),
            'already_exists': True,
        }, status=status.HTTP_200_OK)
    except RideSharingError as exc:
        return error_response(exc)

    return Response(_entry_payload(result), status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_request(request, party_id, request_id):
    """Guest cancels their own ride request"""
    ledger = _ledger_for(party_id)
    try:
        result = ledger.cancel_request(request_id, acting_owner_id=request.user.id)
    except RideSharingError as exc:
        return error_response(exc)
    return Response(_entry_payload(result))
