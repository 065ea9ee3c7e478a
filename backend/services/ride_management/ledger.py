"""
Ride ledger: the authoritative store of ride offers and requests for a party.

Every mutation runs in its own transaction, locks the row it reads with
SELECT ... FOR UPDATE, and writes back through a version compare-and-swap.
On a version mismatch the whole operation is retried a bounded number of
times. Notifications go out only after the transaction has committed.

Invariants kept here:
    - len(offer.passengers) <= offer.capacity
    - a request is completed exactly when it was added to an offer
    - every passenger removed from an offer ends up with one active request
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Set, Tuple

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone

from rides.models import RideEntry
from services.notifications import (
    NotificationDispatcher,
    OfferCancellationConfirmed,
    OfferCancelled,
    PassengerAdded,
    PassengerLeft,
    PassengerRemovalConfirmed,
    PassengerRemoved,
    PickupConfirmed,
    RequestCancelledByUser,
    RideNotification,
    get_default_notifier,
)
from .exceptions import (
    AlreadyOnboardError,
    ConcurrentUpdateError,
    DuplicateActiveRequestError,
    EntryNotFoundError,
    InvalidCapacityError,
    InvalidRideDataError,
    OfferFullError,
    OfferNotActiveError,
    PassengerNotFoundError,
    RequestNotActiveError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)

DEFAULT_CAS_MAX_RETRIES = 3


@dataclass
class RideResult:
    """Result object for ledger operations."""
    entry: RideEntry
    message: str = ""
    matches: list = field(default_factory=list)
    created_requests: List[RideEntry] = field(default_factory=list)
    notifications: List[RideNotification] = field(default_factory=list)


class RideLedger:
    """
    Offers and requests of one party, and every operation that changes them.

    Args:
        party_id: Party all reads and writes are scoped to
        notifier: Notifier used for post-commit notifications (defaults to settings)
        match_finder: MatchFinder run after an offer is created (defaults to settings)
        max_retries: Attempts per operation before a version conflict is surfaced
    """

    def __init__(self, party_id, notifier=None, match_finder=None, max_retries: Optional[int] = None):
        self.party_id = party_id
        self.dispatcher = NotificationDispatcher(notifier or get_default_notifier())
        if match_finder is None:
            from services.matching import build_match_finder
            match_finder = build_match_finder()
        self.match_finder = match_finder
        config = getattr(settings, "RIDESHARE", {})
        if max_retries is None:
            max_retries = config.get("CAS_MAX_RETRIES", DEFAULT_CAS_MAX_RETRIES)
        self.max_retries = max_retries

    # ===================== Queries =====================

    def _entries(self):
        return RideEntry.objects.filter(party_id=self.party_id)

    def active_offers(self) -> List[RideEntry]:
        return list(
            self._entries()
            .filter(kind=RideEntry.OFFER, status=RideEntry.ACTIVE)
            .select_related("owner")
            .order_by("created_at", "id")
        )

    def active_requests(self) -> List[RideEntry]:
        return list(
            self._entries()
            .filter(kind=RideEntry.REQUEST, status=RideEntry.ACTIVE)
            .select_related("owner")
            .order_by("created_at", "id")
        )

    def list_active(self):
        """Active offers and requests, oldest first."""
        return {"offers": self.active_offers(), "requests": self.active_requests()}

    def get_entry(self, entry_id) -> RideEntry:
        try:
            return self._entries().get(pk=entry_id)
        except RideEntry.DoesNotExist:
            raise EntryNotFoundError(f"Ride entry {entry_id} not found")

    def active_request_for(self, user_id) -> Optional[RideEntry]:
        return (
            self._entries()
            .filter(kind=RideEntry.REQUEST, status=RideEntry.ACTIVE, owner_id=user_id)
            .order_by("created_at")
            .first()
        )

    def find_matches(self, offer_id):
        """Re-run matching for an existing active offer."""
        offer = self.get_entry(offer_id)
        if offer.kind != RideEntry.OFFER:
            raise EntryNotFoundError(f"Offer {offer_id} not found")
        if not offer.is_active:
            raise OfferNotActiveError(f"Offer is already {offer.status}")
        return self.match_finder.find_nearby(offer, self.active_requests())

    # ===================== Creation =====================

    def create_offer(self, owner_id, mode, location, capacity, find_matches: bool = True) -> RideResult:
        """
        Publish a ride offer and rank nearby requests for it.

        Raises:
            InvalidCapacityError: capacity below one seat
            InvalidRideDataError: unknown mode or no departure location
        """
        if mode not in dict(RideEntry.DRIVER_MODE_CHOICES):
            raise InvalidRideDataError(f"Unknown driver mode: {mode}")
        try:
            capacity = int(capacity)
        except (TypeError, ValueError):
            raise InvalidCapacityError("Capacity must be a whole number of seats")
        if capacity < 1:
            raise InvalidCapacityError("An offer needs at least one seat")

        location = self._departure_location(owner_id, location)

        offer = RideEntry.objects.create(
            party_id=self.party_id,
            kind=RideEntry.OFFER,
            driver_mode=mode,
            owner_id=owner_id,
            created_by_id=owner_id,
            departure_location=location,
            capacity=capacity,
            passengers=[],
            status=RideEntry.ACTIVE,
        )
        logger.info("Offer %s created by user %s on party %s (%d seats)", offer.id, owner_id, self.party_id, capacity)

        matches = []
        if find_matches:
            matches = self.match_finder.find_nearby(offer, self.active_requests())

        return RideResult(
            entry=offer,
            message="Ride offer published",
            matches=matches,
        )

    def create_request(self, owner_id, location=None) -> RideResult:
        """
        Publish a ride request.

        Raises:
            DuplicateActiveRequestError: the user already has an active request here
            InvalidRideDataError: no departure location given or saved on the profile
        """
        location = self._departure_location(owner_id, location)

        with transaction.atomic():
            existing = self.active_request_for(owner_id)
            if existing is not None:
                raise DuplicateActiveRequestError(
                    "You already have an active ride request for this party",
                    existing=existing,
                )
            request = self._insert_request(owner_id, location, created_by_id=owner_id)

        logger.info("Request %s created by user %s on party %s", request.id, owner_id, self.party_id)
        return RideResult(entry=request, message="Ride request published")

    # ===================== Offer mutations =====================

    def pickup(self, offer_id, request_id, acting_owner_id=None) -> RideResult:
        """
        Move a request onto an offer: add the passenger and complete the request
        in one transaction.

        Raises:
            OfferNotActiveError, OfferFullError: nothing written
            AlreadyOnboardError: the request owner drives or already rides in the offer
            RequestNotActiveError: the passenger append is rolled back
        """
        def operation():
            offer = self._lock(offer_id, RideEntry.OFFER)
            if acting_owner_id is not None and offer.owner_id != acting_owner_id:
                raise UnauthorizedError("Only the driver can pick up passengers")
            if not offer.is_active:
                raise OfferNotActiveError(f"Offer is already {offer.status}")
            if len(offer.passengers) >= offer.capacity:
                raise OfferFullError("This offer is full")

            request = self._get(request_id, RideEntry.REQUEST)
            if request.owner_id == offer.owner_id:
                raise AlreadyOnboardError("The driver cannot pick up their own ride request")
            if request.owner_id in offer.passenger_ids():
                raise AlreadyOnboardError("This guest is already a passenger of the offer")

            now = timezone.now()
            passenger = {
                "passenger_id": request.owner_id,
                "pickup_location": request.departure_location,
                "joined_at": now.isoformat(),
                "request_id": str(request.id),
            }
            self._write(offer, passengers=offer.passengers + [passenger])

            # Conditional update: loses cleanly against a concurrent cancel_request
            completed = self._entries().filter(
                pk=request.pk, kind=RideEntry.REQUEST, status=RideEntry.ACTIVE
            ).update(
                status=RideEntry.COMPLETED,
                completed_at=now,
                updated_at=now,
                version=F("version") + 1,
            )
            if not completed:
                raise RequestNotActiveError("This ride request was already picked up or cancelled")

            return RideResult(
                entry=offer,
                message="Passenger added",
                notifications=[
                    PickupConfirmed(
                        user_id=request.owner_id,
                        party_id=str(self.party_id),
                        offer_id=str(offer.id),
                        request_id=str(request.id),
                        driver_id=offer.owner_id,
                        pickup_location=request.departure_location,
                    ),
                    PassengerAdded(
                        user_id=offer.owner_id,
                        party_id=str(self.party_id),
                        offer_id=str(offer.id),
                        passenger_id=request.owner_id,
                        pickup_location=request.departure_location,
                        seats_left=offer.seats_left,
                    ),
                ],
            )

        result = self._run(operation)
        logger.info("Request %s picked up onto offer %s", request_id, offer_id)
        return result

    def kick_passenger(self, offer_id, passenger_id, acting_owner_id) -> RideResult:
        """Driver removes a passenger; the passenger gets their request back."""
        def operation():
            offer = self._lock(offer_id, RideEntry.OFFER)
            if offer.owner_id != acting_owner_id:
                raise UnauthorizedError("Only the driver can remove passengers")
            if not offer.is_active:
                raise OfferNotActiveError(f"Offer is already {offer.status}")

            removed = self._remove_passenger(offer, passenger_id)
            created, _ = self._ensure_active_requests([removed], created_by_id=acting_owner_id)

            return RideResult(
                entry=offer,
                message="Passenger removed",
                created_requests=created,
                notifications=[
                    PassengerRemoved(
                        user_id=passenger_id,
                        party_id=str(self.party_id),
                        offer_id=str(offer.id),
                        driver_id=offer.owner_id,
                        request_recreated=bool(created),
                    ),
                    PassengerRemovalConfirmed(
                        user_id=offer.owner_id,
                        party_id=str(self.party_id),
                        offer_id=str(offer.id),
                        passenger_id=passenger_id,
                    ),
                ],
            )

        result = self._run(operation)
        logger.info("Passenger %s removed from offer %s by driver", passenger_id, offer_id)
        return result

    def leave_ride(self, offer_id, passenger_id) -> RideResult:
        """Passenger leaves an offer on their own; same request recreation as a kick."""
        def operation():
            offer = self._lock(offer_id, RideEntry.OFFER)
            if not offer.is_active:
                raise OfferNotActiveError(f"Offer is already {offer.status}")

            removed = self._remove_passenger(offer, passenger_id)
            created, _ = self._ensure_active_requests([removed], created_by_id=passenger_id)

            return RideResult(
                entry=offer,
                message="You left the ride",
                created_requests=created,
                notifications=[
                    PassengerLeft(
                        user_id=offer.owner_id,
                        party_id=str(self.party_id),
                        offer_id=str(offer.id),
                        passenger_id=passenger_id,
                        seats_left=offer.seats_left,
                    ),
                ],
            )

        result = self._run(operation)
        logger.info("Passenger %s left offer %s", passenger_id, offer_id)
        return result

    def cancel_offer(self, offer_id, acting_owner_id) -> RideResult:
        """
        Cancel an offer. Every passenger without an active request gets one
        at their pickup location; a failure for one passenger is logged and
        does not undo the cancellation.
        """
        def operation():
            offer = self._lock(offer_id, RideEntry.OFFER)
            if offer.owner_id != acting_owner_id:
                raise UnauthorizedError("Only the driver can cancel this offer")
            if not offer.is_active:
                raise OfferNotActiveError(f"Offer is already {offer.status}")

            now = timezone.now()
            self._write(offer, status=RideEntry.CANCELLED, cancelled_at=now)

            passengers = list(offer.passengers)
            created, failed_for = self._ensure_active_requests(passengers, created_by_id=acting_owner_id, best_effort=True)
            recreated_for = {request.owner_id for request in created}

            def outcome(user_id):
                if user_id in recreated_for:
                    return OfferCancelled.RECREATED
                if user_id in failed_for:
                    return OfferCancelled.FAILED
                return OfferCancelled.EXISTING

            notifications: List[RideNotification] = [
                OfferCancelled(
                    user_id=p["passenger_id"],
                    party_id=str(self.party_id),
                    offer_id=str(offer.id),
                    driver_id=offer.owner_id,
                    request_outcome=outcome(p["passenger_id"]),
                )
                for p in passengers
            ]
            notifications.append(
                OfferCancellationConfirmed(
                    user_id=offer.owner_id,
                    party_id=str(self.party_id),
                    offer_id=str(offer.id),
                    passenger_count=len(passengers),
                )
            )
            return RideResult(
                entry=offer,
                message="Ride offer cancelled",
                created_requests=created,
                notifications=notifications,
            )

        result = self._run(operation)
        logger.info(
            "Offer %s cancelled; %d request(s) recreated",
            offer_id, len(result.created_requests)
        )
        return result

    # ===================== Request mutations =====================

    def cancel_request(self, request_id, acting_owner_id) -> RideResult:
        """
        Cancel an active request.

        Raises:
            RequestNotActiveError: it was picked up or cancelled first
        """
        def operation():
            request = self._lock(request_id, RideEntry.REQUEST)
            if request.owner_id != acting_owner_id:
                raise UnauthorizedError("Only the requester can cancel this request")

            now = timezone.now()
            cancelled = self._entries().filter(pk=request.pk, status=RideEntry.ACTIVE).update(
                status=RideEntry.CANCELLED,
                cancelled_at=now,
                updated_at=now,
                version=F("version") + 1,
            )
            if not cancelled:
                raise RequestNotActiveError(f"Cannot cancel - request is already {request.status}")
            request.refresh_from_db()

            return RideResult(
                entry=request,
                message="Ride request cancelled",
                notifications=[
                    RequestCancelledByUser(
                        user_id=request.owner_id,
                        party_id=str(self.party_id),
                        request_id=str(request.id),
                    ),
                ],
            )

        result = self._run(operation)
        logger.info("Request %s cancelled by its owner", request_id)
        return result

    # ===================== Internals =====================

    def _run(self, operation: Callable[[], RideResult]) -> RideResult:
        """Run ``operation`` in a transaction, retrying on version conflicts, then notify."""
        attempt = 0
        while True:
            attempt += 1
            try:
                with transaction.atomic():
                    result = operation()
            except ConcurrentUpdateError:
                if attempt >= self.max_retries:
                    logger.warning("Giving up after %d version conflicts on party %s", attempt, self.party_id)
                    raise
                logger.info("Version conflict on party %s, retrying (%d/%d)", self.party_id, attempt, self.max_retries)
                continue
            break

        self.dispatcher.dispatch(result.notifications)
        return result

    def _get(self, entry_id, kind) -> RideEntry:
        try:
            return self._entries().get(pk=entry_id, kind=kind)
        except RideEntry.DoesNotExist:
            raise EntryNotFoundError(f"{kind.title()} {entry_id} not found")

    def _lock(self, entry_id, kind) -> RideEntry:
        try:
            return self._entries().select_for_update().get(pk=entry_id, kind=kind)
        except RideEntry.DoesNotExist:
            raise EntryNotFoundError(f"{kind.title()} {entry_id} not found")

    def _write(self, entry: RideEntry, **changes) -> RideEntry:
        """Compare-and-swap write: only applies if nobody bumped the version since we read it."""
        changes.setdefault("updated_at", timezone.now())
        updated = RideEntry.objects.filter(pk=entry.pk, version=entry.version).update(
            version=F("version") + 1, **changes
        )
        if not updated:
            raise ConcurrentUpdateError(f"Ride entry {entry.pk} was modified concurrently")
        for name, value in changes.items():
            setattr(entry, name, value)
        entry.version += 1
        return entry

    def _remove_passenger(self, offer: RideEntry, passenger_id) -> dict:
        removed = offer.find_passenger(passenger_id)
        if removed is None:
            raise PassengerNotFoundError("This user is not a passenger of the offer")
        remaining = [p for p in offer.passengers if p["passenger_id"] != passenger_id]
        self._write(offer, passengers=remaining)
        return removed

    def _ensure_active_requests(self, passengers: Iterable[dict], created_by_id, best_effort: bool = False) -> Tuple[List[RideEntry], Set[int]]:
        """
        Give each passenger an active request at their pickup location unless
        they already have one. Existing requests are fetched in one query.

        Returns:
            (created requests, ids of passengers whose insert failed; only
            non-empty when ``best_effort``)
        """
        passengers = list(passengers)
        if not passengers:
            return [], set()

        user_ids = [p["passenger_id"] for p in passengers]
        already_requesting = set(
            self._entries()
            .filter(kind=RideEntry.REQUEST, status=RideEntry.ACTIVE, owner_id__in=user_ids)
            .values_list("owner_id", flat=True)
        )

        created: List[RideEntry] = []
        failed: Set[int] = set()
        for passenger in passengers:
            user_id = passenger["passenger_id"]
            if user_id in already_requesting:
                continue
            location = passenger.get("pickup_location", "")
            if best_effort:
                try:
                    with transaction.atomic():
                        request = self._insert_request(user_id, location, created_by_id)
                except DatabaseError:
                    logger.exception(
                        "Failed to recreate ride request for passenger %s on party %s",
                        user_id, self.party_id
                    )
                    failed.add(user_id)
                    continue
            else:
                request = self._insert_request(user_id, location, created_by_id)
            already_requesting.add(user_id)
            created.append(request)
        return created, failed

    def _insert_request(self, owner_id, location, created_by_id) -> RideEntry:
        return RideEntry.objects.create(
            party_id=self.party_id,
            kind=RideEntry.REQUEST,
            owner_id=owner_id,
            created_by_id=created_by_id,
            departure_location=location or "",
            status=RideEntry.ACTIVE,
        )

    def _departure_location(self, user_id, location) -> str:
        """Explicit location, else the user's saved profile location."""
        if location and location.strip():
            return location.strip()
        User = get_user_model()
        saved = User.objects.filter(pk=user_id).values_list("profile_location", flat=True).first()
        if saved and saved.strip():
            return saved.strip()
        raise InvalidRideDataError("A departure location is required")
