from rest_framework import serializers, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from services.geocoding import build_geocode_resolver


class GeocodeSerializer(serializers.Serializer):
    address = serializers.CharField()


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def geocode_address(request):
    """Resolve a free-text address to coordinates (cached)"""
    serializer = GeocodeSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    coords = build_geocode_resolver().resolve(serializer.validated_data['address'])
    if coords is None:
        return Response(
            {'error': 'Address could not be geocoded', 'code': 'geocode_unavailable'},
            status=status.HTTP_404_NOT_FOUND
        )
    return Response(coords.as_dict())
