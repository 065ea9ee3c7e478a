from rest_framework import serializers

from accounts.serializers import UserBasicSerializer
from .models import RideEntry


class RideEntrySerializer(serializers.ModelSerializer):
    """Serializer for ride offers and requests"""
    owner = UserBasicSerializer(read_only=True)
    seats_left = serializers.IntegerField(read_only=True)

    class Meta:
        model = RideEntry
        fields = ['id', 'party', 'kind', 'driver_mode', 'owner', 'created_by',
                  'departure_location', 'capacity', 'passengers', 'seats_left',
                  'status', 'version', 'created_at', 'updated_at',
                  'cancelled_at', 'completed_at']
        read_only_fields = fields


class OfferCreateSerializer(serializers.Serializer):
    """Serializer for publishing a ride offer"""
    mode = serializers.ChoiceField(choices=RideEntry.DRIVER_MODE_CHOICES)
    # Blank falls back to the driver's profile location
    location = serializers.CharField(required=False, allow_blank=True, default='')
    capacity = serializers.IntegerField()


class RequestCreateSerializer(serializers.Serializer):
    """Serializer for publishing a ride request"""
    location = serializers.CharField(required=False, allow_blank=True, default='')


class MatchCandidateSerializer(serializers.Serializer):
    request = RideEntrySerializer(read_only=True)
    distance_km = serializers.FloatField(read_only=True)
    ride_share_compatible = serializers.BooleanField(read_only=True, allow_null=True)
