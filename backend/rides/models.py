import uuid

from django.db import models
from django.conf import settings


class RideEntry(models.Model):
    """
    A ride offer (driver with seats) or ride request (guest needing a pickup)
    posted for one party. Entries are never deleted: cancellation and
    completion are terminal statuses.
    """

    OFFER = 'offer'
    REQUEST = 'request'
    KIND_CHOICES = [
        (OFFER, 'Offer'),
        (REQUEST, 'Request'),
    ]

    PERSONAL_VEHICLE = 'personal_vehicle'
    COMMERCIAL_RIDE_SHARE = 'commercial_ride_share'
    DRIVER_MODE_CHOICES = [
        (PERSONAL_VEHICLE, 'Personal vehicle'),
        (COMMERCIAL_RIDE_SHARE, 'Commercial ride-share'),
    ]

    ACTIVE = 'active'
    CANCELLED = 'cancelled'
    COMPLETED = 'completed'
    STATUS_CHOICES = [
        (ACTIVE, 'Active'),
        (CANCELLED, 'Cancelled'),
        (COMPLETED, 'Completed'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    party = models.ForeignKey(
        'parties.Party',
        on_delete=models.CASCADE,
        related_name='ride_entries'
    )
    kind = models.CharField(max_length=10, choices=KIND_CHOICES)
    driver_mode = models.CharField(
        max_length=30,
        choices=DRIVER_MODE_CHOICES,
        null=True,
        blank=True
    )

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='ride_entries'
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    # Free-text address; coordinates are never stored, always re-geocoded
    departure_location = models.TextField(blank=True, default='')

    # Offers only. Capacity is fixed at creation.
    capacity = models.PositiveIntegerField(default=0)
    # Offers only: [{"passenger_id", "pickup_location", "joined_at", "request_id"}, ...]
    passengers = models.JSONField(default=list, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=ACTIVE)
    # Bumped on every write; guards compare-and-swap updates
    version = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'ride_entries'
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['party', 'status'], name='ride_party_status_idx'),
            models.Index(fields=['party', 'kind', 'status', 'owner'], name='ride_party_owner_idx'),
        ]

    def __str__(self):
        return f"{self.get_kind_display()} {self.id} - {self.owner} - {self.status}"

    @property
    def is_offer(self) -> bool:
        return self.kind == self.OFFER

    @property
    def is_active(self) -> bool:
        return self.status == self.ACTIVE

    @property
    def seats_left(self) -> int:
        if not self.is_offer:
            return 0
        return max(0, self.capacity - len(self.passengers or []))

    def passenger_ids(self):
        return [p['passenger_id'] for p in self.passengers or []]

    def find_passenger(self, user_id):
        for passenger in self.passengers or []:
            if passenger['passenger_id'] == user_id:
                return passenger
        return None
