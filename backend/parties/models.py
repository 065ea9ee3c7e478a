import uuid

from django.db import models
from django.conf import settings


class Party(models.Model):
    """An event that guests share rides to. Only the venue matters here."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    # Venue address, used as the shared destination for ride-share detour checks
    address = models.TextField(blank=True, default='')
    organizer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='organized_parties'
    )
    starts_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'parties'
        ordering = ['-created_at']

    def __str__(self):
        return self.name
