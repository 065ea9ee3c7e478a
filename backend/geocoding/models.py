from django.db import models


class GeocodeCacheEntry(models.Model):
    """Resolved address, keyed by the SHA-256 of its normalized form. Addresses do not move, so rows never expire."""

    address_hash = models.CharField(max_length=64, primary_key=True)
    address = models.TextField()
    lat = models.FloatField()
    lng = models.FloatField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'geocode_cache'

    def __str__(self):
        return f"{self.address} ({self.lat}, {self.lng})"
