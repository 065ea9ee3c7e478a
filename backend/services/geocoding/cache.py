"""
Geocode cache backends.

Keys are the SHA-256 hex digest of the normalized address, so the same
address typed with different casing or surrounding whitespace hits the
same row. Entries never expire.
"""

import hashlib
import logging
from typing import Dict, Optional, Tuple

from django.db import DatabaseError, transaction

from common.utils import Coordinates

logger = logging.getLogger(__name__)


def normalize_address(address: str) -> str:
    return address.strip().casefold()


def address_hash(address: str) -> str:
    return hashlib.sha256(normalize_address(address).encode("utf-8")).hexdigest()


class InMemoryGeocodeCache:
    """Dict-backed cache for tests and single-process use."""

    def __init__(self, initial: Optional[Dict[str, Coordinates]] = None):
        self._entries: Dict[str, Tuple[str, Coordinates]] = {}
        for address, coords in (initial or {}).items():
            self.put(address_hash(address), address, coords)

    def __len__(self):
        return len(self._entries)

    def get(self, key: str) -> Optional[Coordinates]:
        entry = self._entries.get(key)
        return entry[1] if entry else None

    def put(self, key: str, address: str, coords: Coordinates) -> None:
        self._entries[key] = (address, coords)


class ModelGeocodeCache:
    """Cache backed by the geocode_cache table."""

    def get(self, key: str) -> Optional[Coordinates]:
        from geocoding.models import GeocodeCacheEntry

        try:
            row = (
                GeocodeCacheEntry.objects.filter(address_hash=key)
                .values_list("lat", "lng")
                .first()
            )
        except DatabaseError:
            logger.exception("Failed to read geocode cache entry %s", key)
            return None
        if row is None:
            return None
        return Coordinates(lat=row[0], lng=row[1])

    def put(self, key: str, address: str, coords: Coordinates) -> None:
        from geocoding.models import GeocodeCacheEntry

        try:
            with transaction.atomic():
                GeocodeCacheEntry.objects.update_or_create(
                    address_hash=key,
                    defaults={"address": address, "lat": coords.lat, "lng": coords.lng},
                )
        except DatabaseError:
            logger.exception("Failed to write geocode cache entry for %r", address)
