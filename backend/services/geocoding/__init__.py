"""
Geocoding service.

This module handles:
    - Normalizing and hashing addresses into cache keys
    - Cache backends (database table, in-memory)
    - The external Nominatim lookup
    - GeocodeResolver, which ties them together
"""

from django.conf import settings

from .cache import InMemoryGeocodeCache, ModelGeocodeCache, address_hash, normalize_address
from .exceptions import GeocodeUnavailableError
from .nominatim import (
    DEFAULT_NOMINATIM_URL,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    NominatimGeocoder,
)
from .resolver import GeocodeResolver


def build_geocode_resolver() -> GeocodeResolver:
    """Resolver wired to the database cache and Nominatim, configured from settings.RIDESHARE."""
    config = getattr(settings, "RIDESHARE", {})
    source = NominatimGeocoder(
        base_url=config.get("GEOCODER_URL", DEFAULT_NOMINATIM_URL),
        user_agent=config.get("GEOCODER_USER_AGENT", DEFAULT_USER_AGENT),
        timeout=config.get("GEOCODER_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
    )
    return GeocodeResolver(cache=ModelGeocodeCache(), source=source)


__all__ = [
    "GeocodeResolver",
    "GeocodeUnavailableError",
    "InMemoryGeocodeCache",
    "ModelGeocodeCache",
    "NominatimGeocoder",
    "address_hash",
    "build_geocode_resolver",
    "normalize_address",
]
