"""Address -> coordinates resolution through a content-addressed cache."""

import logging
from typing import Optional

from common.utils import Coordinates
from .cache import address_hash
from .exceptions import GeocodeUnavailableError

logger = logging.getLogger(__name__)


class GeocodeResolver:
    """
    Resolve free-text addresses, consulting ``cache`` before ``source``.

    ``source`` is anything with ``lookup(address) -> Coordinates | None``
    that raises GeocodeUnavailableError on failure. Only successful lookups
    are written back.
    """

    def __init__(self, cache, source):
        self.cache = cache
        self.source = source

    def resolve(self, address: Optional[str]) -> Optional[Coordinates]:
        if not address or not address.strip():
            return None

        key = address_hash(address)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            coords = self.source.lookup(address.strip())
        except GeocodeUnavailableError as e:
            logger.warning("Geocoding unavailable for %r: %s", address, e)
            return None

        if coords is None:
            logger.info("No geocoding result for %r", address)
            return None

        self.cache.put(key, address.strip(), coords)
        return coords
