"""
Nominatim (OpenStreetMap) geocoding source.

Nominatim's usage policy requires an identifying User-Agent and at most
one request per second, which the address cache keeps us well under.
"""

import logging
from typing import Optional

import requests

from common.utils import Coordinates
from .exceptions import GeocodeUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"
DEFAULT_USER_AGENT = "PartySync/1.0 contact@partysync.app"
DEFAULT_TIMEOUT_SECONDS = 5.0


class NominatimGeocoder:
    def __init__(
        self,
        base_url: str = DEFAULT_NOMINATIM_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url
        self.user_agent = user_agent
        self.timeout = timeout
        self.session = session or requests.Session()

    def lookup(self, address: str) -> Optional[Coordinates]:
        """
        Query Nominatim for the first match of ``address``.

        Returns None when the address is unknown; raises GeocodeUnavailableError
        when the service cannot be reached or answers garbage.
        """
        try:
            response = self.session.get(
                self.base_url,
                params={"q": address, "format": "json", "limit": 1},
                headers={"User-Agent": self.user_agent, "Accept": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            results = response.json()
        except (requests.RequestException, ValueError) as e:
            raise GeocodeUnavailableError(f"Geocoder request failed: {e}") from e

        if not results:
            return None

        try:
            return Coordinates(lat=float(results[0]["lat"]), lng=float(results[0]["lon"]))
        except (KeyError, TypeError, ValueError) as e:
            raise GeocodeUnavailableError(f"Unexpected geocoder payload: {e}") from e
