"""
Find ride requests near a new offer.

Matching is advisory: it ranks candidates for the driver, who still picks
up a specific request explicitly. Any address that cannot be geocoded
just drops out of the result.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from common.utils import distance_km, is_detour_acceptable
from rides.models import RideEntry

logger = logging.getLogger(__name__)

DEFAULT_MATCH_RADIUS_KM = 15.0
DEFAULT_MAX_DETOUR_RATIO = 1.5


@dataclass
class MatchCandidate:
    request: RideEntry
    distance_km: float
    # None unless the offer is a commercial ride-share and the venue resolved
    ride_share_compatible: Optional[bool] = None


class MatchFinder:
    def __init__(
        self,
        resolver,
        party_directory,
        radius_km: float = DEFAULT_MATCH_RADIUS_KM,
        max_detour_ratio: float = DEFAULT_MAX_DETOUR_RATIO,
    ):
        self.resolver = resolver
        self.party_directory = party_directory
        self.radius_km = radius_km
        self.max_detour_ratio = max_detour_ratio

    def find_nearby(self, offer: RideEntry, active_requests: Iterable[RideEntry]) -> List[MatchCandidate]:
        """
        Rank active requests by distance from the offer's departure point.

        Personal-vehicle offers keep requests within ``radius_km``. Commercial
        ride-share offers keep requests whose pickup is an acceptable detour on
        the way to the party venue, or fall back to the radius when the venue
        cannot be resolved.

        Returns:
            Candidates sorted by distance, then by request creation time
        """
        origin = self.resolver.resolve(offer.departure_location)
        if origin is None:
            logger.info("Offer %s location could not be resolved; skipping match pass", offer.id)
            return []

        venue = None
        if offer.driver_mode == RideEntry.COMMERCIAL_RIDE_SHARE:
            venue_address = self.party_directory.venue_address(offer.party_id)
            if venue_address:
                venue = self.resolver.resolve(venue_address)
            if venue is None:
                logger.info("Venue for party %s unresolved; using radius fallback", offer.party_id)

        candidates: List[MatchCandidate] = []
        for request in active_requests:
            if request.kind != RideEntry.REQUEST or request.status != RideEntry.ACTIVE:
                continue
            if request.owner_id == offer.owner_id:
                continue

            pickup = self.resolver.resolve(request.departure_location)
            if pickup is None:
                logger.debug("Request %s dropped from matching: unresolvable location", request.id)
                continue

            distance = distance_km(origin, pickup)
            compatible = None
            if venue is not None:
                compatible = is_detour_acceptable(origin, pickup, venue, self.max_detour_ratio)
                if not compatible:
                    continue
            elif distance > self.radius_km:
                continue

            candidates.append(MatchCandidate(request=request, distance_km=distance, ride_share_compatible=compatible))

        # Ties go to whoever asked first
        candidates.sort(key=lambda c: (c.distance_km, c.request.created_at, str(c.request.id)))

        logger.info(
            "Found %d candidate request(s) for offer %s (mode=%s)",
            len(candidates), offer.id, offer.driver_mode
        )
        return candidates
