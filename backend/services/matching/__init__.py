"""
Ride matching service.

This module handles:
    - Ranking active ride requests around a new offer
    - Detour checks for commercial ride-share offers
"""

from django.conf import settings

from .match_finder import (
    DEFAULT_MATCH_RADIUS_KM,
    DEFAULT_MAX_DETOUR_RATIO,
    MatchCandidate,
    MatchFinder,
)


def build_match_finder() -> MatchFinder:
    """MatchFinder wired to the default geocode resolver and the parties table."""
    from parties.directory import ModelPartyDirectory
    from services.geocoding import build_geocode_resolver

    config = getattr(settings, "RIDESHARE", {})
    return MatchFinder(
        resolver=build_geocode_resolver(),
        party_directory=ModelPartyDirectory(),
        radius_km=config.get("MATCH_RADIUS_KM", DEFAULT_MATCH_RADIUS_KM),
        max_detour_ratio=config.get("MAX_DETOUR_RATIO", DEFAULT_MAX_DETOUR_RATIO),
    )


__all__ = [
    "MatchCandidate",
    "MatchFinder",
    "build_match_finder",
]
