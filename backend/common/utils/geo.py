"""
Geographic utility functions.

This module provides the core geospatial calculations used by ride matching.
Everything here is pure: no I/O, no database access.
"""

from dataclasses import dataclass
from math import radians, cos, sin, asin, sqrt

EARTH_RADIUS_KM = 6371.0
DEFAULT_MAX_DETOUR_RATIO = 1.5


@dataclass(frozen=True)
class Coordinates:
    """A WGS84 point."""
    lat: float
    lng: float

    def as_dict(self):
        return {"lat": self.lat, "lng": self.lng}


def distance_km(a: Coordinates, b: Coordinates) -> float:
    """
    Great-circle distance between two points using the Haversine formula.

    Args:
        a: First point
        b: Second point

    Returns:
        Distance in kilometres
    """
    lat1, lon1, lat2, lon2 = map(radians, [float(a.lat), float(a.lng), float(b.lat), float(b.lng)])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * asin(min(1.0, sqrt(h)))
    return c * EARTH_RADIUS_KM


def is_detour_acceptable(
    driver_start: Coordinates,
    passenger_pickup: Coordinates,
    destination: Coordinates,
    max_ratio: float = DEFAULT_MAX_DETOUR_RATIO,
) -> bool:
    """
    Check whether collecting a passenger on the way keeps the trip short enough.

    The route driver_start -> passenger_pickup -> destination may be at most
    ``max_ratio`` times the direct driver_start -> destination distance.
    """
    direct = distance_km(driver_start, destination)
    via_pickup = distance_km(driver_start, passenger_pickup) + distance_km(passenger_pickup, destination)
    return via_pickup <= max_ratio * direct
