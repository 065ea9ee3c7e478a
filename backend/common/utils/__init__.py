"""Common utility functions."""

from .geo import Coordinates, distance_km, is_detour_acceptable

__all__ = [
    "Coordinates",
    "distance_km",
    "is_detour_acceptable",
]
