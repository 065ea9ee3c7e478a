"""
Ride management service - the ride-sharing ledger.

This module handles:
    - Publishing ride offers and requests
    - Picking up requests onto offers
    - Removing passengers (kick / leave) and recreating their requests
    - Cancelling offers and requests
"""

from .ledger import RideLedger, RideResult

from .exceptions import (
    RideSharingError,
    InvalidCapacityError,
    InvalidRideDataError,
    DuplicateActiveRequestError,
    EntryNotActiveError,
    OfferNotActiveError,
    RequestNotActiveError,
    OfferFullError,
    AlreadyOnboardError,
    EntryNotFoundError,
    PassengerNotFoundError,
    UnauthorizedError,
    ConcurrentUpdateError,
)


def build_ledger(party_id) -> RideLedger:
    """Ledger for one party with the notifier and match finder configured in settings."""
    return RideLedger(party_id)


__all__ = [
    "RideLedger",
    "RideResult",
    "build_ledger",
    # Exceptions
    "RideSharingError",
    "InvalidCapacityError",
    "InvalidRideDataError",
    "DuplicateActiveRequestError",
    "EntryNotActiveError",
    "OfferNotActiveError",
    "RequestNotActiveError",
    "OfferFullError",
    "AlreadyOnboardError",
    "EntryNotFoundError",
    "PassengerNotFoundError",
    "UnauthorizedError",
    "ConcurrentUpdateError",
]
