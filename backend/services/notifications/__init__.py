"""
Ride notification service.

This module handles:
    - Tagged notification variants, one per reason
    - The Notifier interface the ledger depends on
    - Best-effort fan-out through NotificationDispatcher
"""

from .dispatcher import NotificationDispatcher, Notifier, get_default_notifier
from .messages import (
    OfferCancellationConfirmed,
    OfferCancelled,
    PassengerAdded,
    PassengerLeft,
    PassengerRemovalConfirmed,
    PassengerRemoved,
    PickupConfirmed,
    RequestCancelledByUser,
    RideNotification,
)

__all__ = [
    "NotificationDispatcher",
    "Notifier",
    "get_default_notifier",
    "RideNotification",
    "PickupConfirmed",
    "PassengerAdded",
    "PassengerRemoved",
    "PassengerRemovalConfirmed",
    "PassengerLeft",
    "OfferCancelled",
    "OfferCancellationConfirmed",
    "RequestCancelledByUser",
]
