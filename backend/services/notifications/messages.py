"""
Ride notification variants.

One frozen dataclass per reason a user is told about a ride change. Each
carries only the fields that reason needs and knows how to render its
title, body, metadata and deep link. ``action`` is the tag clients switch on.
"""

from dataclasses import asdict, dataclass
from typing import Any, ClassVar, Dict


@dataclass(frozen=True)
class RideNotification:
    user_id: int
    party_id: str

    action: ClassVar[str] = ""

    def title(self) -> str:
        raise NotImplementedError

    def body(self) -> str:
        raise NotImplementedError

    def metadata(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("user_id")
        data["partyId"] = data.pop("party_id")
        data["action"] = self.action
        return data

    def deep_link(self) -> str:
        return f"/carsharing?partyId={self.party_id}"


@dataclass(frozen=True)
class PickupConfirmed(RideNotification):
    """Sent to the request owner once a driver picks them up."""
    offer_id: str
    request_id: str
    driver_id: int
    pickup_location: str

    action: ClassVar[str] = "ride_pickup"

    def title(self) -> str:
        return "You have a ride!"

    def body(self) -> str:
        return f"A driver picked up your ride request. Pickup at {self.pickup_location}."


@dataclass(frozen=True)
class PassengerAdded(RideNotification):
    """Sent to the driver when a passenger is added to their offer."""
    offer_id: str
    passenger_id: int
    pickup_location: str
    seats_left: int

    action: ClassVar[str] = "ride_passenger_added"

    def title(self) -> str:
        return "Passenger added"

    def body(self) -> str:
        return f"New passenger to collect at {self.pickup_location}. {self.seats_left} seat(s) left."


@dataclass(frozen=True)
class PassengerRemoved(RideNotification):
    """Sent to a passenger the driver removed from an offer."""
    offer_id: str
    driver_id: int
    request_recreated: bool

    action: ClassVar[str] = "ride_kicked"

    def title(self) -> str:
        return "Removed from a ride"

    def body(self) -> str:
        if self.request_recreated:
            return "The driver removed you from their car. Your ride request is open again."
        return "The driver removed you from their car. Your existing ride request is still open."


@dataclass(frozen=True)
class PassengerRemovalConfirmed(RideNotification):
    """Sent to the driver after they remove a passenger."""
    offer_id: str
    passenger_id: int

    action: ClassVar[str] = "ride_kick_confirmed"

    def title(self) -> str:
        return "Passenger removed"

    def body(self) -> str:
        return "The passenger was removed from your car and their request is back on the board."


@dataclass(frozen=True)
class PassengerLeft(RideNotification):
    """Sent to the driver when a passenger leaves on their own."""
    offer_id: str
    passenger_id: int
    seats_left: int

    action: ClassVar[str] = "ride_passenger_left"

    def title(self) -> str:
        return "A passenger left your car"

    def body(self) -> str:
        return f"A passenger left your ride. {self.seats_left} seat(s) now free."


@dataclass(frozen=True)
class OfferCancelled(RideNotification):
    """Sent to every passenger of an offer the driver cancelled."""
    offer_id: str
    driver_id: int
    # What happened to the passenger's ride request: one of the constants below
    request_outcome: str

    action: ClassVar[str] = "offer_cancelled"

    RECREATED: ClassVar[str] = "recreated"
    EXISTING: ClassVar[str] = "existing"
    FAILED: ClassVar[str] = "failed"

    def title(self) -> str:
        return "Ride cancelled"

    def body(self) -> str:
        if self.request_outcome == self.RECREATED:
            return "The driver cancelled their ride. We posted a new ride request for you."
        if self.request_outcome == self.FAILED:
            return "The driver cancelled their ride. We could not repost your ride request, please post a new one."
        return "The driver cancelled their ride. Your existing ride request is still open."


@dataclass(frozen=True)
class OfferCancellationConfirmed(RideNotification):
    """Sent to the driver after their offer is cancelled."""
    offer_id: str
    passenger_count: int

    action: ClassVar[str] = "offer_cancel_confirmed"

    def title(self) -> str:
        return "Ride offer cancelled"

    def body(self) -> str:
        if self.passenger_count:
            return f"Your offer is cancelled. {self.passenger_count} passenger(s) were notified."
        return "Your offer is cancelled."


@dataclass(frozen=True)
class RequestCancelledByUser(RideNotification):
    """Confirmation to the owner of a cancelled ride request."""
    request_id: str

    action: ClassVar[str] = "request_cancelled_by_user"

    def title(self) -> str:
        return "Ride request cancelled"

    def body(self) -> str:
        return "Your ride request was cancelled."
