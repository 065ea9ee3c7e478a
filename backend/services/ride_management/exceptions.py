"""Custom exceptions for ride management."""


class RideSharingError(Exception):
    """Base class for ledger errors surfaced to callers."""
    error_code = "ride_error"


class InvalidCapacityError(RideSharingError):
    """Raised when an offer declares fewer than one seat."""
    error_code = "invalid_capacity"


class InvalidRideDataError(RideSharingError):
    """Raised for an unknown driver mode or a missing departure location."""
    error_code = "invalid_ride_data"


class DuplicateActiveRequestError(RideSharingError):
    """
    Raised when the user already has an active request in the party.

    Usually caused by a double submit; callers treat it as a no-op and
    can use ``existing`` as the result.
    """
    error_code = "duplicate_active_request"

    def __init__(self, message="", existing=None):
        super().__init__(message)
        self.existing = existing


class EntryNotActiveError(RideSharingError):
    """Raised when an entry is already cancelled or completed."""
    error_code = "not_active"


class OfferNotActiveError(EntryNotActiveError):
    """Raised when an offer is no longer accepting changes."""
    error_code = "offer_not_active"


class RequestNotActiveError(EntryNotActiveError):
    """Raised when a request was already picked up or cancelled."""
    error_code = "request_not_active"


class OfferFullError(RideSharingError):
    """Raised when an offer has no free seat left."""
    error_code = "offer_full"


class AlreadyOnboardError(RideSharingError):
    """Raised when the request owner already rides in (or drives) the offer."""
    error_code = "already_onboard"


class EntryNotFoundError(RideSharingError):
    """Raised when an offer or request cannot be found in the party."""
    error_code = "not_found"


class PassengerNotFoundError(EntryNotFoundError):
    """Raised when the user is not a passenger of the offer."""
    error_code = "passenger_not_found"


class UnauthorizedError(RideSharingError):
    """Raised when the acting user does not own the entry."""
    error_code = "unauthorized"


class ConcurrentUpdateError(RideSharingError):
    """Raised when an entry changed between read and write and retries ran out."""
    error_code = "concurrent_update"
