"""Exceptions raised by geocoding sources."""


class GeocodeUnavailableError(Exception):
    """Raised when the external geocoder cannot answer (timeout, HTTP error, bad payload)."""
    pass
