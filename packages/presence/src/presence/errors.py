class PresenceError(Exception):
    """Base presence exception."""


class GeolocationError(PresenceError):
    """Raised when the device position cannot be read."""


class GeolocationDeniedError(GeolocationError):
    """Raised when the device refuses to share its position."""


class GeolocationTimeoutError(GeolocationError):
    """Raised when the device does not produce a fix in time."""


class PersistenceWriteError(PresenceError):
    """Raised when a location write to the dispatch service fails."""


class StatusFetchError(PresenceError):
    """Raised when the provider status cannot be read from the dispatch service."""
