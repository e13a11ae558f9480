"""Provider presence: live location heartbeat and the agent that drives it."""

from presence.client import DispatchApiClient, ProviderStatus
from presence.errors import (
    GeolocationDeniedError,
    GeolocationError,
    GeolocationTimeoutError,
    PersistenceWriteError,
    PresenceError,
    StatusFetchError,
)
from presence.heartbeat import HEARTBEAT_INTERVAL_SECONDS, HeartbeatStats, LocationHeartbeat, LocationWriter
from presence.location import HttpLocationSource, LocationSource, StaticLocationSource

__all__ = [
    "DispatchApiClient",
    "GeolocationDeniedError",
    "GeolocationError",
    "GeolocationTimeoutError",
    "HEARTBEAT_INTERVAL_SECONDS",
    "HeartbeatStats",
    "HttpLocationSource",
    "LocationHeartbeat",
    "LocationSource",
    "LocationWriter",
    "PersistenceWriteError",
    "PresenceError",
    "ProviderStatus",
    "StaticLocationSource",
    "StatusFetchError",
]
