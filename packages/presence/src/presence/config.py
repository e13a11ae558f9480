from __future__ import annotations

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from presence.heartbeat import HEARTBEAT_INTERVAL_SECONDS


class HeartbeatSettings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    DISPATCH_API_BASE_URL: str = "http://localhost:8110"
    PROVIDER_ID: str
    PROVIDER_ACCESS_TOKEN: str
    HEARTBEAT_INTERVAL_SECONDS: float = HEARTBEAT_INTERVAL_SECONDS
    STATUS_POLL_SECONDS: float = 30.0
    HTTP_TIMEOUT_SECONDS: float = 5.0
    LOCATION_SOURCE_URL: str | None = None
    STATIC_LATITUDE: float | None = None
    STATIC_LONGITUDE: float | None = None
    LOG_LEVEL: str = "INFO"

    @model_validator(mode="after")
    def _require_location_source(self) -> "HeartbeatSettings":
        has_static = self.STATIC_LATITUDE is not None and self.STATIC_LONGITUDE is not None
        if not self.LOCATION_SOURCE_URL and not has_static:
            raise ValueError("set LOCATION_SOURCE_URL or both STATIC_LATITUDE and STATIC_LONGITUDE")
        return self
