from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

from devkit.timezone import configure_platform_timezone


class ServiceSettings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    SERVICE_NAME: str = "service"
    DATABASE_URL: str | None = None
    JWT_SECRET_KEY: str = "dev-only-secret"
    PUSH_WEBHOOK_URL: str | None = None
    PUSH_WEBHOOK_TIMEOUT_SECONDS: float = 5.0
    PROVIDER_LOCATION_MAX_AGE_SECONDS: int | None = None


def load_settings(service_name: str) -> ServiceSettings:
    configure_platform_timezone()
    return ServiceSettings(SERVICE_NAME=service_name)
