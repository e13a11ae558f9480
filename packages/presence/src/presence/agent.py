from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from geo_engine.models import GeoPoint

from presence.client import DispatchApiClient, ProviderStatus
from presence.config import HeartbeatSettings
from presence.errors import StatusFetchError
from presence.heartbeat import LocationHeartbeat
from presence.location import HttpLocationSource, LocationSource, StaticLocationSource

logger = logging.getLogger(__name__)


class ProviderStatusReader(Protocol):
    async def fetch_provider_status(self, provider_id: str) -> ProviderStatus: ...


class HeartbeatAgent:
    """Keeps a heartbeat in step with the provider's own role and online flag."""

    def __init__(
        self,
        heartbeat: LocationHeartbeat,
        status_reader: ProviderStatusReader,
        *,
        poll_seconds: float = 30.0,
        sleep_fn: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._heartbeat = heartbeat
        self._status_reader = status_reader
        self._poll_seconds = poll_seconds
        self._sleep_fn = sleep_fn

    async def poll_once(self) -> bool:
        try:
            status = await self._status_reader.fetch_provider_status(self._heartbeat.provider_id)
        except StatusFetchError as exc:
            # keep the current state; the next poll decides again
            logger.warning(
                "provider_status_unavailable",
                extra={"component": "presence", "provider_id": self._heartbeat.provider_id, "reason": str(exc)},
            )
            return self._heartbeat.active
        return self._heartbeat.sync(role=status.role, is_online=status.is_online)

    async def run(self) -> None:
        try:
            while True:
                await self.poll_once()
                await self._sleep_fn(self._poll_seconds)
        finally:
            await self._heartbeat.aclose()


def build_location_source(settings: HeartbeatSettings) -> LocationSource:
    if settings.LOCATION_SOURCE_URL:
        return HttpLocationSource(settings.LOCATION_SOURCE_URL, timeout_seconds=settings.HTTP_TIMEOUT_SECONDS)
    return StaticLocationSource(GeoPoint(lat=settings.STATIC_LATITUDE, lng=settings.STATIC_LONGITUDE))  # type: ignore[arg-type]


def build_agent(settings: HeartbeatSettings) -> HeartbeatAgent:
    client = DispatchApiClient(
        base_url=settings.DISPATCH_API_BASE_URL,
        access_token=settings.PROVIDER_ACCESS_TOKEN,
        timeout_seconds=settings.HTTP_TIMEOUT_SECONDS,
    )
    heartbeat = LocationHeartbeat(
        settings.PROVIDER_ID,
        build_location_source(settings),
        client,
        interval_seconds=settings.HEARTBEAT_INTERVAL_SECONDS,
    )
    return HeartbeatAgent(heartbeat, client, poll_seconds=settings.STATUS_POLL_SECONDS)
