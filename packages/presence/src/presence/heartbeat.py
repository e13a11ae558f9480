"""Live location heartbeat for online providers.

While a provider is online, its position is sampled once immediately and then
on a fixed interval, and every sample is written to the dispatch service as an
upsert keyed by provider id. A failed tick is logged and skipped; it never
stops the schedule. At most one timer runs per heartbeat instance.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

from presence.errors import GeolocationError
from presence.location import LocationSource

logger = logging.getLogger(__name__)

HEARTBEAT_INTERVAL_SECONDS = 30.0
PROVIDER_ROLE = "provider"


class LocationWriter(Protocol):
    async def upsert_location(self, provider_id: str, latitude: float, longitude: float) -> object: ...


@dataclass
class HeartbeatStats:
    ticks: int = 0
    writes: int = 0
    skipped: int = 0
    failed_writes: int = 0


class LocationHeartbeat:
    def __init__(
        self,
        provider_id: str,
        location_source: LocationSource,
        writer: LocationWriter,
        *,
        interval_seconds: float = HEARTBEAT_INTERVAL_SECONDS,
        sleep_fn: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._provider_id = provider_id
        self._location_source = location_source
        self._writer = writer
        self._interval_seconds = interval_seconds
        self._sleep_fn = sleep_fn
        self._timer: asyncio.Task[None] | None = None
        self._inflight: set[asyncio.Task[bool]] = set()
        self.stats = HeartbeatStats()

    @property
    def provider_id(self) -> str:
        return self._provider_id

    @property
    def active(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @staticmethod
    def should_run(role: str | None, is_online: bool) -> bool:
        return role == PROVIDER_ROLE and bool(is_online)

    def sync(self, *, role: str | None, is_online: bool) -> bool:
        """Apply the latest provider state and return whether the heartbeat is active."""
        if not self.should_run(role, is_online):
            self.stop()
            return False
        if not self.active:
            self.start()
        return True

    def start(self) -> None:
        self.stop()
        self._timer = asyncio.create_task(self._run(), name=f"heartbeat:{self._provider_id}")
        logger.info(
            "heartbeat_started",
            extra={
                "component": "presence",
                "provider_id": self._provider_id,
                "interval_seconds": self._interval_seconds,
            },
        )

    def stop(self) -> None:
        timer, self._timer = self._timer, None
        if timer is None or timer.done():
            return
        timer.cancel()
        logger.info("heartbeat_stopped", extra={"component": "presence", "provider_id": self._provider_id})

    async def aclose(self) -> None:
        self.stop()
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)

    async def tick(self) -> bool:
        self.stats.ticks += 1
        try:
            point = await self._location_source.current_position()
        except GeolocationError as exc:
            self.stats.skipped += 1
            logger.warning(
                "heartbeat_location_unavailable",
                extra={"component": "presence", "provider_id": self._provider_id, "reason": str(exc)},
            )
            return False
        except Exception:
            self.stats.skipped += 1
            logger.exception(
                "heartbeat_location_failed",
                extra={"component": "presence", "provider_id": self._provider_id},
            )
            return False

        try:
            await self._writer.upsert_location(self._provider_id, point.lat, point.lng)
        except Exception:
            self.stats.failed_writes += 1
            logger.exception(
                "heartbeat_write_failed",
                extra={"component": "presence", "provider_id": self._provider_id},
            )
            return False

        self.stats.writes += 1
        logger.debug(
            "heartbeat_location_written",
            extra={
                "component": "presence",
                "provider_id": self._provider_id,
                "lat": point.lat,
                "lng": point.lng,
            },
        )
        return True

    async def _run(self) -> None:
        while True:
            self._spawn_tick()
            await self._sleep_fn(self._interval_seconds)

    def _spawn_tick(self) -> None:
        # ticks outlive a cancelled timer so an in-flight write can finish
        task = asyncio.create_task(self.tick())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
