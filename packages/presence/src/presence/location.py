from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

import httpx

from geo_engine.models import GeoPoint
from geo_engine.validation import validate_point

from presence.errors import GeolocationDeniedError, GeolocationError, GeolocationTimeoutError


class LocationSource(Protocol):
    async def current_position(self) -> GeoPoint: ...


class StaticLocationSource:
    def __init__(self, point: GeoPoint) -> None:
        self._point = validate_point(point, label="static")

    async def current_position(self) -> GeoPoint:
        return self._point


class HttpLocationSource:
    """Reads the latest fix from a device GPS bridge exposing JSON over HTTP.

    Accepts ``{"lat": .., "lng": ..}`` or ``{"latitude": .., "longitude": ..}``.
    """

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 10.0,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self._url = url
        self._timeout_seconds = timeout_seconds
        self._client_factory = client_factory

    async def current_position(self) -> GeoPoint:
        try:
            factory = self._client_factory or (lambda: httpx.AsyncClient(timeout=self._timeout_seconds))
            async with factory() as client:
                response = await client.get(self._url)
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise GeolocationTimeoutError("location fix timed out") from exc
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code in (401, 403):
                raise GeolocationDeniedError("location permission denied") from exc
            raise GeolocationError(f"location source returned {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise GeolocationError("location source unreachable") from exc

        try:
            return self._parse(response.json())
        except ValueError as exc:
            raise GeolocationError(f"invalid location fix: {exc}") from exc

    @staticmethod
    def _parse(payload: Any) -> GeoPoint:
        if not isinstance(payload, dict):
            raise ValueError("fix must be a JSON object")
        lat = payload.get("lat", payload.get("latitude"))
        lng = payload.get("lng", payload.get("longitude"))
        if lat is None or lng is None:
            raise ValueError("fix has no coordinates")
        return validate_point(GeoPoint(lat=lat, lng=lng), label="fix")
