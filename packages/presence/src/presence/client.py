from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import httpx

from presence.errors import PersistenceWriteError, StatusFetchError


@dataclass(frozen=True)
class ProviderStatus:
    provider_id: str
    role: str | None
    is_online: bool


class DispatchApiClient:
    def __init__(
        self,
        base_url: str,
        access_token: str,
        timeout_seconds: float = 5.0,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._access_token = access_token
        self._timeout_seconds = timeout_seconds
        self._client_factory = client_factory

    async def upsert_location(self, provider_id: str, latitude: float, longitude: float) -> None:
        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self._base_url}/v1/providers/{provider_id}/location",
                    json={"latitude": latitude, "longitude": longitude},
                    headers=self._headers(),
                )
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise PersistenceWriteError("location write timed out") from exc
        except httpx.HTTPStatusError as exc:
            raise PersistenceWriteError(f"location write rejected with {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise PersistenceWriteError("location write failed") from exc

    async def fetch_provider_status(self, provider_id: str) -> ProviderStatus:
        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self._base_url}/v1/providers/{provider_id}",
                    headers=self._headers(),
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StatusFetchError(f"status fetch rejected with {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise StatusFetchError("status fetch failed") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise StatusFetchError("status response is not JSON") from exc
        payload = body.get("data") if isinstance(body, dict) else None
        if not isinstance(payload, dict):
            raise StatusFetchError("status response has no data object")
        return ProviderStatus(
            provider_id=str(payload.get("provider_id", provider_id)),
            role=payload.get("role"),
            is_online=bool(payload.get("is_online", False)),
        )

    def _client(self) -> httpx.AsyncClient:
        if self._client_factory is not None:
            return self._client_factory()
        return httpx.AsyncClient(timeout=self._timeout_seconds)

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._access_token}"}
