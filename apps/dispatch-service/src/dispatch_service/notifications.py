from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import uuid4

import httpx

from dispatch_service.models import EmergencyRequest, Notification
from dispatch_service.store import DispatchStore

logger = logging.getLogger(__name__)

EMERGENCY_TITLE = "EMERGENCY CALL"
ACCEPTED_TITLE = "Emergency request accepted"


class NotificationDeliveryError(Exception):
    def __init__(self, message: str, failures: list[str] | None = None) -> None:
        super().__init__(message)
        self.failures = failures or [message]


@dataclass(frozen=True)
class Notice:
    user_id: str
    title: str
    message: str
    type: str = "info"
    user_type: str = "provider"
    data: dict[str, Any] = field(default_factory=dict)


def emergency_action_url(emergency_id: str) -> str:
    return f"/provider/emergency/{emergency_id}"


def build_emergency_notice(request: EmergencyRequest, provider_id: str, distance_km: float | None) -> Notice:
    where = f" ({distance_km:.1f}km away)" if distance_km is not None else ""
    return Notice(
        user_id=provider_id,
        title=EMERGENCY_TITLE,
        message=f"Urgent {request.category} request nearby{where}",
        type="error",
        data={
            "emergency_id": request.request_id,
            "action_url": emergency_action_url(request.request_id),
            "distance_km": distance_km,
        },
    )


def build_accepted_notice(request: EmergencyRequest, provider_id: str) -> Notice:
    return Notice(
        user_id=provider_id,
        title=ACCEPTED_TITLE,
        message=f"The client accepted your offer for the {request.category} request",
        type="success",
        data={
            "emergency_id": request.request_id,
            "action_url": emergency_action_url(request.request_id),
        },
    )


class NotificationGateway(Protocol):
    async def deliver(self, notices: list[Notice]) -> int: ...


class InAppNotificationGateway:
    """Persists notices as in-app notification rows."""

    def __init__(self, store: DispatchStore) -> None:
        self._store = store

    async def deliver(self, notices: list[Notice]) -> int:
        if not notices:
            return 0
        rows = [
            Notification(
                notification_id=str(uuid4()),
                user_id=notice.user_id,
                user_type=notice.user_type,
                title=notice.title,
                message=notice.message,
                type=notice.type,
                data=dict(notice.data),
            )
            for notice in notices
        ]
        try:
            saved = await self._store.add_notifications(rows)
        except Exception as exc:
            raise NotificationDeliveryError(f"in-app insert failed: {exc}") from exc
        return len(saved)


class WebhookPushGateway:
    """POSTs one JSON body per notice to a push relay."""

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 5.0,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self._url = url
        self._timeout_seconds = timeout_seconds
        self._client_factory = client_factory

    async def deliver(self, notices: list[Notice]) -> int:
        if not notices:
            return 0
        failures: list[str] = []
        delivered = 0
        factory = self._client_factory or (lambda: httpx.AsyncClient(timeout=self._timeout_seconds))
        async with factory() as client:
            for notice in notices:
                try:
                    response = await client.post(
                        self._url,
                        json={
                            "user_id": notice.user_id,
                            "title": notice.title,
                            "message": notice.message,
                            "data": notice.data,
                        },
                    )
                    response.raise_for_status()
                except httpx.TimeoutException:
                    failures.append(f"push to {notice.user_id} timed out")
                except httpx.HTTPStatusError as exc:
                    failures.append(f"push to {notice.user_id} rejected with {exc.response.status_code}")
                except httpx.HTTPError as exc:
                    failures.append(f"push to {notice.user_id} failed: {exc}")
                else:
                    delivered += 1
        if failures:
            raise NotificationDeliveryError(f"{len(failures)} push deliveries failed", failures)
        return delivered


class FanOutNotificationGateway:
    """Delivers through every gateway; one failing channel does not block the others."""

    def __init__(self, gateways: list[NotificationGateway]) -> None:
        self._gateways = gateways

    async def deliver(self, notices: list[Notice]) -> int:
        failures: list[str] = []
        delivered = 0
        for gateway in self._gateways:
            try:
                delivered = max(delivered, await gateway.deliver(notices))
            except NotificationDeliveryError as exc:
                failures.extend(exc.failures)
                logger.warning(
                    "notification_gateway_failed",
                    extra={"component": "notifications", "gateway": type(gateway).__name__, "reason": str(exc)},
                )
            except Exception as exc:
                failures.append(f"{type(gateway).__name__}: {exc}")
                logger.exception(
                    "notification_gateway_crashed",
                    extra={"component": "notifications", "gateway": type(gateway).__name__},
                )
        if failures:
            raise NotificationDeliveryError(f"{len(failures)} notification failures", failures)
        return delivered
