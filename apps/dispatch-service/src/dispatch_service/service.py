from __future__ import annotations

import logging
from uuid import uuid4

from devkit.timezone import now_platform_iso
from geo_engine import GeoPoint, validate_point

from dispatch_service.dispatch import CandidateDecision, DispatchOutcome, evaluate_candidate
from dispatch_service.errors import conflict, forbidden, not_found
from dispatch_service.models import EmergencyRequest, EmergencyResponse, EmergencyStatus, ProviderEmergencyView
from dispatch_service.notifications import (
    NotificationDeliveryError,
    NotificationGateway,
    build_accepted_notice,
    build_emergency_notice,
)
from dispatch_service.observability import DispatchMetricsRecorder
from dispatch_service.store import DispatchStore

logger = logging.getLogger(__name__)

CANDIDATE_QUERY_WARNING = "failed to fetch providers"


class EmergencyService:
    def __init__(
        self,
        store: DispatchStore,
        notifier: NotificationGateway,
        *,
        max_location_age_seconds: int | None = None,
        metrics: DispatchMetricsRecorder | None = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._max_location_age_seconds = max_location_age_seconds
        self._metrics = metrics

    async def create_emergency(
        self,
        client_id: str,
        category: str,
        latitude: float,
        longitude: float,
        service_id: str | None = None,
        description: str | None = None,
        address: str | None = None,
    ) -> DispatchOutcome:
        requester = validate_point(GeoPoint(lat=latitude, lng=longitude), label="requester")
        request = await self._store.create_emergency(
            EmergencyRequest(
                request_id=str(uuid4()),
                client_id=client_id,
                category=category,
                latitude=latitude,
                longitude=longitude,
                service_id=service_id,
                description=description,
                address=address,
            )
        )
        outcome = DispatchOutcome(request=request)

        try:
            candidates = await self._store.list_online_providers()
        except Exception:
            # the request already exists; the caller still gets it back
            logger.exception(
                "dispatch_candidate_query_failed",
                extra={"component": "dispatch", "emergency_id": request.request_id},
            )
            outcome.warnings.append(CANDIDATE_QUERY_WARNING)
            return outcome

        notices = []
        for profile in candidates:
            decision = evaluate_candidate(
                requester,
                profile,
                service_id,
                max_age_seconds=self._max_location_age_seconds,
            )
            outcome.debug.append(decision)
            if decision.eligible:
                notices.append(build_emergency_notice(request, profile.provider_id, decision.distance_km))
        outcome.broadcast_count = len(notices)

        if notices:
            outcome.delivery_errors.extend(await self._deliver(notices, request.request_id))

        if self._metrics is not None:
            self._metrics.record_dispatch(len(candidates), outcome.broadcast_count)
            self._metrics.record_delivery_failures(len(outcome.delivery_errors))
        logger.info(
            "emergency_dispatched",
            extra={
                "component": "dispatch",
                "emergency_id": request.request_id,
                "candidates": len(candidates),
                "broadcasts": outcome.broadcast_count,
            },
        )
        return outcome

    async def get_emergency(self, emergency_id: str) -> EmergencyRequest:
        request = await self._store.get_emergency(emergency_id)
        if request is None:
            raise not_found("emergency request")
        return request

    async def can_view(self, request: EmergencyRequest, user_id: str, role: str) -> bool:
        if role == "admin" or user_id in (request.client_id, request.provider_id):
            return True
        # any provider may read an open request
        if role == "provider" and request.status == EmergencyStatus.PENDING:
            return True
        responses = await self._store.list_responses(request.request_id)
        return any(item.provider_id == user_id for item in responses)

    async def list_for_provider(
        self,
        provider_id: str,
        status: str | None = None,
        limit: int = 50,
    ) -> list[ProviderEmergencyView]:
        """Open requests plus the ones the provider quoted on or was assigned.

        Each item carries the provider's own quote status, or ``None`` when
        they have not responded.
        """
        own = {item.emergency_id: item.status for item in await self._store.list_provider_responses(provider_id)}
        views = []
        for request in await self._store.list_emergencies(status=status, limit=limit):
            involved = request.provider_id == provider_id or request.request_id in own
            if request.status != EmergencyStatus.PENDING and not involved:
                continue
            views.append(ProviderEmergencyView(request=request, my_response_status=own.get(request.request_id)))
        return views

    async def respond(
        self,
        emergency_id: str,
        provider_id: str,
        price_per_hour: float,
        min_hours: float,
        eta: str,
    ) -> EmergencyResponse:
        request = await self.get_emergency(emergency_id)
        if request.status != EmergencyStatus.PENDING:
            raise conflict(f"emergency request is {request.status}")
        saved = await self._store.add_response(
            EmergencyResponse(
                response_id=str(uuid4()),
                emergency_id=emergency_id,
                provider_id=provider_id,
                price_per_hour=price_per_hour,
                min_hours=min_hours,
                eta=eta,
            )
        )
        if saved is None:
            raise conflict("provider already responded to this emergency")
        logger.info(
            "emergency_response_received",
            extra={"component": "dispatch", "emergency_id": emergency_id, "provider_id": provider_id},
        )
        return saved

    async def list_responses(self, emergency_id: str) -> list[EmergencyResponse]:
        await self.get_emergency(emergency_id)
        return await self._store.list_responses(emergency_id)

    async def accept_provider(self, emergency_id: str, client_id: str, provider_id: str) -> EmergencyRequest:
        request = await self.get_emergency(emergency_id)
        if request.client_id != client_id:
            raise forbidden("only the requesting client can accept a provider")
        if request.status != EmergencyStatus.PENDING:
            raise conflict(f"emergency request is {request.status}")
        responses = await self._store.list_responses(emergency_id)
        if not any(item.provider_id == provider_id for item in responses):
            raise conflict("provider has not responded to this emergency")

        updated = await self._store.update_emergency(
            emergency_id,
            {
                "status": EmergencyStatus.ACCEPTED.value,
                "provider_id": provider_id,
                "accepted_at": now_platform_iso(),
            },
        )
        if updated is None:
            raise not_found("emergency request")
        await self._store.set_response_statuses(emergency_id, provider_id)
        await self._deliver([build_accepted_notice(updated, provider_id)], emergency_id)
        logger.info(
            "emergency_provider_accepted",
            extra={"component": "dispatch", "emergency_id": emergency_id, "provider_id": provider_id},
        )
        return updated

    async def cancel(self, emergency_id: str, client_id: str) -> EmergencyRequest:
        request = await self.get_emergency(emergency_id)
        if request.client_id != client_id:
            raise forbidden("only the requesting client can cancel")
        if request.status == EmergencyStatus.CANCELLED:
            return request
        if request.status == EmergencyStatus.COMPLETED:
            raise conflict("a completed emergency cannot be cancelled")
        updated = await self._store.update_emergency(emergency_id, {"status": EmergencyStatus.CANCELLED.value})
        if updated is None:
            raise not_found("emergency request")
        logger.info("emergency_cancelled", extra={"component": "dispatch", "emergency_id": emergency_id})
        return updated

    async def check_provider(
        self,
        provider_id: str,
        latitude: float,
        longitude: float,
        service_id: str | None = None,
    ) -> CandidateDecision:
        profile = await self._store.get_provider(provider_id)
        if profile is None:
            raise not_found("provider")
        requester = validate_point(GeoPoint(lat=latitude, lng=longitude), label="requester")
        return evaluate_candidate(
            requester,
            profile,
            service_id,
            max_age_seconds=self._max_location_age_seconds,
        )

    async def _deliver(self, notices, emergency_id: str) -> list[str]:
        try:
            await self._notifier.deliver(notices)
        except NotificationDeliveryError as exc:
            logger.warning(
                "emergency_notification_failed",
                extra={"component": "dispatch", "emergency_id": emergency_id, "failures": len(exc.failures)},
            )
            return [f"notify error: {item}" for item in exc.failures]
        except Exception as exc:
            logger.exception(
                "emergency_notification_crashed",
                extra={"component": "dispatch", "emergency_id": emergency_id},
            )
            return [f"notify error: {exc}"]
        return []
