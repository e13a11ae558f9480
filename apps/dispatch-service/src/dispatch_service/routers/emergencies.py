from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query

from shared.security import Role

from dispatch_service.auth import AuthContext, require_auth, require_roles
from dispatch_service.dependencies import get_emergency_service
from dispatch_service.errors import forbidden
from dispatch_service.models import EmergencyStatus
from dispatch_service.response import success_response
from dispatch_service.schemas import EmergencyAcceptRequest, EmergencyCreateRequest, EmergencyQuoteRequest
from dispatch_service.service import EmergencyService

router = APIRouter(prefix="/v1/emergencies", tags=["emergencies"])


@router.post("", status_code=201)
async def create_emergency(
    body: EmergencyCreateRequest,
    auth: AuthContext = Depends(require_auth),
    service: EmergencyService = Depends(get_emergency_service),
) -> dict[str, object]:
    outcome = await service.create_emergency(
        client_id=auth.user_id,
        category=body.category,
        latitude=body.latitude,
        longitude=body.longitude,
        service_id=body.service_id,
        description=body.description,
        address=body.address,
    )
    return success_response(
        {
            "request": asdict(outcome.request),
            "broadcast_count": outcome.broadcast_count,
            "debug_log": [item.to_dict() for item in outcome.debug],
            "delivery_errors": outcome.delivery_errors,
        },
        meta={"warnings": outcome.warnings},
    )


@router.get("")
async def list_emergencies(
    status: EmergencyStatus | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    auth: AuthContext = Depends(require_auth),
    service: EmergencyService = Depends(get_emergency_service),
) -> dict[str, object]:
    require_roles(auth, {Role.PROVIDER, Role.ADMIN})
    views = await service.list_for_provider(
        auth.user_id,
        status=status.value if status is not None else None,
        limit=limit,
    )
    return success_response([item.to_dict() for item in views], meta={"total": len(views)})


@router.get("/{emergency_id}")
async def get_emergency(
    emergency_id: str,
    auth: AuthContext = Depends(require_auth),
    service: EmergencyService = Depends(get_emergency_service),
) -> dict[str, object]:
    request = await service.get_emergency(emergency_id)
    if not await service.can_view(request, auth.user_id, auth.role):
        raise forbidden("not allowed to view this emergency")
    return success_response(asdict(request), meta={})


@router.post("/{emergency_id}/responses", status_code=201)
async def respond(
    emergency_id: str,
    body: EmergencyQuoteRequest,
    auth: AuthContext = Depends(require_auth),
    service: EmergencyService = Depends(get_emergency_service),
) -> dict[str, object]:
    require_roles(auth, {Role.PROVIDER})
    saved = await service.respond(
        emergency_id,
        auth.user_id,
        price_per_hour=body.price_per_hour,
        min_hours=body.min_hours,
        eta=body.eta,
    )
    return success_response(asdict(saved), meta={})


@router.get("/{emergency_id}/responses")
async def list_responses(
    emergency_id: str,
    auth: AuthContext = Depends(require_auth),
    service: EmergencyService = Depends(get_emergency_service),
) -> dict[str, object]:
    request = await service.get_emergency(emergency_id)
    if not auth.is_admin and request.client_id != auth.user_id:
        raise forbidden("only the requesting client can list responses")
    items = await service.list_responses(emergency_id)
    return success_response([asdict(item) for item in items], meta={"total": len(items)})


@router.post("/{emergency_id}/accept")
async def accept_provider(
    emergency_id: str,
    body: EmergencyAcceptRequest,
    auth: AuthContext = Depends(require_auth),
    service: EmergencyService = Depends(get_emergency_service),
) -> dict[str, object]:
    updated = await service.accept_provider(emergency_id, auth.user_id, body.provider_id)
    return success_response(asdict(updated), meta={})


@router.post("/{emergency_id}/cancel")
async def cancel(
    emergency_id: str,
    auth: AuthContext = Depends(require_auth),
    service: EmergencyService = Depends(get_emergency_service),
) -> dict[str, object]:
    updated = await service.cancel(emergency_id, auth.user_id)
    return success_response(asdict(updated), meta={})
