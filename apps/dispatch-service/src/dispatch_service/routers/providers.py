from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query

from dispatch_service.auth import AuthContext, require_auth, require_self, require_self_or_admin
from dispatch_service.dependencies import get_emergency_service, get_store
from dispatch_service.errors import not_found
from dispatch_service.models import ProviderProfile
from dispatch_service.response import success_response
from dispatch_service.schemas import LocationUpdateRequest, ProviderStatusRequest, ProviderUpsertRequest
from dispatch_service.service import EmergencyService
from dispatch_service.store import DispatchStore

router = APIRouter(prefix="/v1/providers", tags=["providers"])


@router.put("/{provider_id}")
async def upsert_provider(
    provider_id: str,
    body: ProviderUpsertRequest,
    auth: AuthContext = Depends(require_auth),
    store: DispatchStore = Depends(get_store),
) -> dict[str, object]:
    require_self_or_admin(auth, provider_id)
    current = await store.get_provider(provider_id) or ProviderProfile(provider_id=provider_id)
    saved = await store.upsert_provider(
        ProviderProfile(
            provider_id=provider_id,
            email=body.email.lower(),
            full_name=body.full_name,
            role="provider",
            is_online=current.is_online,
            latitude=current.latitude,
            longitude=current.longitude,
            service_radius_km=body.service_radius_km,
            skills=list(body.skills),
            plan_features=dict(body.plan_features),
        )
    )
    return success_response(asdict(saved), meta={})


@router.get("/{provider_id}")
async def get_provider(
    provider_id: str,
    auth: AuthContext = Depends(require_auth),
    store: DispatchStore = Depends(get_store),
) -> dict[str, object]:
    require_self_or_admin(auth, provider_id)
    profile = await store.get_provider(provider_id)
    if profile is None:
        raise not_found("provider")
    return success_response(asdict(profile), meta={})


@router.put("/{provider_id}/status")
async def update_status(
    provider_id: str,
    body: ProviderStatusRequest,
    auth: AuthContext = Depends(require_auth),
    store: DispatchStore = Depends(get_store),
) -> dict[str, object]:
    require_self(auth, provider_id)
    profile = await store.set_online(provider_id, body.is_online, body.latitude, body.longitude)
    if profile is None:
        raise not_found("provider")
    return success_response(asdict(profile), meta={})


@router.post("/{provider_id}/location")
async def write_location(
    provider_id: str,
    body: LocationUpdateRequest,
    auth: AuthContext = Depends(require_auth),
    store: DispatchStore = Depends(get_store),
) -> dict[str, object]:
    require_self(auth, provider_id)
    profile = await store.upsert_location(provider_id, body.latitude, body.longitude)
    return success_response(
        {
            "provider_id": profile.provider_id,
            "latitude": profile.latitude,
            "longitude": profile.longitude,
            "updated_at": profile.updated_at,
        },
        meta={},
    )


@router.get("/{provider_id}/eligibility")
async def check_eligibility(
    provider_id: str,
    lat: float = Query(...),
    lng: float = Query(...),
    service_id: str | None = Query(default=None),
    auth: AuthContext = Depends(require_auth),
    service: EmergencyService = Depends(get_emergency_service),
) -> dict[str, object]:
    require_self_or_admin(auth, provider_id)
    decision = await service.check_provider(provider_id, lat, lng, service_id)
    return success_response(decision.to_dict(), meta={})
