from __future__ import annotations

from fastapi import APIRouter, Query

from geo_engine import GeoPoint, ProviderLocationRecord, effective_radius_km, evaluate_eligibility, haversine_distance_km

from dispatch_service.response import success_response

router = APIRouter(prefix="/v1/geo", tags=["geo"])


@router.get("/distance")
async def distance(
    origin_lat: float = Query(..., ge=-90, le=90),
    origin_lng: float = Query(..., ge=-180, le=180),
    target_lat: float = Query(..., ge=-90, le=90),
    target_lng: float = Query(..., ge=-180, le=180),
) -> dict[str, object]:
    km = haversine_distance_km(GeoPoint(origin_lat, origin_lng), GeoPoint(target_lat, target_lng))
    return success_response({"distance_km": km}, meta={})


@router.get("/eligibility")
async def eligibility(
    requester_lat: float = Query(..., ge=-90, le=90),
    requester_lng: float = Query(..., ge=-180, le=180),
    provider_lat: float | None = Query(default=None, ge=-90, le=90),
    provider_lng: float | None = Query(default=None, ge=-180, le=180),
    service_radius_km: float | None = Query(default=None, ge=0),
    is_online: bool = Query(default=False),
) -> dict[str, object]:
    result = evaluate_eligibility(
        GeoPoint(requester_lat, requester_lng),
        ProviderLocationRecord(
            provider_id="adhoc",
            latitude=provider_lat,
            longitude=provider_lng,
            service_radius_km=service_radius_km,
            is_online=is_online,
        ),
    )
    return success_response(
        {
            "eligible": result.eligible,
            "distance_km": result.distance_km,
            "radius_km": effective_radius_km(service_radius_km),
        },
        meta={},
    )
