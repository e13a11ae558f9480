"""Emergency dispatch eligibility for a single provider.

A provider is eligible for an emergency when it is online and the great-circle
distance from the requester to its last reported position is within its
service radius. Providers that never reported a position are never eligible.
"""

from __future__ import annotations

from geo_engine.distance import haversine_distance_km
from geo_engine.models import EligibilityResult, GeoPoint, ProviderLocationRecord
from geo_engine.validation import validate_point

DEFAULT_SERVICE_RADIUS_KM = 20.0


def effective_radius_km(service_radius_km: float | None) -> float:
    # only an unset radius falls back; 0 means on-site only
    if service_radius_km is None:
        return DEFAULT_SERVICE_RADIUS_KM
    if service_radius_km < 0:
        raise ValueError("service_radius_km must be >= 0")
    return float(service_radius_km)


def evaluate_eligibility(requester: GeoPoint, provider: ProviderLocationRecord) -> EligibilityResult:
    validate_point(requester, label="requester")
    if not provider.has_location:
        return EligibilityResult(eligible=False, distance_km=None)
    provider_point = validate_point(
        GeoPoint(lat=provider.latitude, lng=provider.longitude),  # type: ignore[arg-type]
        label="provider",
    )
    radius_km = effective_radius_km(provider.service_radius_km)
    distance_km = haversine_distance_km(requester, provider_point)
    return EligibilityResult(
        eligible=bool(provider.is_online) and distance_km <= radius_km,
        distance_km=distance_km,
    )


def is_eligible(requester: GeoPoint, provider: ProviderLocationRecord) -> bool:
    return evaluate_eligibility(requester, provider).eligible
