"""Per-candidate dispatch decision.

The geographic check comes from ``geo_engine``; on top of it an emergency
broadcast needs the provider's plan to include emergency calls and, when the
request names a service, that service in the provider's skills.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta

from devkit.timezone import now_platform, parse_iso
from geo_engine import GeoPoint, effective_radius_km, evaluate_eligibility

from dispatch_service.models import EmergencyRequest, ProviderProfile


@dataclass(frozen=True)
class CandidateDecision:
    provider_id: str
    eligible: bool
    distance_km: float | None
    radius_km: float
    is_online: bool
    has_emergency_feature: bool
    has_matching_skill: bool
    stale_location: bool = False
    reason: str | None = None

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass
class DispatchOutcome:
    request: EmergencyRequest
    broadcast_count: int = 0
    warnings: list[str] = field(default_factory=list)
    debug: list[CandidateDecision] = field(default_factory=list)
    delivery_errors: list[str] = field(default_factory=list)


def has_matching_skill(profile: ProviderProfile, service_id: str | None) -> bool:
    if not service_id:
        return True
    return service_id in profile.skills


def is_stale(updated_at: str | None, max_age_seconds: int | None, now: datetime | None = None) -> bool:
    if not max_age_seconds:
        return False
    updated = parse_iso(updated_at)
    if updated is None:
        return True
    return updated < (now or now_platform()) - timedelta(seconds=max_age_seconds)


def evaluate_candidate(
    requester: GeoPoint,
    profile: ProviderProfile,
    service_id: str | None = None,
    *,
    max_age_seconds: int | None = None,
    now: datetime | None = None,
) -> CandidateDecision:
    geo = evaluate_eligibility(requester, profile.location_record())
    feature = profile.has_emergency_feature
    skill = has_matching_skill(profile, service_id)
    stale = is_stale(profile.updated_at, max_age_seconds, now)

    reason: str | None = None
    if not profile.is_online:
        reason = "offline"
    elif geo.distance_km is None:
        reason = "no_location"
    elif not geo.eligible:
        reason = "out_of_range"
    elif not feature:
        reason = "no_emergency_feature"
    elif not skill:
        reason = "skill_mismatch"
    elif stale:
        reason = "stale_location"

    return CandidateDecision(
        provider_id=profile.provider_id,
        eligible=reason is None,
        distance_km=geo.distance_km,
        radius_km=effective_radius_km(profile.service_radius_km),
        is_online=profile.is_online,
        has_emergency_feature=feature,
        has_matching_skill=skill,
        stale_location=stale,
        reason=reason,
    )
