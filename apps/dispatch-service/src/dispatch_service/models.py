from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any

from devkit.timezone import now_platform_iso
from geo_engine.models import GeoPoint, ProviderLocationRecord

EMERGENCY_CALLS_FEATURE = "emergency_calls"


class EmergencyStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ResponseStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass
class ProviderProfile:
    provider_id: str
    email: str = ""
    full_name: str | None = None
    role: str = "provider"
    is_online: bool = False
    latitude: float | None = None
    longitude: float | None = None
    service_radius_km: float | None = None
    skills: list[str] = field(default_factory=list)
    plan_features: dict[str, Any] = field(default_factory=dict)
    updated_at: str = field(default_factory=now_platform_iso)

    @property
    def has_emergency_feature(self) -> bool:
        return self.plan_features.get(EMERGENCY_CALLS_FEATURE) is True

    def location_record(self) -> ProviderLocationRecord:
        return ProviderLocationRecord(
            provider_id=self.provider_id,
            latitude=self.latitude,
            longitude=self.longitude,
            service_radius_km=self.service_radius_km,
            is_online=self.is_online,
            updated_at=self.updated_at,
        )


@dataclass
class EmergencyRequest:
    request_id: str
    client_id: str
    category: str
    latitude: float
    longitude: float
    service_id: str | None = None
    description: str | None = None
    address: str | None = None
    status: str = EmergencyStatus.PENDING.value
    provider_id: str | None = None
    accepted_at: str | None = None
    created_at: str = field(default_factory=now_platform_iso)

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.latitude, lng=self.longitude)


@dataclass
class EmergencyResponse:
    response_id: str
    emergency_id: str
    provider_id: str
    price_per_hour: float
    min_hours: float
    eta: str
    status: str = ResponseStatus.PENDING.value
    created_at: str = field(default_factory=now_platform_iso)


@dataclass
class Notification:
    notification_id: str
    user_id: str
    title: str
    message: str
    user_type: str = "provider"
    type: str = "info"
    data: dict[str, Any] = field(default_factory=dict)
    read: bool = False
    created_at: str = field(default_factory=now_platform_iso)


@dataclass(frozen=True)
class ProviderEmergencyView:
    request: EmergencyRequest
    my_response_status: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {**asdict(self.request), "my_response_status": self.my_response_status}
