from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float


@dataclass(frozen=True)
class ProviderLocationRecord:
    provider_id: str
    latitude: float | None = None
    longitude: float | None = None
    service_radius_km: float | None = None
    is_online: bool = False
    updated_at: str | None = None

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    distance_km: float | None
