from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ProviderUpsertRequest(BaseModel):
    email: str = Field(default="", max_length=255)
    full_name: str | None = Field(default=None, max_length=255)
    service_radius_km: float | None = Field(default=None, ge=0)
    skills: list[str] = Field(default_factory=list)
    plan_features: dict[str, Any] = Field(default_factory=dict)


class ProviderStatusRequest(BaseModel):
    is_online: bool
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)


class LocationUpdateRequest(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class EmergencyCreateRequest(BaseModel):
    category: str = Field(min_length=1, max_length=128)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    service_id: str | None = Field(default=None, max_length=128)
    description: str | None = Field(default=None, max_length=4000)
    address: str | None = Field(default=None, max_length=500)


class EmergencyQuoteRequest(BaseModel):
    price_per_hour: float = Field(gt=0)
    min_hours: float = Field(default=1, gt=0)
    eta: str = Field(min_length=1, max_length=64)


class EmergencyAcceptRequest(BaseModel):
    provider_id: str = Field(min_length=1, max_length=255)
