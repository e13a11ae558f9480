"""Geo engine core package."""

from geo_engine.distance import EARTH_RADIUS_KM, haversine_distance_km, haversine_distance_meters
from geo_engine.eligibility import (
    DEFAULT_SERVICE_RADIUS_KM,
    effective_radius_km,
    evaluate_eligibility,
    is_eligible,
)
from geo_engine.models import EligibilityResult, GeoPoint, ProviderLocationRecord
from geo_engine.validation import InvalidCoordinateError, validate_coordinate, validate_point

__all__ = [
    "DEFAULT_SERVICE_RADIUS_KM",
    "EARTH_RADIUS_KM",
    "EligibilityResult",
    "GeoPoint",
    "InvalidCoordinateError",
    "ProviderLocationRecord",
    "effective_radius_km",
    "evaluate_eligibility",
    "haversine_distance_km",
    "haversine_distance_meters",
    "is_eligible",
    "validate_coordinate",
    "validate_point",
]
