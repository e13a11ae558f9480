from __future__ import annotations

import math

from geo_engine.models import GeoPoint


class InvalidCoordinateError(ValueError):
    """Raised when a coordinate is not a finite number inside its valid range."""


def validate_coordinate(name: str, value: object, limit: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidCoordinateError(f"{name} must be a number")
    number = float(value)
    if not math.isfinite(number):
        raise InvalidCoordinateError(f"{name} must be finite")
    if number < -limit or number > limit:
        raise InvalidCoordinateError(f"{name} must be between {-limit:g} and {limit:g}")
    return number


def validate_point(point: GeoPoint, label: str = "point") -> GeoPoint:
    validate_coordinate(f"{label}.lat", point.lat, 90.0)
    validate_coordinate(f"{label}.lng", point.lng, 180.0)
    return point
