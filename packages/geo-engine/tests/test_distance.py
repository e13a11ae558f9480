import math

import pytest

from geo_engine.distance import EARTH_RADIUS_KM, haversine_distance_km, haversine_distance_meters
from geo_engine.models import GeoPoint


def test_haversine_distance_is_zero_for_same_point() -> None:
    point = GeoPoint(lat=38.7223, lng=-9.1393)
    assert haversine_distance_km(point, point) == 0.0
    assert haversine_distance_meters(point, point) == 0.0


def test_haversine_distance_is_positive_for_different_points() -> None:
    lisbon = GeoPoint(lat=38.7223, lng=-9.1393)
    porto = GeoPoint(lat=41.15, lng=-8.61)
    distance = haversine_distance_km(lisbon, porto)
    assert 250 < distance < 300


def test_haversine_distance_is_symmetric() -> None:
    a = GeoPoint(lat=38.8, lng=-9.1)
    b = GeoPoint(lat=-33.8688, lng=151.2093)
    assert haversine_distance_km(a, b) == pytest.approx(haversine_distance_km(b, a), rel=1e-12)


def test_meters_and_km_agree() -> None:
    a = GeoPoint(lat=38.8, lng=-9.1)
    b = GeoPoint(lat=38.7223, lng=-9.1393)
    assert haversine_distance_meters(a, b) == pytest.approx(haversine_distance_km(a, b) * 1000)


@pytest.mark.parametrize(
    ("start", "end"),
    [
        (GeoPoint(lat=0.0, lng=0.0), GeoPoint(lat=0.0, lng=180.0)),
        (GeoPoint(lat=90.0, lng=0.0), GeoPoint(lat=-90.0, lng=0.0)),
        (GeoPoint(lat=38.8, lng=-9.1), GeoPoint(lat=-38.8, lng=170.9)),
    ],
)
def test_antipodal_points_are_half_circumference(start: GeoPoint, end: GeoPoint) -> None:
    distance = haversine_distance_km(start, end)
    assert math.isfinite(distance)
    assert distance == pytest.approx(math.pi * EARTH_RADIUS_KM, rel=1e-6)
    assert distance == pytest.approx(20015.09, abs=0.1)
