import math

import pytest

from geo_engine.distance import haversine_distance_km
from geo_engine.eligibility import (
    DEFAULT_SERVICE_RADIUS_KM,
    effective_radius_km,
    evaluate_eligibility,
    is_eligible,
)
from geo_engine.models import GeoPoint, ProviderLocationRecord
from geo_engine.validation import InvalidCoordinateError

REQUESTER = GeoPoint(lat=38.8, lng=-9.1)


def _provider(
    lat: float | None,
    lng: float | None,
    radius: float | None = None,
    online: bool = True,
) -> ProviderLocationRecord:
    return ProviderLocationRecord(
        provider_id="p-1",
        latitude=lat,
        longitude=lng,
        service_radius_km=radius,
        is_online=online,
    )


def test_lisbon_provider_within_radius_is_eligible() -> None:
    result = evaluate_eligibility(REQUESTER, _provider(38.7223, -9.1393, radius=50))
    assert result.eligible is True
    assert result.distance_km is not None
    assert 8.5 <= result.distance_km <= 10.0


def test_porto_provider_outside_default_radius_is_not_eligible() -> None:
    result = evaluate_eligibility(REQUESTER, _provider(41.15, -8.61, radius=20))
    assert result.eligible is False
    assert result.distance_km is not None
    assert 250 < result.distance_km < 290


def test_offline_provider_is_never_eligible() -> None:
    result = evaluate_eligibility(REQUESTER, _provider(38.8, -9.1, online=False))
    assert result.eligible is False
    assert result.distance_km == 0.0


@pytest.mark.parametrize("online", [True, False])
@pytest.mark.parametrize(("lat", "lng"), [(None, None), (38.8, None), (None, -9.1)])
def test_missing_location_is_not_eligible(lat, lng, online: bool) -> None:
    result = evaluate_eligibility(REQUESTER, _provider(lat, lng, online=online))
    assert result.eligible is False
    assert result.distance_km is None


def test_distance_equal_to_radius_is_eligible() -> None:
    provider_point = GeoPoint(lat=38.9, lng=-9.0)
    radius = haversine_distance_km(REQUESTER, provider_point)
    result = evaluate_eligibility(REQUESTER, _provider(provider_point.lat, provider_point.lng, radius=radius))
    assert result.distance_km == radius
    assert result.eligible is True


def test_zero_radius_is_honoured() -> None:
    assert is_eligible(REQUESTER, _provider(38.8, -9.1, radius=0)) is True
    assert is_eligible(REQUESTER, _provider(38.8001, -9.1, radius=0)) is False


def test_unset_radius_defaults_to_twenty_km() -> None:
    assert effective_radius_km(None) == DEFAULT_SERVICE_RADIUS_KM == 20.0
    assert effective_radius_km(0) == 0.0
    # roughly 15 km north: inside the default, outside an explicit 10 km
    point = GeoPoint(lat=38.935, lng=-9.1)
    assert is_eligible(REQUESTER, _provider(point.lat, point.lng)) is True
    assert is_eligible(REQUESTER, _provider(point.lat, point.lng, radius=10)) is False


def test_eligibility_depends_on_provider_radius_not_requester() -> None:
    a = GeoPoint(lat=38.8, lng=-9.1)
    b = GeoPoint(lat=38.9, lng=-9.1)
    to_b = evaluate_eligibility(a, _provider(b.lat, b.lng, radius=5))
    to_a = evaluate_eligibility(b, _provider(a.lat, a.lng, radius=50))
    assert to_b.distance_km == pytest.approx(to_a.distance_km)
    assert to_b.eligible is False
    assert to_a.eligible is True


def test_evaluation_is_deterministic() -> None:
    provider = _provider(38.7223, -9.1393, radius=50)
    results = {evaluate_eligibility(REQUESTER, provider) for _ in range(5)}
    assert len(results) == 1


def test_negative_radius_raises() -> None:
    with pytest.raises(ValueError):
        evaluate_eligibility(REQUESTER, _provider(38.8, -9.1, radius=-1))


@pytest.mark.parametrize(
    "requester",
    [
        GeoPoint(lat=91.0, lng=0.0),
        GeoPoint(lat=0.0, lng=-180.5),
        GeoPoint(lat=math.nan, lng=0.0),
        GeoPoint(lat=0.0, lng=math.inf),
        GeoPoint(lat=True, lng=0.0),  # type: ignore[arg-type]
        GeoPoint(lat="38.8", lng=0.0),  # type: ignore[arg-type]
    ],
)
def test_invalid_requester_coordinates_raise(requester: GeoPoint) -> None:
    with pytest.raises(InvalidCoordinateError):
        evaluate_eligibility(requester, _provider(38.8, -9.1))


def test_invalid_provider_coordinates_raise() -> None:
    with pytest.raises(InvalidCoordinateError):
        evaluate_eligibility(REQUESTER, _provider(38.8, 200.0))


def test_coordinate_range_edges_are_valid() -> None:
    result = evaluate_eligibility(GeoPoint(lat=-90, lng=180), _provider(90.0, -180.0, radius=30000))
    assert result.eligible is True
