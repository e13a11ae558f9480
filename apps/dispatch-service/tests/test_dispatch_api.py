from uuid import uuid4

from fastapi.testclient import TestClient

from devkit.config import ServiceSettings
from dispatch_service.app import create_app
from shared.security import JWTManager

SECRET = "dev-only-secret"
REQUESTER = {"latitude": 38.8, "longitude": -9.1}


def _settings(**overrides) -> ServiceSettings:
    values = {"SERVICE_NAME": "dispatch-service", "DATABASE_URL": None, "JWT_SECRET_KEY": SECRET, "PUSH_WEBHOOK_URL": None}
    values.update(overrides)
    return ServiceSettings(**values)


def _client() -> TestClient:
    return TestClient(create_app(settings=_settings()))


def _auth(subject: str, role: str) -> dict[str, str]:
    token = JWTManager(secret=SECRET).issue_access_token(subject, role, jti=str(uuid4()))
    return {"Authorization": f"Bearer {token}"}


def _register_provider(client: TestClient, provider_id: str, lat: float, lng: float, **profile) -> None:
    headers = _auth(provider_id, "provider")
    body = {"email": f"{provider_id}@example.pt", "plan_features": {"emergency_calls": True}}
    body.update(profile)
    assert client.put(f"/v1/providers/{provider_id}", headers=headers, json=body).status_code == 200
    assert client.put(f"/v1/providers/{provider_id}/status", headers=headers, json={"is_online": True}).status_code == 200
    response = client.post(
        f"/v1/providers/{provider_id}/location",
        headers=headers,
        json={"latitude": lat, "longitude": lng},
    )
    assert response.status_code == 200


def _create_emergency(client: TestClient, client_id: str = "client-1", **extra):
    return client.post(
        "/v1/emergencies",
        headers=_auth(client_id, "client"),
        json={"category": "plumbing", **REQUESTER, **extra},
    )


def test_health_endpoints() -> None:
    client = _client()

    assert client.get("/healthz").json()["data"] == {"status": "ok"}
    assert client.get("/readyz").json()["data"] == {"status": "ready"}


def test_missing_and_invalid_tokens() -> None:
    client = _client()

    missing = client.get("/v1/providers/prov-1")
    invalid = client.get("/v1/providers/prov-1", headers={"Authorization": "Bearer not-a-token"})

    assert missing.status_code == 401
    assert missing.json()["error"]["code"] == "UNAUTHORIZED"
    assert invalid.status_code == 401
    assert invalid.json()["error"]["code"] == "INVALID_TOKEN"


def test_provider_profile_is_private() -> None:
    client = _client()
    _register_provider(client, "prov-1", 38.7223, -9.1393)

    own = client.get("/v1/providers/prov-1", headers=_auth("prov-1", "provider"))
    other = client.get("/v1/providers/prov-1", headers=_auth("prov-2", "provider"))
    admin = client.get("/v1/providers/prov-1", headers=_auth("ops", "admin"))

    assert own.status_code == 200
    assert own.json()["data"]["is_online"] is True
    assert own.json()["data"]["latitude"] == 38.7223
    assert other.status_code == 403
    assert admin.status_code == 200


def test_heartbeat_write_is_self_only_and_validated() -> None:
    client = _client()

    foreign = client.post(
        "/v1/providers/prov-1/location",
        headers=_auth("prov-2", "provider"),
        json={"latitude": 38.7, "longitude": -9.1},
    )
    out_of_range = client.post(
        "/v1/providers/prov-1/location",
        headers=_auth("prov-1", "provider"),
        json={"latitude": 95.0, "longitude": -9.1},
    )

    assert foreign.status_code == 403
    assert out_of_range.status_code == 422
    assert out_of_range.json()["error"]["code"] == "VALIDATION_ERROR"


def test_profile_update_keeps_presence_state() -> None:
    client = _client()
    _register_provider(client, "prov-1", 38.7223, -9.1393)

    updated = client.put(
        "/v1/providers/prov-1",
        headers=_auth("prov-1", "provider"),
        json={"email": "new@example.pt", "service_radius_km": 5},
    ).json()["data"]

    assert updated["email"] == "new@example.pt"
    assert updated["is_online"] is True
    assert updated["latitude"] == 38.7223


def test_status_for_unknown_provider_is_not_found() -> None:
    client = _client()

    response = client.put("/v1/providers/ghost/status", headers=_auth("ghost", "provider"), json={"is_online": True})

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_emergency_broadcasts_to_nearby_provider_only() -> None:
    client = _client()
    _register_provider(client, "prov-lisbon", 38.7223, -9.1393)
    _register_provider(client, "prov-porto", 41.1579, -8.6291)

    response = _create_emergency(client)

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["request"]["status"] == "pending"
    assert data["broadcast_count"] == 1
    decisions = {item["provider_id"]: item for item in data["debug_log"]}
    assert decisions["prov-lisbon"]["eligible"] is True
    assert decisions["prov-porto"]["reason"] == "out_of_range"

    inbox = client.get("/v1/notifications", headers=_auth("prov-lisbon", "provider")).json()
    assert inbox["meta"]["unread"] == 1
    assert inbox["data"][0]["title"] == "EMERGENCY CALL"
    assert client.get("/v1/notifications", headers=_auth("prov-porto", "provider")).json()["data"] == []


def test_offline_provider_gets_nothing() -> None:
    client = _client()
    _register_provider(client, "prov-lisbon", 38.7223, -9.1393)
    client.put("/v1/providers/prov-lisbon/status", headers=_auth("prov-lisbon", "provider"), json={"is_online": False})

    assert _create_emergency(client).json()["data"]["broadcast_count"] == 0


def test_emergency_validation_error() -> None:
    client = _client()

    response = _create_emergency(client, latitude=120.0)

    assert response.status_code == 422
    assert response.json()["success"] is False


def test_full_response_and_accept_flow() -> None:
    client = _client()
    _register_provider(client, "prov-1", 38.7223, -9.1393)
    _register_provider(client, "prov-2", 38.75, -9.15)
    emergency_id = _create_emergency(client).json()["data"]["request"]["request_id"]
    quote = {"price_per_hour": 50, "min_hours": 2, "eta": "15 min"}

    first = client.post(f"/v1/emergencies/{emergency_id}/responses", headers=_auth("prov-1", "provider"), json=quote)
    second = client.post(f"/v1/emergencies/{emergency_id}/responses", headers=_auth("prov-2", "provider"), json=quote)
    duplicate = client.post(f"/v1/emergencies/{emergency_id}/responses", headers=_auth("prov-1", "provider"), json=quote)
    from_client = client.post(f"/v1/emergencies/{emergency_id}/responses", headers=_auth("client-2", "client"), json=quote)
    assert (first.status_code, second.status_code) == (201, 201)
    assert duplicate.status_code == 409
    assert from_client.status_code == 403

    listed = client.get(f"/v1/emergencies/{emergency_id}/responses", headers=_auth("client-1", "client"))
    assert listed.json()["meta"]["total"] == 2
    assert client.get(f"/v1/emergencies/{emergency_id}/responses", headers=_auth("prov-1", "provider")).status_code == 403

    accepted = client.post(
        f"/v1/emergencies/{emergency_id}/accept",
        headers=_auth("client-1", "client"),
        json={"provider_id": "prov-2"},
    )
    assert accepted.status_code == 200
    assert accepted.json()["data"]["status"] == "accepted"
    assert accepted.json()["data"]["provider_id"] == "prov-2"

    statuses = {
        item["provider_id"]: item["status"]
        for item in client.get(f"/v1/emergencies/{emergency_id}/responses", headers=_auth("client-1", "client")).json()["data"]
    }
    assert statuses == {"prov-1": "rejected", "prov-2": "accepted"}

    cancel = client.post(f"/v1/emergencies/{emergency_id}/cancel", headers=_auth("client-1", "client"))
    assert cancel.json()["data"]["status"] == "cancelled"


def test_emergency_visibility() -> None:
    client = _client()
    _register_provider(client, "prov-1", 38.7223, -9.1393)
    emergency_id = _create_emergency(client).json()["data"]["request"]["request_id"]

    notified = client.get(f"/v1/emergencies/{emergency_id}", headers=_auth("prov-1", "provider"))
    assert notified.status_code == 200
    assert notified.json()["data"]["status"] == "pending"
    assert client.get(f"/v1/emergencies/{emergency_id}", headers=_auth("prov-9", "provider")).status_code == 200
    assert client.get(f"/v1/emergencies/{emergency_id}", headers=_auth("client-2", "client")).status_code == 403

    client.post(
        f"/v1/emergencies/{emergency_id}/responses",
        headers=_auth("prov-1", "provider"),
        json={"price_per_hour": 50, "min_hours": 2, "eta": "15 min"},
    )
    client.post(f"/v1/emergencies/{emergency_id}/cancel", headers=_auth("client-1", "client"))

    assert client.get(f"/v1/emergencies/{emergency_id}", headers=_auth("client-1", "client")).status_code == 200
    assert client.get(f"/v1/emergencies/{emergency_id}", headers=_auth("prov-1", "provider")).status_code == 200
    assert client.get(f"/v1/emergencies/{emergency_id}", headers=_auth("ops", "admin")).status_code == 200
    assert client.get(f"/v1/emergencies/{emergency_id}", headers=_auth("prov-9", "provider")).status_code == 403
    assert client.get("/v1/emergencies/missing", headers=_auth("client-1", "client")).status_code == 404


def test_provider_emergency_list_carries_own_response_status() -> None:
    client = _client()
    quote = {"price_per_hour": 50, "min_hours": 2, "eta": "15 min"}
    quoted = _create_emergency(client).json()["data"]["request"]["request_id"]
    open_one = _create_emergency(client, client_id="client-2").json()["data"]["request"]["request_id"]
    taken = _create_emergency(client, client_id="client-3").json()["data"]["request"]["request_id"]
    client.post(f"/v1/emergencies/{quoted}/responses", headers=_auth("prov-1", "provider"), json=quote)
    client.post(f"/v1/emergencies/{taken}/responses", headers=_auth("prov-2", "provider"), json=quote)
    client.post(f"/v1/emergencies/{taken}/accept", headers=_auth("client-3", "client"), json={"provider_id": "prov-2"})

    listed = client.get("/v1/emergencies", headers=_auth("prov-1", "provider")).json()
    mine = {item["request_id"]: item["my_response_status"] for item in listed["data"]}
    assert mine == {quoted: "pending", open_one: None}
    assert listed["meta"]["total"] == 2

    winner = client.get("/v1/emergencies", params={"status": "accepted"}, headers=_auth("prov-2", "provider")).json()
    assert [(item["request_id"], item["my_response_status"]) for item in winner["data"]] == [(taken, "accepted")]

    assert client.get("/v1/emergencies", headers=_auth("client-1", "client")).status_code == 403
    assert client.get("/v1/emergencies", params={"status": "bogus"}, headers=_auth("prov-1", "provider")).status_code == 422


def test_notification_mark_read() -> None:
    client = _client()
    _register_provider(client, "prov-1", 38.7223, -9.1393)
    _create_emergency(client)
    headers = _auth("prov-1", "provider")
    notification_id = client.get("/v1/notifications", headers=headers).json()["data"][0]["notification_id"]

    assert client.post(f"/v1/notifications/{notification_id}/read", headers=_auth("prov-2", "provider")).status_code == 404
    assert client.post(f"/v1/notifications/{notification_id}/read", headers=headers).status_code == 200
    assert client.get("/v1/notifications", headers=headers).json()["meta"]["unread"] == 0


def test_provider_eligibility_check() -> None:
    client = _client()
    _register_provider(client, "prov-1", 38.7223, -9.1393, skills=["plumbing"])
    headers = _auth("prov-1", "provider")

    near = client.get("/v1/providers/prov-1/eligibility", params={"lat": 38.8, "lng": -9.1}, headers=headers)
    skill = client.get(
        "/v1/providers/prov-1/eligibility",
        params={"lat": 38.8, "lng": -9.1, "service_id": "electrical"},
        headers=headers,
    )
    invalid = client.get("/v1/providers/prov-1/eligibility", params={"lat": 91, "lng": -9.1}, headers=headers)

    assert near.json()["data"]["eligible"] is True
    assert skill.json()["data"]["reason"] == "skill_mismatch"
    assert invalid.status_code == 422
    assert invalid.json()["error"]["code"] == "VALIDATION_ERROR"


def test_stateless_geo_tools() -> None:
    client = _client()

    distance = client.get(
        "/v1/geo/distance",
        params={"origin_lat": 38.8, "origin_lng": -9.1, "target_lat": 38.8, "target_lng": -9.1},
    ).json()["data"]
    eligible = client.get(
        "/v1/geo/eligibility",
        params={"requester_lat": 38.8, "requester_lng": -9.1, "provider_lat": 38.7223, "provider_lng": -9.1393, "is_online": True},
    ).json()["data"]
    no_location = client.get(
        "/v1/geo/eligibility",
        params={"requester_lat": 38.8, "requester_lng": -9.1},
    ).json()["data"]

    assert distance["distance_km"] == 0.0
    assert eligible["eligible"] is True
    assert eligible["radius_km"] == 20.0
    assert no_location == {"eligible": False, "distance_km": None, "radius_km": 20.0}


def test_geo_eligibility_treats_missing_online_flag_as_offline() -> None:
    client = _client()
    params = {"requester_lat": 38.8, "requester_lng": -9.1, "provider_lat": 38.7223, "provider_lng": -9.1393}

    implicit = client.get("/v1/geo/eligibility", params=params).json()["data"]
    explicit = client.get("/v1/geo/eligibility", params={**params, "is_online": "true"}).json()["data"]

    assert implicit["eligible"] is False
    assert explicit["eligible"] is True
    assert implicit["distance_km"] == explicit["distance_km"]
