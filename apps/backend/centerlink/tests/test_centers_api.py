"""Center directory endpoints and the events they publish."""
from __future__ import annotations

from fastapi.testclient import TestClient


def _poll(client: TestClient, headers: dict[str, str], since: str = "0") -> list[dict]:
    return client.get("/api/events", params={"mode": "poll", "since": since}, headers=headers).json()["events"]


def test_healthz(client: TestClient) -> None:
    assert client.get("/healthz").json() == {"status": "ok"}


def test_list_centers_from_seed(client: TestClient) -> None:
    centers = client.get("/api/centers").json()

    assert len(centers) == 5
    hub = next(center for center in centers if center["id"] == "kampala-hub")
    assert hub["coordinates"] == {"lat": 0.3476, "lng": 32.5825}
    assert hub["contactInfo"]["email"] == "info@kampalahub.org"
    assert hub["addedBy"] == "admin"


def test_list_filters(client: TestClient) -> None:
    verified = client.get("/api/centers", params={"verified": "true"}).json()
    assert {center["id"] for center in verified} == {"kampala-hub", "makerere-center", "nakawa-skills"}

    computer = client.get("/api/centers", params={"service": "Computer Training"}).json()
    assert {center["id"] for center in computer} == {"makerere-center", "nakawa-skills"}

    searched = client.get("/api/centers", params={"search": "nakawa"}).json()
    assert [center["id"] for center in searched] == ["nakawa-skills"]


def test_get_center(client: TestClient) -> None:
    assert client.get("/api/centers/mengo-womens").json()["verified"] is False
    assert client.get("/api/centers/nowhere").status_code == 404


def test_verify_requires_admin(client: TestClient, auth_headers) -> None:
    assert client.patch("/api/centers/mengo-womens/verify").status_code == 401
    response = client.patch("/api/centers/mengo-womens/verify", headers=auth_headers("manager-2"))
    assert response.status_code == 403


def test_verify_publishes_center_updated(client: TestClient, auth_headers) -> None:
    admin = auth_headers("admin-1", role="ADMIN")

    response = client.patch("/api/centers/mengo-womens/verify", headers=admin)

    assert response.status_code == 200
    assert response.json()["verified"] is True
    [event] = _poll(client, admin)
    assert event["type"] == "center-updated"
    assert event["data"] == {
        "id": "mengo-womens",
        "name": "Mengo Women's Center",
        "verified": True,
        "action": "verified",
        "connectedTo": None,
    }
    assert client.patch("/api/centers/nowhere/verify", headers=admin).status_code == 404


def test_verify_is_pushed_to_center_room(client: TestClient, auth_headers, token_for) -> None:
    with client.websocket_connect(f"/api/ws?token={token_for('visitor')}") as ws:
        ws.receive_json()
        ws.send_json({"type": "join-center", "centerId": "makindye-health"})
        ws.receive_json()

        client.patch("/api/centers/makindye-health/verify", headers=auth_headers("admin-1", role="ADMIN"))

        pushed = ws.receive_json()
        assert pushed["type"] == "center-updated"
        assert pushed["data"]["id"] == "makindye-health"


def test_connect_centers(client: TestClient, auth_headers) -> None:
    admin = auth_headers("admin-1", role="ADMIN")
    body = {"center1Id": "kampala-hub", "center2Id": "makerere-center"}

    created = client.post("/api/centers/connect", headers=admin, json=body)
    assert created.status_code == 201
    assert created.json()["center1Id"] == "kampala-hub"

    assert client.get("/api/centers/kampala-hub").json()["connections"] == ["makerere-center"]
    assert client.get("/api/centers/makerere-center").json()["connections"] == ["kampala-hub"]

    events = _poll(client, admin)
    assert [(event["data"]["id"], event["data"]["connectedTo"]) for event in events] == [
        ("kampala-hub", "makerere-center"),
        ("makerere-center", "kampala-hub"),
    ]
    assert all(event["data"]["action"] == "connected" for event in events)

    reversed_body = {"center1Id": "makerere-center", "center2Id": "kampala-hub"}
    assert client.post("/api/centers/connect", headers=admin, json=reversed_body).status_code == 409


def test_connect_rejects_bad_pairs(client: TestClient, auth_headers) -> None:
    admin = auth_headers("admin-1", role="ADMIN")

    same = client.post("/api/centers/connect", headers=admin, json={"center1Id": "kampala-hub", "center2Id": "kampala-hub"})
    missing = client.post("/api/centers/connect", headers=admin, json={"center1Id": "kampala-hub", "center2Id": "nowhere"})
    not_admin = client.post(
        "/api/centers/connect",
        headers=auth_headers("manager-2"),
        json={"center1Id": "kampala-hub", "center2Id": "makerere-center"},
    )

    assert same.status_code == 400
    assert missing.status_code == 404
    assert not_admin.status_code == 403
