"""Contact inquiries and center threads."""
from __future__ import annotations

from fastapi.testclient import TestClient

CONTACT = {
    "centerId": "nakawa-skills",
    "subject": "Evening classes",
    "message": "Do you offer evening computer classes for adults?",
    "inquiryType": "services",
}


def test_contact_message_is_stored_and_published(client: TestClient, auth_headers) -> None:
    visitor = auth_headers("visitor-7", role="VISITOR", name="Sarah Namukasa", email="sarah@example.org")

    response = client.post("/api/messages/contact", headers=visitor, json=CONTACT)

    assert response.status_code == 201
    body = response.json()
    assert body["centerName"] == "Nakawa Skills Center"
    assert body["senderEmail"] == "sarah@example.org"
    assert body["status"] == "pending"

    admin = auth_headers("admin-1", role="ADMIN")
    [event] = client.get("/api/events", params={"mode": "poll"}, headers=admin).json()["events"]
    assert event["type"] == "contact-message-created"
    assert event["data"]["id"] == body["id"]
    assert event["data"]["senderName"] == "Sarah Namukasa"
    assert event.get("scope") is None

    listed = client.get("/api/messages/contact", headers=admin).json()
    assert [item["id"] for item in listed] == [body["id"]]


def test_contact_validation_and_access(client: TestClient, auth_headers) -> None:
    visitor = auth_headers("visitor-7", role="VISITOR")

    too_short = client.post("/api/messages/contact", headers=visitor, json={**CONTACT, "subject": "Hi"})
    unknown = client.post("/api/messages/contact", headers=visitor, json={**CONTACT, "centerId": "nowhere"})
    anonymous = client.post("/api/messages/contact", json=CONTACT)

    assert too_short.status_code == 422
    assert unknown.status_code == 404
    assert anonymous.status_code == 401
    assert client.get("/api/messages/contact", headers=visitor).status_code == 403


def test_thread_rules(client: TestClient, auth_headers) -> None:
    manager = auth_headers("manager-2")
    stranger = auth_headers("someone-else")

    unverified = client.post(
        "/api/messages/threads",
        headers=manager,
        json={"participantIds": ["makerere-center", "mengo-womens"], "subject": "Hello"},
    )
    outsider = client.post(
        "/api/messages/threads",
        headers=stranger,
        json={"participantIds": ["makerere-center", "kampala-hub"], "subject": "Hello"},
    )
    duplicate = client.post(
        "/api/messages/threads",
        headers=manager,
        json={"participantIds": ["makerere-center", "makerere-center"], "subject": "Hello"},
    )

    assert unverified.status_code == 403
    assert outsider.status_code == 403
    assert duplicate.status_code == 400


def test_thread_conversation_publishes_messages(client: TestClient, auth_headers) -> None:
    manager = auth_headers("manager-2")
    admin = auth_headers("admin-1", role="ADMIN")

    thread = client.post(
        "/api/messages/threads",
        headers=manager,
        json={"participantIds": ["makerere-center", "nakawa-skills"], "subject": "Shared trainers"},
    ).json()
    assert thread["participantNames"] == ["Makerere Community Center", "Nakawa Skills Center"]
    assert thread["messageCount"] == 0

    first = client.post(
        f"/api/messages/threads/{thread['id']}/messages",
        headers=manager,
        json={"content": "Could your trainers visit us next month?"},
    )
    second = client.post(
        f"/api/messages/threads/{thread['id']}/messages",
        headers=admin,
        json={"content": "Yes, the second week works."},
    )
    assert first.status_code == 201
    assert first.json()["senderId"] == "makerere-center"
    assert second.json()["senderId"] == "nakawa-skills"

    history = client.get(f"/api/messages/threads/{thread['id']}/messages", headers=manager).json()
    assert [item["content"] for item in history] == [
        "Could your trainers visit us next month?",
        "Yes, the second week works.",
    ]

    events = client.get("/api/events", params={"mode": "poll"}, headers=manager).json()["events"]
    assert [event["type"] for event in events] == ["message-created", "message-created"]
    assert events[1]["data"]["senderName"] == "Nakawa Skills Center"


def test_posting_requires_a_participant_center(client: TestClient, auth_headers) -> None:
    manager = auth_headers("manager-2")
    thread = client.post(
        "/api/messages/threads",
        headers=manager,
        json={"participantIds": ["makerere-center", "kampala-hub"], "subject": "Venue"},
    ).json()

    response = client.post(
        f"/api/messages/threads/{thread['id']}/messages",
        headers=auth_headers("someone-else"),
        json={"content": "Hello there"},
    )
    missing = client.get("/api/messages/threads/unknown/messages", headers=manager)

    assert response.status_code == 403
    assert missing.status_code == 404
