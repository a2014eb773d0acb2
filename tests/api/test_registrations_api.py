from fastapi.testclient import TestClient

from event_registration_api.app.schemas.event import EventType
from event_registration_api.app.schemas.user import Role
from tests.utils.event import create_random_event, get_attendee_count
from tests.utils.users import create_random_user, get_user_authentication_headers


def test_create_registration(client: TestClient) -> None:
    organizer = create_random_user(Role.ORGANIZER)
    visitor = create_random_user()
    event = create_random_event(organizer, max_attendees=10)

    response = client.post(
        "/api/v1/registrations/",
        headers=get_user_authentication_headers(visitor),
        json={"eventId": event.id, "phone": "+15550100", "notes": "Aisle seat"},
    )

    assert response.status_code == 200
    content = response.json()
    assert content["event_id"] == event.id
    assert content["visitor_id"] == visitor.id
    assert content["status"] == "CONFIRMED"
    assert content["registered_at"]
    assert get_attendee_count(event.id) == 1


def test_fail_to_create_duplicate_registration(client: TestClient) -> None:
    organizer = create_random_user(Role.ORGANIZER)
    visitor = create_random_user()
    event = create_random_event(organizer)
    headers = get_user_authentication_headers(visitor)

    response1 = client.post("/api/v1/registrations/", headers=headers, json={"event_id": event.id})
    assert response1.status_code == 200

    response2 = client.post("/api/v1/registrations/", headers=headers, json={"event_id": event.id})
    assert response2.status_code == 409
    assert response2.json()["error"] == "conflict"


def test_full_event_is_a_conflict(client: TestClient) -> None:
    organizer = create_random_user(Role.ORGANIZER)
    event = create_random_event(organizer, max_attendees=1)
    first = create_random_user()
    second = create_random_user()

    client.post("/api/v1/registrations/", headers=get_user_authentication_headers(first), json={"eventId": event.id})
    response = client.post(
        "/api/v1/registrations/", headers=get_user_authentication_headers(second), json={"eventId": event.id}
    )

    assert response.status_code == 409
    assert "maximum attendees" in response.json()["detail"]


def test_private_event_codes(client: TestClient) -> None:
    organizer = create_random_user(Role.ORGANIZER)
    visitor = create_random_user()
    event = create_random_event(organizer, event_type=EventType.PRIVATE, private_code="abc123")
    headers = get_user_authentication_headers(visitor)

    missing = client.post("/api/v1/registrations/", headers=headers, json={"eventId": event.id})
    wrong = client.post(
        "/api/v1/registrations/", headers=headers, json={"eventId": event.id, "privateCode": "ABC123"}
    )
    right = client.post(
        "/api/v1/registrations/", headers=headers, json={"eventId": event.id, "privateCode": "abc123"}
    )

    assert missing.status_code == 400
    assert wrong.status_code == 403
    assert right.status_code == 200


def test_visitor_cannot_register_someone_else(client: TestClient) -> None:
    organizer = create_random_user(Role.ORGANIZER)
    visitor = create_random_user()
    other = create_random_user()
    event = create_random_event(organizer)

    response = client.post(
        "/api/v1/registrations/",
        headers=get_user_authentication_headers(visitor),
        json={"eventId": event.id, "visitorId": other.id},
    )

    assert response.status_code == 403


def test_admin_registers_a_visitor(client: TestClient, admin) -> None:
    organizer = create_random_user(Role.ORGANIZER)
    visitor = create_random_user()
    event = create_random_event(organizer)

    response = client.post(
        "/api/v1/registrations/",
        headers=get_user_authentication_headers(admin),
        json={"eventId": event.id, "visitorId": visitor.id},
    )

    assert response.status_code == 200
    assert response.json()["visitor_id"] == visitor.id


def test_registration_without_trailing_slash_is_not_redirected(client: TestClient) -> None:
    organizer = create_random_user(Role.ORGANIZER)
    visitor = create_random_user()
    event = create_random_event(organizer)

    response = client.post(
        "/api/v1/registrations",
        headers=get_user_authentication_headers(visitor),
        json={"eventId": event.id},
        follow_redirects=False,
    )

    assert response.status_code == 200
    assert response.json()["visitor_id"] == visitor.id


def test_organizer_cannot_register(client: TestClient) -> None:
    organizer = create_random_user(Role.ORGANIZER)
    other_organizer = create_random_user(Role.ORGANIZER)
    event = create_random_event(organizer)
    headers = get_user_authentication_headers(other_organizer)

    via_registrations = client.post("/api/v1/registrations", headers=headers, json={"eventId": event.id})
    via_event = client.post(f"/api/v1/events/{event.id}/register", headers=headers, json={})

    assert via_registrations.status_code == 403
    assert via_event.status_code == 403
    assert get_attendee_count(event.id) == 0


def test_admin_cannot_register_an_organizer(client: TestClient, admin) -> None:
    organizer = create_random_user(Role.ORGANIZER)
    event = create_random_event(organizer)

    response = client.post(
        "/api/v1/registrations",
        headers=get_user_authentication_headers(admin),
        json={"eventId": event.id, "visitorId": organizer.id},
    )

    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"
    assert get_attendee_count(event.id) == 0


def test_cancel_registration(client: TestClient) -> None:
    organizer = create_random_user(Role.ORGANIZER)
    visitor = create_random_user()
    event = create_random_event(organizer)
    headers = get_user_authentication_headers(visitor)
    registration = client.post("/api/v1/registrations/", headers=headers, json={"eventId": event.id}).json()

    response = client.put(f"/api/v1/registrations/cancel/{registration['id']}", headers=headers)

    assert response.status_code == 200
    assert response.content == b""
    assert get_attendee_count(event.id) == 0

    again = client.put(f"/api/v1/registrations/cancel/{registration['id']}", headers=headers)
    assert again.status_code == 409
    assert get_attendee_count(event.id) == 0


def test_cancel_unknown_registration(client: TestClient) -> None:
    visitor = create_random_user()

    response = client.put("/api/v1/registrations/cancel/424242", headers=get_user_authentication_headers(visitor))

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_register_via_event_path_and_read_ticket(client: TestClient) -> None:
    organizer = create_random_user(Role.ORGANIZER)
    visitor = create_random_user()
    event = create_random_event(organizer)
    headers = get_user_authentication_headers(visitor)

    registration = client.post(f"/api/v1/events/{event.id}/register", headers=headers, json={}).json()
    ticket = client.get(f"/api/v1/registrations/{registration['id']}/ticket", headers=headers)

    assert ticket.status_code == 200
    code = ticket.json()["ticket_code"]
    assert code.startswith(f"TKT-{event.id}-{registration['id']}-")

    check_in = client.post(
        f"/api/v1/tickets/{code}/check-in", headers=get_user_authentication_headers(organizer)
    )
    assert check_in.status_code == 200
    assert check_in.json()["is_checked_in"] is True


def test_registration_listings(client: TestClient, admin) -> None:
    organizer = create_random_user(Role.ORGANIZER)
    visitor = create_random_user()
    stranger = create_random_user()
    event = create_random_event(organizer)
    headers = get_user_authentication_headers(visitor)
    client.post("/api/v1/registrations/", headers=headers, json={"eventId": event.id})

    mine = client.get("/api/v1/registrations/me", headers=headers)
    by_event = client.get(
        f"/api/v1/registrations/event/{event.id}", headers=get_user_authentication_headers(organizer)
    )
    nested = client.get(
        f"/api/v1/events/{event.id}/registrations", headers=get_user_authentication_headers(organizer)
    )
    everything = client.get("/api/v1/registrations/", headers=get_user_authentication_headers(admin))
    snooping = client.get(
        f"/api/v1/registrations/visitor/{visitor.id}", headers=get_user_authentication_headers(stranger)
    )

    assert [r["event_id"] for r in mine.json()] == [event.id]
    assert [r["visitor_id"] for r in by_event.json()] == [visitor.id]
    assert [r["visitor_id"] for r in nested.json()] == [visitor.id]
    assert len(everything.json()) == 1
    assert snooping.status_code == 403


def test_audit_log_records_registration(client: TestClient, admin) -> None:
    organizer = create_random_user(Role.ORGANIZER)
    visitor = create_random_user()
    event = create_random_event(organizer)
    client.post(
        "/api/v1/registrations/", headers=get_user_authentication_headers(visitor), json={"eventId": event.id}
    )

    response = client.get(
        "/api/v1/audit/logs",
        headers=get_user_authentication_headers(admin),
        params={"object_type": "registration", "action": "register"},
    )

    assert response.status_code == 200
    logs = response.json()
    assert len(logs) == 1
    assert logs[0]["user_id"] == visitor.id
    assert logs[0]["details"]["event_id"] == event.id
    assert client.get("/api/v1/audit/logs", headers=get_user_authentication_headers(visitor)).status_code == 403


def test_download_ticket_pdf(client: TestClient) -> None:
    organizer = create_random_user(Role.ORGANIZER)
    visitor = create_random_user()
    event = create_random_event(organizer)
    headers = get_user_authentication_headers(visitor)
    registration = client.post("/api/v1/registrations", headers=headers, json={"eventId": event.id}).json()

    response = client.get(f"/api/v1/registrations/{registration['id']}/ticket/download", headers=headers)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")
    ticket_code = client.get(f"/api/v1/registrations/{registration['id']}/ticket", headers=headers).json()[
        "ticket_code"
    ]
    assert f'filename="ticket-{ticket_code}.pdf"' in response.headers["content-disposition"]


def test_only_the_visitor_downloads_an_active_ticket(client: TestClient) -> None:
    organizer = create_random_user(Role.ORGANIZER)
    visitor = create_random_user()
    stranger = create_random_user()
    event = create_random_event(organizer)
    headers = get_user_authentication_headers(visitor)
    registration = client.post("/api/v1/registrations", headers=headers, json={"eventId": event.id}).json()
    url = f"/api/v1/registrations/{registration['id']}/ticket/download"

    assert client.get(url, headers=get_user_authentication_headers(stranger)).status_code == 403
    assert client.get(url, headers=get_user_authentication_headers(organizer)).status_code == 403

    client.put(f"/api/v1/registrations/cancel/{registration['id']}", headers=headers)
    cancelled = client.get(url, headers=headers)
    assert cancelled.status_code == 400
    assert cancelled.json()["error"] == "validation_error"
