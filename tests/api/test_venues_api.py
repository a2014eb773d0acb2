from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from event_registration_api.app.schemas.user import Role
from tests.utils.users import create_random_user, get_user_authentication_headers
from tests.utils.venue import create_random_venue


def _slot(days: int = 15, hours: int = 2) -> dict:
    start = datetime.now(timezone.utc) + timedelta(days=days)
    return {"start_time": start.isoformat(), "end_time": (start + timedelta(hours=hours)).isoformat()}


def test_admin_manages_venues(client: TestClient, admin) -> None:
    headers = get_user_authentication_headers(admin)

    created = client.post(
        "/api/v1/venues",
        headers=headers,
        json={"name": "Town Hall", "capacity": 200, "unavailable_dates": ["2030-12-25"]},
    )
    assert created.status_code == 201
    venue = created.json()
    assert venue["is_active"] is True
    assert venue["unavailable_dates"] == ["2030-12-25"]

    updated = client.put(f"/api/v1/venues/{venue['id']}", headers=headers, json={"capacity": 250})
    assert updated.json()["capacity"] == 250

    assert client.delete(f"/api/v1/venues/{venue['id']}", headers=headers).status_code == 204
    assert client.get(f"/api/v1/venues/{venue['id']}", headers=headers).status_code == 404


def test_organizers_cannot_manage_venues(client: TestClient) -> None:
    headers = get_user_authentication_headers(create_random_user(Role.ORGANIZER))

    assert client.post("/api/v1/venues", headers=headers, json={"name": "Garage"}).status_code == 403
    assert client.get("/api/v1/venues", headers=headers).status_code == 403
    assert client.get("/api/v1/venues/active", headers=headers).status_code == 200


def test_double_booking_is_rejected(client: TestClient, admin) -> None:
    venue = create_random_venue(admin)
    organizer = create_random_user(Role.ORGANIZER)
    headers = get_user_authentication_headers(organizer)
    payload = {"title": "Launch party", "venue_id": venue.id, **_slot()}

    first = client.post("/api/v1/events/", headers=headers, json=payload)
    second = client.post("/api/v1/events/", headers=headers, json=payload)

    assert first.status_code == 201
    assert first.json()["venue_name"] == venue.name
    assert second.status_code == 409
    assert second.json()["error"] == "conflict"

    availability = client.get(f"/api/v1/venues/{venue.id}/availability", headers=headers, params=_slot())
    assert availability.json()["available"] is False
    assert availability.json()["conflicting_event_ids"] == [first.json()["id"]]

    conflicts = client.get(
        f"/api/v1/venues/{venue.id}/conflicts", headers=get_user_authentication_headers(admin)
    )
    assert conflicts.status_code == 200
    assert conflicts.json() == []

    refused = client.delete(f"/api/v1/venues/{venue.id}", headers=get_user_authentication_headers(admin))
    assert refused.status_code == 409
