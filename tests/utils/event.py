import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

from event_registration_api.app.core.db import get_connection
from event_registration_api.app.schemas.event import EventCreate, EventRead, EventType
from event_registration_api.app.schemas.user import UserRead
from event_registration_api.app.services.event_service import EventService
from tests.utils.users import identity_for


def create_random_event(
    organizer: UserRead,
    max_attendees: Optional[int] = None,
    event_type: EventType = EventType.PUBLIC,
    private_code: Optional[str] = None,
    **overrides,
) -> EventRead:
    """
    Creates an event ten days from now for testing purposes.
    """
    start_time = datetime.now(timezone.utc) + timedelta(days=10)
    end_time = start_time + timedelta(hours=3)
    fields = {
        "title": "Test Event",
        "start_time": start_time,
        "end_time": end_time,
        "address": "1 Main Street",
        "city": "Springfield",
        "state": "IL",
        "category": "Technology",
    }
    fields.update(overrides)
    event_in = EventCreate(
        max_attendees=max_attendees,
        event_type=event_type,
        private_code=private_code,
        **fields,
    )
    return asyncio.run(EventService.create_event(event_in, identity_for(organizer)))


def get_attendee_count(event_id: int) -> int:
    conn = get_connection()
    try:
        row = conn.execute("SELECT current_attendees FROM events WHERE id = ?", (event_id,)).fetchone()
    finally:
        conn.close()
    return row["current_attendees"]


def count_rows(table: str, where: str = "1 = 1", params: tuple = ()) -> int:
    conn = get_connection()
    try:
        row = conn.execute(f"SELECT COUNT(*) AS total FROM {table} WHERE {where}", params).fetchone()
    finally:
        conn.close()
    return row["total"]


def future_iso(days: int = 10, hours: int = 0) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days, hours=hours)).isoformat()
