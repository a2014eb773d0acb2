"""
Business logic for venues.

Administrators maintain the venue list.  Events booked into a venue
are checked by ``check_booking`` inside the event's own transaction:
the venue must exist and be active, must not be blocked on any day the
event spans, must fit the event's capacity and must not already host
another active event at an overlapping time.  Schedules overlap when
one starts before the other ends; back-to-back events are fine.
"""

import json
import logging
import sqlite3
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from event_registration_api.app.core.db import get_connection, to_db_time, transaction, utcnow
from event_registration_api.app.core.errors import ConflictError, NotFoundError, ValidationError
from event_registration_api.app.core.security import Identity
from event_registration_api.app.schemas.venue import (
    VenueAvailability,
    VenueConflict,
    VenueCreate,
    VenueRead,
    VenueUpdate,
)
from event_registration_api.app.services.audit_service import AuditService


logger = logging.getLogger(__name__)

VENUE_SELECT = """
    SELECT v.*, (SELECT COUNT(*) FROM events e WHERE e.venue_id = v.id) AS total_events
    FROM venues v
"""


def _load_dates(raw: Optional[str]) -> List[date]:
    if not raw:
        return []
    return [date.fromisoformat(value) for value in json.loads(raw)]


def _dump_dates(values: Optional[List[date]]) -> Optional[str]:
    if not values:
        return None
    return json.dumps(sorted({value.isoformat() for value in values}))


def _row_to_venue(row: sqlite3.Row) -> VenueRead:
    return VenueRead(
        id=row["id"],
        name=row["name"],
        address=row["address"],
        city=row["city"],
        state=row["state"],
        capacity=row["capacity"],
        map_data=row["map_data"],
        image_url=row["image_url"],
        unavailable_dates=_load_dates(row["unavailable_dates"]),
        is_active=bool(row["is_active"]),
        total_events=row["total_events"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _days_spanned(start: str, end: str) -> List[date]:
    first = datetime.fromisoformat(start).date()
    last = datetime.fromisoformat(end).date()
    return [first + timedelta(days=offset) for offset in range((last - first).days + 1)]


def _overlapping_events(
    conn: sqlite3.Connection,
    venue_id: int,
    start: str,
    end: str,
    exclude_event_id: Optional[int] = None,
) -> List[sqlite3.Row]:
    return conn.execute(
        """
        SELECT id, title FROM events
        WHERE venue_id = ? AND is_active = 1 AND id <> ?
          AND start_time < ? AND end_time > ?
        ORDER BY start_time, id
        """,
        (venue_id, exclude_event_id or -1, end, start),
    ).fetchall()


def check_booking(
    conn: sqlite3.Connection,
    venue_id: int,
    start_time: datetime,
    end_time: datetime,
    max_attendees: Optional[int] = None,
    exclude_event_id: Optional[int] = None,
) -> None:
    """Raise unless an event can be booked into ``venue_id``.

    Runs on the caller's connection so the overlap check and the event
    write share one transaction.
    """
    venue = conn.execute("SELECT * FROM venues WHERE id = ?", (venue_id,)).fetchone()
    if not venue:
        raise NotFoundError(f"Venue {venue_id} not found")
    if not venue["is_active"]:
        raise ValidationError("Venue is not active")
    start, end = to_db_time(start_time), to_db_time(end_time)
    blocked = set(_load_dates(venue["unavailable_dates"]))
    for day in _days_spanned(start, end):
        if day in blocked:
            raise ValidationError(f"Venue is unavailable on {day.isoformat()}")
    if venue["capacity"] is not None and max_attendees is not None and max_attendees > venue["capacity"]:
        raise ValidationError(f"Event capacity exceeds venue capacity of {venue['capacity']}")
    clashes = _overlapping_events(conn, venue_id, start, end, exclude_event_id)
    if clashes:
        raise ConflictError(
            f"Venue is already booked for event {clashes[0]['id']} '{clashes[0]['title']}' at that time"
        )


class VenueService:
    """Service for managing venues and their bookings."""

    @classmethod
    def _fetch_row(cls, conn: sqlite3.Connection, venue_id: int) -> sqlite3.Row:
        row = conn.execute(VENUE_SELECT + " WHERE v.id = ?", (venue_id,)).fetchone()
        if not row:
            raise NotFoundError(f"Venue {venue_id} not found")
        return row

    @classmethod
    async def create_venue(cls, data: VenueCreate, actor: Identity) -> VenueRead:
        now = utcnow()
        conn = get_connection()
        try:
            cursor = conn.execute(
                """
                INSERT INTO venues (
                    name, address, city, state, capacity, map_data, image_url,
                    unavailable_dates, is_active, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?)
                """,
                (
                    data.name.strip(),
                    data.address,
                    data.city,
                    data.state,
                    data.capacity,
                    data.map_data,
                    data.image_url,
                    _dump_dates(data.unavailable_dates),
                    now,
                    now,
                ),
            )
            venue_id = cursor.lastrowid
            conn.commit()
            row = cls._fetch_row(conn, venue_id)
        finally:
            conn.close()
        logger.info("Venue %s '%s' created by user %s", venue_id, data.name, actor.user_id)
        await AuditService.log(
            user_id=actor.user_id, action="create", object_type="venue", object_id=venue_id,
            details={"name": data.name},
        )
        return _row_to_venue(row)

    @classmethod
    async def update_venue(cls, venue_id: int, updates: VenueUpdate, actor: Identity) -> VenueRead:
        """Apply a partial update.  ``name`` and ``is_active`` cannot be cleared."""
        changes: Dict[str, Any] = updates.model_dump(exclude_unset=True)
        for field in ("name", "is_active"):
            if field in changes and changes[field] is None:
                del changes[field]
        if "name" in changes:
            changes["name"] = changes["name"].strip()
        if "is_active" in changes:
            changes["is_active"] = 1 if changes["is_active"] else 0
        if "unavailable_dates" in changes:
            changes["unavailable_dates"] = _dump_dates(changes["unavailable_dates"])

        with transaction() as conn:
            cls._fetch_row(conn, venue_id)
            if changes:
                fields = [f"{key} = ?" for key in changes]
                values = list(changes.values()) + [utcnow(), venue_id]
                conn.execute(
                    f"UPDATE venues SET {', '.join(fields)}, updated_at = ? WHERE id = ?",
                    tuple(values),
                )
            row = cls._fetch_row(conn, venue_id)
        logger.info("Venue %s updated by user %s", venue_id, actor.user_id)
        await AuditService.log(
            user_id=actor.user_id, action="update", object_type="venue", object_id=venue_id,
            details={"fields": sorted(changes)},
        )
        return _row_to_venue(row)

    @classmethod
    async def delete_venue(cls, venue_id: int, actor: Identity) -> None:
        """Delete a venue.  Venues still referenced by events are kept."""
        with transaction() as conn:
            row = cls._fetch_row(conn, venue_id)
            if row["total_events"]:
                raise ConflictError(
                    f"Cannot delete venue with {row['total_events']} associated events. "
                    "Please reassign or delete events first."
                )
            conn.execute("DELETE FROM venues WHERE id = ?", (venue_id,))
        logger.info("Venue %s deleted by user %s", venue_id, actor.user_id)
        await AuditService.log(user_id=actor.user_id, action="delete", object_type="venue", object_id=venue_id)

    @classmethod
    async def get_venue(cls, venue_id: int) -> VenueRead:
        conn = get_connection()
        try:
            row = cls._fetch_row(conn, venue_id)
        finally:
            conn.close()
        return _row_to_venue(row)

    @classmethod
    async def list_venues(cls, active_only: bool = False) -> List[VenueRead]:
        query = VENUE_SELECT
        if active_only:
            query += " WHERE v.is_active = 1"
        query += " ORDER BY v.name COLLATE NOCASE, v.id"
        conn = get_connection()
        try:
            rows = conn.execute(query).fetchall()
        finally:
            conn.close()
        return [_row_to_venue(row) for row in rows]

    @classmethod
    async def check_availability(
        cls,
        venue_id: int,
        start_time: datetime,
        end_time: datetime,
        exclude_event_id: Optional[int] = None,
    ) -> VenueAvailability:
        """Report whether the venue is free for the given time window.

        Blocked dates and inactive venues count as unavailable.
        """
        if to_db_time(end_time) <= to_db_time(start_time):
            raise ValidationError("End date/time must be after start date/time")
        start, end = to_db_time(start_time), to_db_time(end_time)
        conn = get_connection()
        try:
            row = cls._fetch_row(conn, venue_id)
            clashes = _overlapping_events(conn, venue_id, start, end, exclude_event_id)
        finally:
            conn.close()
        blocked = set(_load_dates(row["unavailable_dates"]))
        free = (
            bool(row["is_active"])
            and not clashes
            and not any(day in blocked for day in _days_spanned(start, end))
        )
        return VenueAvailability(
            venue_id=venue_id,
            available=free,
            conflicting_event_ids=[clash["id"] for clash in clashes],
        )

    @classmethod
    async def list_conflicts(cls, venue_id: int) -> List[VenueConflict]:
        """Pairs of active events at the venue whose schedules overlap."""
        conn = get_connection()
        try:
            venue = cls._fetch_row(conn, venue_id)
            rows = conn.execute(
                """
                SELECT a.id AS id_1, a.title AS title_1, a.start_time AS start_1, a.end_time AS end_1,
                       b.id AS id_2, b.title AS title_2, b.start_time AS start_2, b.end_time AS end_2
                FROM events a
                JOIN events b ON b.venue_id = a.venue_id AND a.id < b.id
                WHERE a.venue_id = ? AND a.is_active = 1 AND b.is_active = 1
                  AND a.start_time < b.end_time AND b.start_time < a.end_time
                ORDER BY a.start_time, a.id, b.id
                """,
                (venue_id,),
            ).fetchall()
        finally:
            conn.close()
        return [
            VenueConflict(
                venue_id=venue_id,
                venue_name=venue["name"],
                event_id_1=row["id_1"],
                event_title_1=row["title_1"],
                start_time_1=row["start_1"],
                end_time_1=row["end_1"],
                event_id_2=row["id_2"],
                event_title_2=row["title_2"],
                start_time_2=row["start_2"],
                end_time_2=row["end_2"],
            )
            for row in rows
        ]
