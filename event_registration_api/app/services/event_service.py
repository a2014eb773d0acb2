"""
Business logic for events.

``EventService`` owns the event lifecycle: organizers create events,
the owning organizer (or an administrator) updates and deletes them.
Date and private-code rules are checked here so that every caller gets
the same domain errors.  Deleting an event removes its registrations
and tickets in the same transaction.  Events booked into a venue are
checked against the venue in the transaction that writes them.
"""

import logging
import sqlite3
from datetime import datetime
from typing import Any, Dict, List, Optional

from event_registration_api.app.core.db import get_connection, to_db_time, transaction, utcnow
from event_registration_api.app.core.errors import (
    ForbiddenError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from event_registration_api.app.core.security import Identity
from event_registration_api.app.schemas.event import EventCreate, EventRead, EventType, EventUpdate
from event_registration_api.app.schemas.user import Role
from event_registration_api.app.services.audit_service import AuditService
from event_registration_api.app.services.venue_service import check_booking


logger = logging.getLogger(__name__)

EVENT_SELECT = """
    SELECT e.*, u.name AS organizer_name, v.name AS venue_name
    FROM events e
    LEFT JOIN users u ON u.id = e.organizer_id
    LEFT JOIN venues v ON v.id = e.venue_id
"""

# Columns that may not be cleared by sending ``null`` in an update.
NON_NULLABLE_FIELDS = {"title", "start_time", "end_time", "event_type", "is_active"}


def format_location(address: Optional[str], city: Optional[str], state: Optional[str]) -> str:
    """Join the non-empty location parts as ``address, city, state``."""
    return ", ".join(part.strip() for part in (address, city, state) if part and part.strip())


def can_manage(event_organizer_id: int, actor: Optional[Identity]) -> bool:
    """True if ``actor`` owns the event or is an administrator."""
    if actor is None:
        return False
    return actor.is_admin or actor.user_id == event_organizer_id


def row_to_event(row: sqlite3.Row, viewer: Optional[Identity] = None) -> EventRead:
    max_attendees = row["max_attendees"]
    current = row["current_attendees"] or 0
    return EventRead(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        start_time=row["start_time"],
        end_time=row["end_time"],
        address=row["address"],
        city=row["city"],
        state=row["state"],
        category=row["category"],
        image_url=row["image_url"],
        max_attendees=max_attendees,
        event_type=EventType(row["event_type"]),
        private_code=row["private_code"] if can_manage(row["organizer_id"], viewer) else None,
        organizer_id=row["organizer_id"],
        organizer_name=row["organizer_name"],
        venue_id=row["venue_id"],
        venue_name=row["venue_name"],
        current_attendees=current,
        available_spots=None if max_attendees is None else max(0, max_attendees - current),
        is_active=bool(row["is_active"]),
        location=format_location(row["address"], row["city"], row["state"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _validate_schedule(start_time: datetime, end_time: datetime) -> None:
    start = to_db_time(start_time)
    if start <= utcnow():
        raise ValidationError("Event date cannot be in the past")
    if to_db_time(end_time) <= start:
        raise ValidationError("End date/time must be after start date/time")


def _normalise_private_code(event_type: EventType, private_code: Optional[str]) -> Optional[str]:
    if event_type != EventType.PRIVATE:
        return None
    if private_code is None or not private_code.strip():
        raise ValidationError("Private code is required for private events")
    return private_code.strip()


class EventService:
    """Service for managing events."""

    @classmethod
    async def _fetch_row(cls, conn: sqlite3.Connection, event_id: int) -> sqlite3.Row:
        row = conn.execute(EVENT_SELECT + " WHERE e.id = ?", (event_id,)).fetchone()
        if not row:
            raise NotFoundError(f"Event {event_id} not found")
        return row

    @classmethod
    async def create_event(cls, data: EventCreate, actor: Identity) -> EventRead:
        """Create a new event owned by ``actor`` and return it.

        Only organizers may create events.  The start must lie in the
        future, the end after the start, and private events need a
        non-blank access code.  An event booked into a venue must pass
        the venue's booking check.
        """
        if actor.role != Role.ORGANIZER:
            raise ForbiddenError("Only organizers can create events")
        _validate_schedule(data.start_time, data.end_time)
        private_code = _normalise_private_code(data.event_type, data.private_code)
        now = utcnow()
        with transaction() as conn:
            if data.venue_id is not None:
                check_booking(conn, data.venue_id, data.start_time, data.end_time, data.max_attendees)
            cursor = conn.execute(
                """
                INSERT INTO events (
                    title, description, start_time, end_time, address, city, state,
                    category, image_url, organizer_id, max_attendees, current_attendees,
                    is_active, event_type, private_code, venue_id, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, 1, ?, ?, ?, ?, ?)
                """,
                (
                    data.title.strip(),
                    data.description,
                    to_db_time(data.start_time),
                    to_db_time(data.end_time),
                    data.address,
                    data.city,
                    data.state,
                    data.category,
                    data.image_url,
                    actor.user_id,
                    data.max_attendees,
                    data.event_type.value,
                    private_code,
                    data.venue_id,
                    now,
                    now,
                ),
            )
            event_id = cursor.lastrowid
            row = await cls._fetch_row(conn, event_id)
        logger.info("Organizer %s created event %s '%s'", actor.user_id, event_id, data.title)
        await AuditService.log(
            user_id=actor.user_id,
            action="create",
            object_type="event",
            object_id=event_id,
            details={"title": data.title, "event_type": data.event_type.value},
        )
        return row_to_event(row, actor)

    @classmethod
    async def update_event(cls, event_id: int, updates: EventUpdate, actor: Identity) -> EventRead:
        """Apply a partial update to an event.

        The owning organizer or an administrator may update.  When the
        schedule changes it is re-validated against the current time.
        Capacity cannot drop below the number of active registrations.
        """
        changes: Dict[str, Any] = updates.model_dump(exclude_unset=True)
        for field in NON_NULLABLE_FIELDS:
            if field in changes and changes[field] is None:
                del changes[field]

        with transaction() as conn:
            row = await cls._fetch_row(conn, event_id)
            if not can_manage(row["organizer_id"], actor):
                raise ForbiddenError("You can only update your own events")

            if "start_time" in changes or "end_time" in changes:
                start = changes.get("start_time") or datetime.fromisoformat(row["start_time"])
                end = changes.get("end_time") or datetime.fromisoformat(row["end_time"])
                _validate_schedule(start, end)
                changes["start_time"] = to_db_time(start)
                changes["end_time"] = to_db_time(end)

            if "event_type" in changes or "private_code" in changes:
                event_type = changes.get("event_type") or EventType(row["event_type"])
                code = changes["private_code"] if "private_code" in changes else row["private_code"]
                changes["event_type"] = event_type.value
                changes["private_code"] = _normalise_private_code(event_type, code)

            if "max_attendees" in changes and changes["max_attendees"] is not None:
                if changes["max_attendees"] < row["current_attendees"]:
                    raise ValidationError(
                        f"Capacity cannot be lower than the {row['current_attendees']} current attendees"
                    )

            venue_id = changes["venue_id"] if "venue_id" in changes else row["venue_id"]
            if venue_id is not None and changes.keys() & {"venue_id", "start_time", "end_time", "max_attendees"}:
                check_booking(
                    conn,
                    venue_id,
                    datetime.fromisoformat(changes.get("start_time") or row["start_time"]),
                    datetime.fromisoformat(changes.get("end_time") or row["end_time"]),
                    changes["max_attendees"] if "max_attendees" in changes else row["max_attendees"],
                    exclude_event_id=event_id,
                )

            if "title" in changes:
                changes["title"] = changes["title"].strip()
            if "is_active" in changes:
                changes["is_active"] = 1 if changes["is_active"] else 0

            if changes:
                fields = [f"{key} = ?" for key in changes]
                values = list(changes.values()) + [utcnow(), event_id]
                conn.execute(
                    f"UPDATE events SET {', '.join(fields)}, updated_at = ? WHERE id = ?",
                    tuple(values),
                )
            row = await cls._fetch_row(conn, event_id)

        logger.info("Event %s updated by user %s", event_id, actor.user_id)
        await AuditService.log(
            user_id=actor.user_id,
            action="update",
            object_type="event",
            object_id=event_id,
            details={"fields": sorted(k for k in changes if k != "private_code")},
        )
        return row_to_event(row, actor)

    @classmethod
    async def delete_event(cls, event_id: int, actor: Identity) -> None:
        """Delete an event together with its registrations, tickets and feedback.

        The owning organizer or an administrator may delete.  Database
        failures are reported as ``InternalError``.
        """
        try:
            with transaction() as conn:
                row = await cls._fetch_row(conn, event_id)
                if not can_manage(row["organizer_id"], actor):
                    raise ForbiddenError("You can only delete your own events")
                count = conn.execute(
                    "SELECT COUNT(*) AS total FROM registrations WHERE event_id = ?", (event_id,)
                ).fetchone()["total"]
                conn.execute(
                    "DELETE FROM tickets WHERE registration_id IN (SELECT id FROM registrations WHERE event_id = ?)",
                    (event_id,),
                )
                conn.execute("DELETE FROM registrations WHERE event_id = ?", (event_id,))
                conn.execute("DELETE FROM feedback WHERE event_id = ?", (event_id,))
                conn.execute("DELETE FROM events WHERE id = ?", (event_id,))
        except sqlite3.Error as exc:
            logger.error("Deleting event %s failed: %s", event_id, exc)
            raise InternalError(
                "Cannot delete event due to database constraint. Please contact support."
            ) from exc
        logger.info("Event %s deleted by user %s with %s registrations", event_id, actor.user_id, count)
        await AuditService.log(
            user_id=actor.user_id,
            action="delete",
            object_type="event",
            object_id=event_id,
            details={"registrations_deleted": count},
        )

    @classmethod
    async def get_event(cls, event_id: int, viewer: Optional[Identity] = None) -> EventRead:
        conn = get_connection()
        try:
            row = await cls._fetch_row(conn, event_id)
        finally:
            conn.close()
        return row_to_event(row, viewer)

    @classmethod
    async def list_events(
        cls,
        viewer: Optional[Identity] = None,
        organizer_id: Optional[int] = None,
        category: Optional[str] = None,
        city: Optional[str] = None,
        event_type: Optional[EventType] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        include_inactive: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> List[EventRead]:
        """Return events ordered by start time with optional filters.

        Private events are listed only for their organizer and for
        administrators.  Inactive events are hidden unless
        ``include_inactive`` is set.
        """
        where_clauses: List[str] = []
        params: List[Any] = []
        if viewer is None:
            where_clauses.append("e.event_type = 'PUBLIC'")
        elif not viewer.is_admin:
            where_clauses.append("(e.event_type = 'PUBLIC' OR e.organizer_id = ?)")
            params.append(viewer.user_id)
        if not include_inactive:
            where_clauses.append("e.is_active = 1")
        if organizer_id is not None:
            where_clauses.append("e.organizer_id = ?")
            params.append(organizer_id)
        if category:
            where_clauses.append("LOWER(e.category) = LOWER(?)")
            params.append(category)
        if city:
            where_clauses.append("LOWER(e.city) = LOWER(?)")
            params.append(city)
        if event_type is not None:
            where_clauses.append("e.event_type = ?")
            params.append(event_type.value)
        if date_from:
            where_clauses.append("e.start_time >= ?")
            params.append(to_db_time(date_from))
        if date_to:
            where_clauses.append("e.start_time <= ?")
            params.append(to_db_time(date_to))
        query = EVENT_SELECT
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        query += " ORDER BY e.start_time ASC, e.id ASC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [row_to_event(row, viewer) for row in rows]

    @classmethod
    async def list_organizer_events(
        cls, organizer: Identity, when: Optional[str] = None
    ) -> List[EventRead]:
        """Events owned by ``organizer``, newest first.

        ``when`` may be ``"upcoming"`` or ``"past"`` to split on the
        current time; anything else returns all events.
        """
        query = EVENT_SELECT + " WHERE e.organizer_id = ?"
        params: List[Any] = [organizer.user_id]
        if when == "upcoming":
            query += " AND e.start_time >= ?"
            params.append(utcnow())
        elif when == "past":
            query += " AND e.start_time < ?"
            params.append(utcnow())
        query += " ORDER BY e.start_time DESC, e.id DESC"
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [row_to_event(row, organizer) for row in rows]
