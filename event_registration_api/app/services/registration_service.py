"""
Registration workflow.

``RegistrationService`` registers visitors for events and cancels
registrations while keeping ``events.current_attendees`` equal to the
number of active registrations of each event.

Registering runs every check and both writes inside one ``BEGIN
IMMEDIATE`` transaction.  The attendee counter is bumped with a
conditional ``UPDATE`` that only matches while a seat is free, so two
concurrent requests can never both take the last seat.  The partial
unique index ``uq_registrations_active`` backs the one active
registration per visitor and event rule.

A ticket is issued after the registration has been committed.  Ticket
problems are logged and never fail the registration.
"""

import logging
import sqlite3
from typing import Any, List, Optional

from event_registration_api.app.core.config import settings
from event_registration_api.app.core.db import get_connection, transaction, utcnow
from event_registration_api.app.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from event_registration_api.app.core.security import Identity
from event_registration_api.app.schemas.registration import RegistrationRead, RegistrationStatus
from event_registration_api.app.schemas.user import Role
from event_registration_api.app.services.audit_service import AuditService
from event_registration_api.app.services.ticket_service import TicketService


logger = logging.getLogger(__name__)

REGISTRATION_SELECT = """
    SELECT r.*, e.title AS event_title, e.organizer_id,
           u.name AS visitor_name, u.email AS visitor_email
    FROM registrations r
    JOIN events e ON e.id = r.event_id
    JOIN users u ON u.id = r.visitor_id
"""


def _row_to_registration(row: sqlite3.Row) -> RegistrationRead:
    return RegistrationRead(
        id=row["id"],
        event_id=row["event_id"],
        event_title=row["event_title"],
        visitor_id=row["visitor_id"],
        visitor_name=row["visitor_name"],
        visitor_email=row["visitor_email"],
        status=RegistrationStatus(row["status"]),
        registered_at=row["registered_at"],
        phone=row["phone"],
        notes=row["notes"],
        updated_at=row["updated_at"],
    )


def _check_private_code(stored_code: Optional[str], supplied_code: Optional[str]) -> None:
    if supplied_code is None or not supplied_code.strip():
        raise ValidationError("Private code is required for this event")
    if supplied_code.strip() != stored_code:
        raise ForbiddenError("Invalid private code")


class RegistrationService:
    """Service for registering visitors and cancelling registrations."""

    @classmethod
    async def register_for_event(
        cls,
        visitor_id: int,
        event_id: int,
        private_code: Optional[str] = None,
        phone: Optional[str] = None,
        notes: Optional[str] = None,
        actor: Optional[Identity] = None,
    ) -> RegistrationRead:
        """Register a visitor for an event.

        Checks run in a fixed order and the first failure wins: visitor
        exists and is an active ``VISITOR`` account, event exists, event
        is active, private code matches, no active registration yet, a
        seat is free.

        Parameters
        ----------
        visitor_id : int
            User being registered.
        event_id : int
            Target event.
        private_code : Optional[str]
            Access code, required for private events.  Compared after
            trimming, case-sensitively.
        phone, notes : Optional[str]
            Contact details stored with the registration.
        actor : Optional[Identity]
            Caller.  Non-administrators may only register themselves.
        """
        if actor is not None and not actor.is_admin and actor.user_id != visitor_id:
            raise ForbiddenError("You can only register yourself for events")

        now = utcnow()
        with transaction() as conn:
            visitor = conn.execute(
                "SELECT id, role, is_active FROM users WHERE id = ?", (visitor_id,)
            ).fetchone()
            if not visitor:
                raise NotFoundError(f"Visitor {visitor_id} not found")
            if visitor["role"] != Role.VISITOR.value:
                raise ForbiddenError("Only visitors can register for events")
            if not visitor["is_active"]:
                raise ForbiddenError("Visitor account is deactivated")
            event = conn.execute(
                """
                SELECT id, is_active, event_type, private_code, max_attendees, current_attendees
                FROM events WHERE id = ?
                """,
                (event_id,),
            ).fetchone()
            if not event:
                raise NotFoundError(f"Event {event_id} not found")
            if not event["is_active"]:
                raise ConflictError("Event is no longer active")
            if event["event_type"] == "PRIVATE":
                _check_private_code(event["private_code"], private_code)
            existing = conn.execute(
                "SELECT id FROM registrations WHERE event_id = ? AND visitor_id = ? AND status <> 'CANCELLED'",
                (event_id, visitor_id),
            ).fetchone()
            if existing:
                raise ConflictError("Visitor is already registered for this event")
            max_attendees = event["max_attendees"]
            if max_attendees is not None and event["current_attendees"] >= max_attendees:
                raise ConflictError("Event has reached maximum attendees")

            try:
                cursor = conn.execute(
                    """
                    INSERT INTO registrations (event_id, visitor_id, status, registered_at, phone, notes)
                    VALUES (?, ?, 'CONFIRMED', ?, ?, ?)
                    """,
                    (event_id, visitor_id, now, phone, notes),
                )
            except sqlite3.IntegrityError as exc:
                raise ConflictError("Visitor is already registered for this event") from exc
            registration_id = cursor.lastrowid

            # Take the seat only while one is still free.
            seat = conn.execute(
                """
                UPDATE events
                SET current_attendees = current_attendees + 1, updated_at = ?
                WHERE id = ? AND (max_attendees IS NULL OR current_attendees < max_attendees)
                """,
                (now, event_id),
            )
            if seat.rowcount != 1:
                raise ConflictError("Event has reached maximum attendees")

            row = conn.execute(REGISTRATION_SELECT + " WHERE r.id = ?", (registration_id,)).fetchone()

        logger.info("Visitor %s registered for event %s (registration %s)", visitor_id, event_id, registration_id)
        await AuditService.log(
            user_id=actor.user_id if actor else visitor_id,
            action="register",
            object_type="registration",
            object_id=registration_id,
            details={"event_id": event_id, "visitor_id": visitor_id},
        )
        if settings.tickets_enabled:
            try:
                await TicketService.generate_ticket(registration_id)
            except Exception:
                logger.exception("Ticket generation failed for registration %s", registration_id)
        return _row_to_registration(row)

    @classmethod
    async def cancel_registration(cls, registration_id: int, actor: Optional[Identity] = None) -> None:
        """Cancel an active registration and release its seat.

        The counter is decremented only while it is positive.  When
        ``actor`` is given it must be the registered visitor, the
        organizer of the event or an administrator.
        """
        now = utcnow()
        with transaction() as conn:
            row = conn.execute(
                """
                SELECT r.id, r.event_id, r.visitor_id, r.status, e.organizer_id
                FROM registrations r JOIN events e ON e.id = r.event_id
                WHERE r.id = ?
                """,
                (registration_id,),
            ).fetchone()
            if not row:
                raise NotFoundError(f"Registration {registration_id} not found")
            if actor is not None and not (
                actor.is_admin or actor.user_id in (row["visitor_id"], row["organizer_id"])
            ):
                raise ForbiddenError("You cannot cancel this registration")
            if row["status"] == RegistrationStatus.CANCELLED.value:
                raise ConflictError("Registration is already cancelled")
            conn.execute(
                "UPDATE registrations SET status = 'CANCELLED', updated_at = ? WHERE id = ?",
                (now, registration_id),
            )
            conn.execute(
                """
                UPDATE events SET current_attendees = current_attendees - 1, updated_at = ?
                WHERE id = ? AND current_attendees > 0
                """,
                (now, row["event_id"]),
            )
        logger.info("Registration %s for event %s cancelled", registration_id, row["event_id"])
        await AuditService.log(
            user_id=actor.user_id if actor else row["visitor_id"],
            action="cancel",
            object_type="registration",
            object_id=registration_id,
            details={"event_id": row["event_id"], "visitor_id": row["visitor_id"]},
        )

    @classmethod
    async def get_registration(cls, registration_id: int, actor: Optional[Identity] = None) -> RegistrationRead:
        conn = get_connection()
        try:
            row = conn.execute(REGISTRATION_SELECT + " WHERE r.id = ?", (registration_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError(f"Registration {registration_id} not found")
        if actor is not None and not (
            actor.is_admin or actor.user_id in (row["visitor_id"], row["organizer_id"])
        ):
            raise ForbiddenError("You cannot view this registration")
        return _row_to_registration(row)

    @classmethod
    async def _query(
        cls,
        where: str,
        params: List[Any],
        status: Optional[RegistrationStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[RegistrationRead]:
        query = REGISTRATION_SELECT + " WHERE " + where
        if status is not None:
            query += " AND r.status = ?"
            params.append(status.value)
        query += " ORDER BY r.registered_at DESC, r.id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [_row_to_registration(row) for row in rows]

    @classmethod
    async def list_for_visitor(
        cls, visitor_id: int, status: Optional[RegistrationStatus] = None
    ) -> List[RegistrationRead]:
        """Registrations of one visitor, newest first."""
        return await cls._query("r.visitor_id = ?", [visitor_id], status, limit=-1)

    @classmethod
    async def list_for_event(
        cls,
        event_id: int,
        actor: Optional[Identity] = None,
        status: Optional[RegistrationStatus] = None,
    ) -> List[RegistrationRead]:
        """Registrations of one event.

        When ``actor`` is given it must own the event or be an
        administrator.
        """
        conn = get_connection()
        try:
            event = conn.execute("SELECT organizer_id FROM events WHERE id = ?", (event_id,)).fetchone()
        finally:
            conn.close()
        if not event:
            raise NotFoundError(f"Event {event_id} not found")
        if actor is not None and not (actor.is_admin or actor.user_id == event["organizer_id"]):
            raise ForbiddenError("Only the event organizer can view its registrations")
        return await cls._query("r.event_id = ?", [event_id], status, limit=-1)

    @classmethod
    async def list_all(
        cls, status: Optional[RegistrationStatus] = None, limit: int = 100, offset: int = 0
    ) -> List[RegistrationRead]:
        return await cls._query("1 = 1", [], status, limit=limit, offset=offset)
