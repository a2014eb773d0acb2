"""
Tickets for confirmed registrations.

A ticket is issued once per registration after the registration has
been committed.  Issuing is idempotent: asking again for the same
registration returns the existing ticket.  Organizers check visitors
in at the door with the ticket code.  Visitors download their ticket as
a one-page PDF.
"""

import io
import logging
import secrets
import sqlite3
from typing import Optional, Tuple

from reportlab.lib.pagesizes import A6, landscape
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from event_registration_api.app.core.db import get_connection, transaction, utcnow
from event_registration_api.app.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from event_registration_api.app.core.security import Identity
from event_registration_api.app.schemas.ticket import TicketRead


logger = logging.getLogger(__name__)

TICKET_SELECT = """
    SELECT t.*, r.event_id, r.visitor_id, r.status, e.organizer_id
    FROM tickets t
    JOIN registrations r ON r.id = t.registration_id
    JOIN events e ON e.id = r.event_id
"""


def make_ticket_code(event_id: int, registration_id: int) -> str:
    """``TKT-<event>-<registration>-<8 random upper-case hex digits>``."""
    return f"TKT-{event_id}-{registration_id}-{secrets.token_hex(4).upper()}"


def _row_to_ticket(row: sqlite3.Row) -> TicketRead:
    return TicketRead(
        id=row["id"],
        registration_id=row["registration_id"],
        event_id=row["event_id"],
        visitor_id=row["visitor_id"],
        ticket_code=row["ticket_code"],
        issued_at=row["issued_at"],
        is_checked_in=bool(row["is_checked_in"]),
        checked_in_at=row["checked_in_at"],
    )


def render_ticket_pdf(ticket: TicketRead, details: sqlite3.Row) -> bytes:
    """Draw a single landscape A6 ticket and return the PDF bytes."""
    buffer = io.BytesIO()
    width, height = landscape(A6)
    pdf = canvas.Canvas(buffer, pagesize=(width, height))
    pdf.setTitle(f"Ticket {ticket.ticket_code}")

    pdf.setFont("Helvetica-Bold", 16)
    pdf.drawString(10 * mm, height - 15 * mm, details["event_title"])
    pdf.setFont("Helvetica", 10)
    y = height - 25 * mm
    location = ", ".join(
        part for part in (details["address"], details["city"], details["state"]) if part
    )
    for line in (
        f"Starts: {details['start_time'].replace('T', ' ')} UTC",
        f"Ends: {details['end_time'].replace('T', ' ')} UTC",
        f"Location: {location or 'TBA'}",
        f"Attendee: {details['visitor_name']} <{details['visitor_email']}>",
        f"Registration: #{ticket.registration_id}",
    ):
        pdf.drawString(10 * mm, y, line)
        y -= 6 * mm

    pdf.setFont("Courier-Bold", 14)
    pdf.drawString(10 * mm, 12 * mm, ticket.ticket_code)
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


class TicketService:
    """Service for issuing and checking tickets."""

    @classmethod
    async def generate_ticket(cls, registration_id: int) -> TicketRead:
        """Issue the ticket for a registration, or return the existing one."""
        with transaction() as conn:
            row = conn.execute(
                TICKET_SELECT + " WHERE t.registration_id = ?", (registration_id,)
            ).fetchone()
            if row:
                return _row_to_ticket(row)
            registration = conn.execute(
                "SELECT id, event_id, status FROM registrations WHERE id = ?", (registration_id,)
            ).fetchone()
            if not registration:
                raise NotFoundError(f"Registration {registration_id} not found")
            if registration["status"] == "CANCELLED":
                raise ConflictError("Cannot issue a ticket for a cancelled registration")
            conn.execute(
                "INSERT INTO tickets (registration_id, ticket_code, issued_at) VALUES (?, ?, ?)",
                (registration_id, make_ticket_code(registration["event_id"], registration_id), utcnow()),
            )
            row = conn.execute(
                TICKET_SELECT + " WHERE t.registration_id = ?", (registration_id,)
            ).fetchone()
        logger.info("Issued ticket %s for registration %s", row["ticket_code"], registration_id)
        return _row_to_ticket(row)

    @classmethod
    async def get_ticket_for_registration(
        cls, registration_id: int, actor: Optional[Identity] = None
    ) -> TicketRead:
        """Return the ticket of a registration.

        When ``actor`` is given it must be the registered visitor, the
        organizer of the event or an administrator.
        """
        conn = get_connection()
        try:
            row = conn.execute(
                TICKET_SELECT + " WHERE t.registration_id = ?", (registration_id,)
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError(f"No ticket issued for registration {registration_id}")
        if actor is not None and not (
            actor.is_admin or actor.user_id in (row["visitor_id"], row["organizer_id"])
        ):
            raise ForbiddenError("You cannot view this ticket")
        return _row_to_ticket(row)

    @classmethod
    async def download_ticket(cls, registration_id: int, actor: Identity) -> Tuple[str, bytes]:
        """Return ``(filename, pdf_bytes)`` for the visitor's own ticket.

        Only the registered visitor may download.  A cancelled
        registration has no ticket to print; a missing ticket is issued
        on the spot.
        """
        conn = get_connection()
        try:
            details = conn.execute(
                """
                SELECT r.visitor_id, r.status, e.title AS event_title, e.start_time, e.end_time,
                       e.address, e.city, e.state, u.name AS visitor_name, u.email AS visitor_email
                FROM registrations r
                JOIN events e ON e.id = r.event_id
                JOIN users u ON u.id = r.visitor_id
                WHERE r.id = ?
                """,
                (registration_id,),
            ).fetchone()
        finally:
            conn.close()
        if not details:
            raise NotFoundError(f"Registration {registration_id} not found")
        if actor.user_id != details["visitor_id"]:
            raise ForbiddenError("You can only download your own tickets")
        if details["status"] == "CANCELLED":
            raise ValidationError("Cannot download a ticket for a cancelled registration")
        ticket = await cls.generate_ticket(registration_id)
        logger.info("Ticket %s downloaded by user %s", ticket.ticket_code, actor.user_id)
        return f"ticket-{ticket.ticket_code}.pdf", render_ticket_pdf(ticket, details)

    @classmethod
    async def check_in(cls, ticket_code: str, actor: Identity) -> TicketRead:
        """Mark a ticket as used.

        Only the event's organizer or an administrator may check in.  A
        ticket of a cancelled registration, or one that was already
        used, is rejected with a conflict.
        """
        with transaction() as conn:
            row = conn.execute(
                TICKET_SELECT + " WHERE t.ticket_code = ?", (ticket_code.strip(),)
            ).fetchone()
            if not row:
                raise NotFoundError(f"Ticket {ticket_code} not found")
            if not (actor.is_admin or actor.user_id == row["organizer_id"]):
                raise ForbiddenError("Only the event organizer can check in attendees")
            if row["status"] == "CANCELLED":
                raise ConflictError("Registration for this ticket was cancelled")
            if row["is_checked_in"]:
                raise ConflictError("Ticket has already been checked in")
            conn.execute(
                "UPDATE tickets SET is_checked_in = 1, checked_in_at = ? WHERE id = ?",
                (utcnow(), row["id"]),
            )
            row = conn.execute(TICKET_SELECT + " WHERE t.id = ?", (row["id"],)).fetchone()
        logger.info("Ticket %s checked in by user %s", ticket_code, actor.user_id)
        return _row_to_ticket(row)
