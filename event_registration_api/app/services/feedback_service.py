"""
Event feedback.

Visitors holding a confirmed registration rate an event once (1 to 5,
with an optional comment).  Administrators review the feedback queue:
they mark entries as reviewed, flag inappropriate ones and delete them.
"""

import logging
import sqlite3
from typing import List, Optional

from event_registration_api.app.core.db import get_connection, transaction, utcnow
from event_registration_api.app.core.errors import ConflictError, ForbiddenError, NotFoundError
from event_registration_api.app.core.security import Identity
from event_registration_api.app.schemas.feedback import FeedbackCreate, FeedbackRead
from event_registration_api.app.services.audit_service import AuditService


logger = logging.getLogger(__name__)

FEEDBACK_SELECT = """
    SELECT f.*, e.title AS event_title, u.name AS user_name
    FROM feedback f
    JOIN events e ON e.id = f.event_id
    JOIN users u ON u.id = f.user_id
"""


def _row_to_feedback(row: sqlite3.Row) -> FeedbackRead:
    return FeedbackRead(
        id=row["id"],
        event_id=row["event_id"],
        event_title=row["event_title"],
        user_id=row["user_id"],
        user_name=row["user_name"],
        rating=row["rating"],
        comment=row["comment"],
        is_reviewed=bool(row["is_reviewed"]),
        is_flagged=bool(row["is_flagged"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class FeedbackService:
    """Service for submitting and moderating event feedback."""

    @classmethod
    def _fetch_row(cls, conn: sqlite3.Connection, feedback_id: int) -> sqlite3.Row:
        row = conn.execute(FEEDBACK_SELECT + " WHERE f.id = ?", (feedback_id,)).fetchone()
        if not row:
            raise NotFoundError(f"Feedback {feedback_id} not found")
        return row

    @classmethod
    async def submit_feedback(cls, event_id: int, data: FeedbackCreate, actor: Identity) -> FeedbackRead:
        """Record ``actor``'s rating of an event.

        The caller needs a confirmed registration for the event and may
        rate each event only once.
        """
        now = utcnow()
        with transaction() as conn:
            event = conn.execute("SELECT id FROM events WHERE id = ?", (event_id,)).fetchone()
            if not event:
                raise NotFoundError(f"Event {event_id} not found")
            attended = conn.execute(
                """
                SELECT id FROM registrations
                WHERE event_id = ? AND visitor_id = ? AND status = 'CONFIRMED'
                """,
                (event_id, actor.user_id),
            ).fetchone()
            if not attended:
                raise ForbiddenError("Only registered visitors can leave feedback for this event")
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO feedback (event_id, user_id, rating, comment, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (event_id, actor.user_id, data.rating, data.comment, now, now),
                )
            except sqlite3.IntegrityError as exc:
                raise ConflictError("You have already left feedback for this event") from exc
            row = cls._fetch_row(conn, cursor.lastrowid)
        logger.info("User %s rated event %s with %s", actor.user_id, event_id, data.rating)
        await AuditService.log(
            user_id=actor.user_id, action="create", object_type="feedback", object_id=row["id"],
            details={"event_id": event_id, "rating": data.rating},
        )
        return _row_to_feedback(row)

    @classmethod
    async def list_feedback(
        cls,
        event_id: Optional[int] = None,
        reviewed: Optional[bool] = None,
        flagged: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[FeedbackRead]:
        """Feedback newest first.  ``reviewed=False`` gives the moderation queue."""
        where_clauses: List[str] = []
        params: List = []
        if event_id is not None:
            where_clauses.append("f.event_id = ?")
            params.append(event_id)
        if reviewed is not None:
            where_clauses.append("f.is_reviewed = ?")
            params.append(1 if reviewed else 0)
        if flagged is not None:
            where_clauses.append("f.is_flagged = ?")
            params.append(1 if flagged else 0)
        query = FEEDBACK_SELECT
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        query += " ORDER BY f.created_at DESC, f.id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [_row_to_feedback(row) for row in rows]

    @classmethod
    async def _moderate(cls, feedback_id: int, action: str, assignments: str, actor: Identity) -> FeedbackRead:
        with transaction() as conn:
            cls._fetch_row(conn, feedback_id)
            conn.execute(
                f"UPDATE feedback SET {assignments}, updated_at = ? WHERE id = ?",
                (utcnow(), feedback_id),
            )
            row = cls._fetch_row(conn, feedback_id)
        logger.info("Feedback %s %s by user %s", feedback_id, action, actor.user_id)
        await AuditService.log(user_id=actor.user_id, action=action, object_type="feedback", object_id=feedback_id)
        return _row_to_feedback(row)

    @classmethod
    async def mark_reviewed(cls, feedback_id: int, actor: Identity) -> FeedbackRead:
        return await cls._moderate(feedback_id, "review", "is_reviewed = 1", actor)

    @classmethod
    async def flag(cls, feedback_id: int, actor: Identity) -> FeedbackRead:
        """Flag feedback as inappropriate.  Flagging also marks it reviewed."""
        return await cls._moderate(feedback_id, "flag", "is_flagged = 1, is_reviewed = 1", actor)

    @classmethod
    async def delete_feedback(cls, feedback_id: int, actor: Identity) -> None:
        with transaction() as conn:
            cls._fetch_row(conn, feedback_id)
            conn.execute("DELETE FROM feedback WHERE id = ?", (feedback_id,))
        logger.info("Feedback %s deleted by user %s", feedback_id, actor.user_id)
        await AuditService.log(
            user_id=actor.user_id, action="delete", object_type="feedback", object_id=feedback_id
        )
