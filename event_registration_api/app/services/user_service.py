"""
Business logic for users.

``UserService`` manages accounts in the SQLite database: sign-up with
unique e‑mail addresses, credential checks, profile changes, soft
deactivation and hard deletion by administrators.
"""

import logging
import sqlite3
from typing import List, Optional

from event_registration_api.app.core.config import settings
from event_registration_api.app.core.db import get_connection, transaction, utcnow
from event_registration_api.app.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from event_registration_api.app.core.security import hash_password, verify_password
from event_registration_api.app.schemas.user import Role, UserCreate, UserRead, UserUpdate
from event_registration_api.app.services.audit_service import AuditService


logger = logging.getLogger(__name__)

USER_COLUMNS = "id, name, email, role, mobile_number, is_active, created_at"


def _row_to_user(row: sqlite3.Row) -> UserRead:
    return UserRead(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        role=Role(row["role"]),
        mobile_number=row["mobile_number"],
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
    )


class UserService:
    """Service for user accounts."""

    @classmethod
    async def create_user(cls, data: UserCreate, allow_admin: bool = False) -> UserRead:
        """Create an account and return it.

        E‑mail addresses are unique (compared case-insensitively after
        trimming).  Administrator accounts can only be created with
        ``allow_admin=True``, i.e. by the bootstrap routine.
        """
        if data.role == Role.ADMIN and not allow_admin:
            raise ForbiddenError("Administrator accounts cannot be self-registered")
        email = data.email.strip().lower()
        now = utcnow()
        conn = get_connection()
        try:
            existing = conn.execute("SELECT id FROM users WHERE email = ?", (email,)).fetchone()
            if existing:
                raise ConflictError("Email already exists")
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO users (name, email, password, role, mobile_number, is_active, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, 1, ?, ?)
                    """,
                    (
                        data.name.strip(),
                        email,
                        hash_password(data.password),
                        data.role.value,
                        data.mobile_number,
                        now,
                        now,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                # A concurrent sign-up won the race for this address.
                raise ConflictError("Email already exists") from exc
            user_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()
        logger.info("Registered %s account %s (id=%s)", data.role.value, email, user_id)
        await AuditService.log(
            user_id=user_id,
            action="create",
            object_type="user",
            object_id=user_id,
            details={"email": email, "role": data.role.value},
        )
        return await cls.get_user(user_id)

    @classmethod
    async def authenticate(cls, email: str, password: str) -> Optional[UserRead]:
        """Return the user if the credentials match an active account, else ``None``."""
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {USER_COLUMNS}, password FROM users WHERE email = ?",
                (email.strip().lower(),),
            ).fetchone()
        finally:
            conn.close()
        if not row or not verify_password(password, row["password"]):
            return None
        if not row["is_active"]:
            logger.info("Login refused for deactivated account %s", row["email"])
            return None
        return _row_to_user(row)

    @classmethod
    async def get_user(cls, user_id: int) -> UserRead:
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError(f"User {user_id} not found")
        return _row_to_user(row)

    @classmethod
    async def list_users(
        cls, role: Optional[Role] = None, limit: int = 100, offset: int = 0
    ) -> List[UserRead]:
        """Return users, optionally restricted to one role, ordered by id."""
        query = f"SELECT {USER_COLUMNS} FROM users"
        params: list = []
        if role is not None:
            query += " WHERE role = ?"
            params.append(role.value)
        query += " ORDER BY id ASC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [_row_to_user(row) for row in rows]

    @classmethod
    async def update_profile(cls, user_id: int, updates: UserUpdate) -> UserRead:
        """Apply profile changes (name, mobile number, password) to an account."""
        changes = updates.model_dump(exclude_unset=True, exclude_none=True)
        if "password" in changes:
            changes["password"] = hash_password(changes["password"])
        if "name" in changes:
            changes["name"] = changes["name"].strip()
        conn = get_connection()
        try:
            row = conn.execute("SELECT id FROM users WHERE id = ?", (user_id,)).fetchone()
            if not row:
                raise NotFoundError(f"User {user_id} not found")
            if changes:
                fields = [f"{key} = ?" for key in changes]
                values = list(changes.values()) + [utcnow(), user_id]
                conn.execute(
                    f"UPDATE users SET {', '.join(fields)}, updated_at = ? WHERE id = ?",
                    tuple(values),
                )
                conn.commit()
        finally:
            conn.close()
        await AuditService.log(
            user_id=user_id,
            action="update",
            object_type="user",
            object_id=user_id,
            details={"fields": sorted(key for key in changes if key != "password")},
        )
        return await cls.get_user(user_id)

    @classmethod
    async def set_active(cls, user_id: int, is_active: bool, acting_user_id: int) -> UserRead:
        """Activate or deactivate an account (soft status change)."""
        if user_id == acting_user_id and not is_active:
            raise ValidationError("You cannot deactivate your own account")
        conn = get_connection()
        try:
            cursor = conn.execute(
                "UPDATE users SET is_active = ?, updated_at = ? WHERE id = ?",
                (1 if is_active else 0, utcnow(), user_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"User {user_id} not found")
            conn.commit()
        finally:
            conn.close()
        logger.info("User %s %s by %s", user_id, "activated" if is_active else "deactivated", acting_user_id)
        await AuditService.log(
            user_id=acting_user_id,
            action="activate" if is_active else "deactivate",
            object_type="user",
            object_id=user_id,
        )
        return await cls.get_user(user_id)

    @classmethod
    async def delete_user(cls, user_id: int, acting_user_id: int) -> None:
        """Hard-delete a user and everything that references them.

        Active registrations of the user release their seats.  Events
        owned by the user (organizers) are deleted together with their
        registrations, tickets and feedback.  Everything happens in one
        transaction.
        """
        if user_id == acting_user_id:
            raise ValidationError("You cannot delete your own account")
        with transaction() as conn:
            row = conn.execute("SELECT id FROM users WHERE id = ?", (user_id,)).fetchone()
            if not row:
                raise NotFoundError(f"User {user_id} not found")
            # Release seats held by the user's active registrations.
            conn.execute(
                """
                UPDATE events SET current_attendees = current_attendees - 1, updated_at = ?
                WHERE current_attendees > 0 AND id IN (
                    SELECT event_id FROM registrations WHERE visitor_id = ? AND status <> 'CANCELLED'
                )
                """,
                (utcnow(), user_id),
            )
            conn.execute(
                """
                DELETE FROM tickets WHERE registration_id IN (
                    SELECT r.id FROM registrations r
                    LEFT JOIN events e ON e.id = r.event_id
                    WHERE r.visitor_id = ? OR e.organizer_id = ?
                )
                """,
                (user_id, user_id),
            )
            conn.execute(
                """
                DELETE FROM registrations
                WHERE visitor_id = ? OR event_id IN (SELECT id FROM events WHERE organizer_id = ?)
                """,
                (user_id, user_id),
            )
            conn.execute(
                """
                DELETE FROM feedback
                WHERE user_id = ? OR event_id IN (SELECT id FROM events WHERE organizer_id = ?)
                """,
                (user_id, user_id),
            )
            conn.execute("DELETE FROM events WHERE organizer_id = ?", (user_id,))
            conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
        logger.info("User %s deleted by %s", user_id, acting_user_id)
        await AuditService.log(
            user_id=acting_user_id,
            action="delete",
            object_type="user",
            object_id=user_id,
        )

    @classmethod
    async def ensure_admin(cls) -> Optional[UserRead]:
        """Create the bootstrap administrator from settings if it is missing."""
        if not settings.admin_email or not settings.admin_password:
            return None
        email = settings.admin_email.strip().lower()
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {USER_COLUMNS} FROM users WHERE email = ?", (email,)).fetchone()
        finally:
            conn.close()
        if row:
            return _row_to_user(row)
        logger.info("Creating bootstrap administrator %s", email)
        return await cls.create_user(
            UserCreate(
                name="Administrator",
                email=email,
                password=settings.admin_password,
                role=Role.ADMIN,
            ),
            allow_admin=True,
        )
