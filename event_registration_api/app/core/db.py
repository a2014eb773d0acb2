"""
SQLite database integration and simple migration system.

This module provides functions for obtaining a database connection
(``get_connection``), running a unit of work under the database write
lock (``transaction``) and applying migrations on application start
(``init_db``).  It uses SQLite as a lightweight embedded database; to
switch to another DBMS you would replace connection logic and adapt SQL
syntax accordingly.

The migration mechanism stores applied migration versions in the
``migrations`` table and executes new migrations in order.

All timestamps are stored as naive UTC ISO-8601 strings produced by
``utcnow``/``to_db_time`` so they compare correctly as text.
"""

import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from .config import settings


def get_database_path() -> str:
    """Compute the path to the SQLite database file.

    If ``settings.database_url`` is an absolute path, use it directly.
    Otherwise resolve it relative to the project root.
    """
    db_url = settings.database_url
    if db_url.startswith("sqlite:///"):
        db_url = db_url[len("sqlite:///"):]
    if os.path.isabs(db_url):
        return db_url
    base_dir = Path(__file__).resolve().parent.parent.parent  # event_registration_api/
    return str((base_dir / db_url).resolve())


def get_connection() -> sqlite3.Connection:
    """Create and return a new SQLite connection.

    Rows are returned as ``sqlite3.Row`` so columns can be accessed by
    name.  Foreign key enforcement is switched on for the lifetime of
    the connection; SQLite leaves it off by default.
    """
    conn = sqlite3.connect(get_database_path(), timeout=settings.db_timeout_seconds)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_cursor() -> Iterator[sqlite3.Cursor]:
    """Context manager that yields a cursor and closes the connection on exit."""
    conn = get_connection()
    try:
        yield conn.cursor()
        conn.commit()
    finally:
        conn.close()


@contextmanager
def transaction() -> Iterator[sqlite3.Connection]:
    """Run a unit of work atomically while holding the database write lock.

    ``BEGIN IMMEDIATE`` takes SQLite's reserved lock up front, so reads
    performed inside the block cannot be invalidated by a concurrent
    writer before the block commits.  Any exception rolls the whole
    unit back and is re-raised.
    """
    conn = get_connection()
    # Manual transaction control: the driver must not open its own.
    conn.isolation_level = None
    try:
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")
    finally:
        conn.close()


def utcnow() -> str:
    """Current UTC time in the storage format."""
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat(timespec="seconds")


def to_db_time(value: Optional[datetime]) -> Optional[str]:
    """Normalise a datetime to naive UTC and format it for storage."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec="seconds")


MIGRATIONS: list[tuple[int, str]] = [
    # Migration 1: users, events and registrations
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT NOT NULL UNIQUE,
            password TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'VISITOR'
                CHECK (role IN ('ADMIN', 'ORGANIZER', 'VISITOR')),
            mobile_number TEXT,
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS events (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            description TEXT,
            start_time TIMESTAMP NOT NULL,
            end_time TIMESTAMP NOT NULL,
            address TEXT,
            city TEXT,
            state TEXT,
            category TEXT,
            image_url TEXT,
            organizer_id INTEGER NOT NULL,
            max_attendees INTEGER CHECK (max_attendees IS NULL OR max_attendees >= 1),
            current_attendees INTEGER NOT NULL DEFAULT 0
                CHECK (current_attendees >= 0),
            is_active INTEGER NOT NULL DEFAULT 1,
            event_type TEXT NOT NULL DEFAULT 'PUBLIC'
                CHECK (event_type IN ('PUBLIC', 'PRIVATE')),
            private_code TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            CHECK (max_attendees IS NULL OR current_attendees <= max_attendees),
            FOREIGN KEY(organizer_id) REFERENCES users(id)
        );

        CREATE TABLE IF NOT EXISTS registrations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            event_id INTEGER NOT NULL,
            visitor_id INTEGER NOT NULL,
            status TEXT NOT NULL DEFAULT 'CONFIRMED'
                CHECK (status IN ('CONFIRMED', 'CANCELLED')),
            registered_at TIMESTAMP NOT NULL,
            phone TEXT,
            notes TEXT,
            updated_at TIMESTAMP,
            FOREIGN KEY(event_id) REFERENCES events(id),
            FOREIGN KEY(visitor_id) REFERENCES users(id)
        );

        -- At most one active registration per visitor and event.  Cancelled
        -- rows are kept as history and do not block a new registration.
        CREATE UNIQUE INDEX IF NOT EXISTS uq_registrations_active
            ON registrations(event_id, visitor_id) WHERE status <> 'CANCELLED';
        """,
    ),
    # Migration 2: tickets issued for registrations
    (
        2,
        """
        CREATE TABLE IF NOT EXISTS tickets (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            registration_id INTEGER NOT NULL UNIQUE,
            ticket_code TEXT NOT NULL UNIQUE,
            issued_at TIMESTAMP NOT NULL,
            is_checked_in INTEGER NOT NULL DEFAULT 0,
            checked_in_at TIMESTAMP,
            FOREIGN KEY(registration_id) REFERENCES registrations(id)
        );
        """,
    ),
    # Migration 3: audit trail
    (
        3,
        """
        CREATE TABLE IF NOT EXISTS audit_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER,
            action TEXT NOT NULL,
            object_type TEXT,
            object_id INTEGER,
            timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            details TEXT
        );
        """,
    ),
    # Migration 4: lookup indices
    (
        4,
        """
        CREATE INDEX IF NOT EXISTS idx_events_organizer_id ON events(organizer_id);
        CREATE INDEX IF NOT EXISTS idx_events_start_time ON events(start_time);
        CREATE INDEX IF NOT EXISTS idx_registrations_visitor_id ON registrations(visitor_id);
        CREATE INDEX IF NOT EXISTS idx_registrations_event_id ON registrations(event_id);
        CREATE INDEX IF NOT EXISTS idx_audit_logs_user_id ON audit_logs(user_id);
        """,
    ),
    # Migration 5: venues that events can be booked into
    (
        5,
        """
        CREATE TABLE IF NOT EXISTS venues (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            address TEXT,
            city TEXT,
            state TEXT,
            capacity INTEGER CHECK (capacity IS NULL OR capacity >= 1),
            map_data TEXT,
            image_url TEXT,
            unavailable_dates TEXT,
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        ALTER TABLE events ADD COLUMN venue_id INTEGER REFERENCES venues(id);
        CREATE INDEX IF NOT EXISTS idx_events_venue_id ON events(venue_id);
        """,
    ),
    # Migration 6: event feedback from attendees
    (
        6,
        """
        CREATE TABLE IF NOT EXISTS feedback (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            event_id INTEGER NOT NULL,
            user_id INTEGER NOT NULL,
            rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
            comment TEXT,
            is_reviewed INTEGER NOT NULL DEFAULT 0,
            is_flagged INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP,
            UNIQUE(event_id, user_id),
            FOREIGN KEY(event_id) REFERENCES events(id),
            FOREIGN KEY(user_id) REFERENCES users(id)
        );
        """,
    ),
]


def init_db() -> None:
    """Initialise the database and apply pending migrations.

    Creates the ``migrations`` table if it does not exist, checks the
    current schema version, and applies any new migrations defined in
    ``MIGRATIONS``.  To change the schema, append a migration with an
    incremented version number.
    """
    with get_cursor() as cursor:
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
        )
        cursor.execute("SELECT MAX(version) as version FROM migrations")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] is not None else 0

        for version, sql in MIGRATIONS:
            if version > current_version:
                cursor.executescript(sql)
                cursor.execute(
                    "INSERT INTO migrations (version) VALUES (?)", (version,)
                )
                current_version = version
