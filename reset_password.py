#!/usr/bin/env python3
"""
Reset a user's password in the Event Registration SQLite database.

This script DOES NOT read or reveal any existing passwords.  It sets a
new password hash (PBKDF2-HMAC-SHA256, format "salthex$hashhex") for
the specified user email.

Usage:
    python reset_password.py --email admin@example.com --password "NewStrongPass!234"
    python reset_password.py --db ./event_registration_api/event_registration.db --email admin@example.com

If --db is omitted the database configured through DATABASE_URL is
used.  If --password is omitted, you will be prompted to enter it
securely.
"""

import argparse
import getpass
import os
import sqlite3
import sys

from event_registration_api.app.core.db import get_database_path, utcnow
from event_registration_api.app.core.security import hash_password


def main() -> None:
    ap = argparse.ArgumentParser(description="Reset a user password (SQLite).")
    ap.add_argument("--db", help="Path to SQLite DB file; defaults to the configured DATABASE_URL")
    ap.add_argument("--email", required=True, help="User email to update")
    ap.add_argument("--password", help="New password. If omitted, you'll be prompted securely.")
    args = ap.parse_args()

    db_path = args.db or get_database_path()
    if not os.path.exists(db_path):
        print(f"[!] DB not found: {db_path}", file=sys.stderr)
        sys.exit(1)

    new_password = args.password or getpass.getpass("Enter NEW password: ")
    if len(new_password) < 6:
        print("[!] Password must be at least 6 characters.", file=sys.stderr)
        sys.exit(1)

    email = args.email.strip().lower()
    conn = sqlite3.connect(db_path)
    try:
        cur = conn.cursor()
        cur.execute("SELECT id FROM users WHERE email = ?", (email,))
        if not cur.fetchone():
            print(f"[!] No user found with email: {email}", file=sys.stderr)
            sys.exit(2)
        cur.execute(
            "UPDATE users SET password = ?, updated_at = ? WHERE email = ?",
            (hash_password(new_password), utcnow(), email),
        )
        conn.commit()
        print(f"[+] Password updated for user: {email}")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
