"""Print a long-lived access token for an existing account.

Usage:
    python create_token.py admin@example.com [days]
"""
import sys

from event_registration_api.app.core.security import create_access_token

if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("usage: create_token.py EMAIL [DAYS]", file=sys.stderr)
        sys.exit(1)
    days = int(sys.argv[2]) if len(sys.argv) > 2 else 365
    # expires_delta is in seconds
    token = create_access_token({"sub": sys.argv[1].strip().lower()}, expires_delta=days * 24 * 60 * 60)
    print(token)
