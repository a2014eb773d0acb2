"""
Security helpers for password hashing and JWT authentication.

This module implements a lightweight JSON Web Token (JWT) mechanism
using HMAC‑SHA256 signatures and base64url encoding.  Tokens embed
arbitrary claims and an expiration timestamp (``exp``).  A secret
key from the application settings is used to sign and verify the
token.  Passwords are hashed with PBKDF2‑HMAC (SHA‑256) and a random
salt per password.

The acting user is resolved once per request by ``get_current_user``
and handed to the service layer as an explicit ``Identity``; services
never look the caller up on their own.
"""

import base64
import hashlib
import hmac
import json
import os
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .db import get_connection
from ..schemas.user import Role


PBKDF2_ITERATIONS = 100_000


@dataclass(frozen=True)
class Identity:
    """Authenticated caller of a request."""

    user_id: int
    email: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def _b64_url_encode(data: bytes) -> str:
    """Base64‑url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64‑url encoded string, adding padding if necessary."""
    padding = '=' * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def create_access_token(data: Dict[str, str], expires_delta: Optional[int] = None) -> str:
    """Create a signed JWT token with the given payload.

    The payload is extended with an ``exp`` field representing the
    expiration time as a UNIX timestamp.  Clients must include the
    token in the ``Authorization`` header as ``Bearer <token>``.

    Parameters
    ----------
    data : dict
        Claims to embed in the token (e.g. {"sub": "user@example.com"}).
    expires_delta : Optional[int]
        Lifetime of the token in seconds.  Defaults to
        ``settings.access_token_expire_minutes * 60``.
    """
    to_encode = data.copy()
    exp_seconds = expires_delta or settings.access_token_expire_minutes * 60
    to_encode["exp"] = int(time.time()) + exp_seconds
    header = {"alg": settings.algorithm, "typ": "JWT"}
    header_b64 = _b64_url_encode(json.dumps(header, separators=(',', ':')).encode("utf-8"))
    payload_b64 = _b64_url_encode(json.dumps(to_encode, separators=(',', ':')).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    signature_b64 = _b64_url_encode(_sign(signing_input, settings.secret_key))
    return f"{header_b64}.{payload_b64}.{signature_b64}"


def decode_access_token(token: str) -> Optional[Dict[str, str]]:
    """Verify and decode a JWT token.

    Returns the payload dictionary if the signature is valid and the
    token has not expired, otherwise ``None``.
    """
    parts = token.split('.')
    if len(parts) != 3:
        return None
    header_b64, payload_b64, signature_b64 = parts
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    expected_sig = _sign(signing_input, settings.secret_key)
    try:
        actual_sig = _b64_url_decode(signature_b64)
        if not hmac.compare_digest(expected_sig, actual_sig):
            return None
        data = json.loads(_b64_url_decode(payload_b64).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        # binascii.Error and json.JSONDecodeError are ValueError subclasses
        return None
    if not isinstance(data, dict):
        return None
    if data.get("exp") is None or int(data["exp"]) < int(time.time()):
        return None
    return data


security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def resolve_identity(token: str) -> Identity:
    """Map a bearer token to the active user it was issued for."""
    payload = decode_access_token(token)
    if not payload:
        raise _unauthorized("Invalid or expired token")
    conn = get_connection()
    try:
        row = conn.execute(
            "SELECT id, email, role, is_active FROM users WHERE email = ?",
            (payload.get("sub"),),
        ).fetchone()
    finally:
        conn.close()
    if not row:
        raise _unauthorized("User no longer exists")
    if not row["is_active"]:
        raise _unauthorized("User account disabled")
    return Identity(user_id=row["id"], email=row["email"], role=Role(row["role"]))


def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Identity:
    """Dependency that retrieves the current authenticated user.

    Raises HTTP 401 if the ``Authorization`` header is missing, the
    token is invalid or expired, or the account was removed or
    deactivated after the token was issued.
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")
    return resolve_identity(credentials.credentials)


def get_optional_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Optional[Identity]:
    """Like ``get_current_user`` but anonymous requests yield ``None``."""
    if credentials is None:
        return None
    return resolve_identity(credentials.credentials)


def require_roles(*roles: Role) -> Callable[[Identity], Identity]:
    """Dependency factory to enforce that the current user has one of the specified roles.

    Use this in FastAPI endpoints via ``Depends(require_roles(Role.ADMIN))``.
    If the authenticated user does not hold any of the given roles, an
    HTTP 403 error is raised.
    """

    def _role_dependency(current_user: Identity = Depends(get_current_user)) -> Identity:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return _role_dependency


def hash_password(password: str) -> str:
    """Hash a password using PBKDF2‑HMAC with SHA‑256.

    A 16‑byte random salt is generated for each password.  The
    resulting string contains the salt and hash separated by a
    ``$`` (salt in hex, then hash in hex).
    """
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), salt, PBKDF2_ITERATIONS)
    return f"{salt.hex()}${dk.hex()}"


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a plain password against a stored salt+hash string."""
    if not hashed_password or '$' not in hashed_password:
        return False
    salt_hex, hash_hex = hashed_password.split('$', 1)
    try:
        salt = bytes.fromhex(salt_hex)
        stored_hash = bytes.fromhex(hash_hex)
    except ValueError:
        return False
    dk = hashlib.pbkdf2_hmac('sha256', plain_password.encode('utf-8'), salt, PBKDF2_ITERATIONS)
    return hmac.compare_digest(dk, stored_hash)
