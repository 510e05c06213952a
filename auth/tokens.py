"""
auth/tokens.py -- JWT and password hashing utilities.

Security design decisions:
  JWT: python-jose with HS256. Two independent token kinds:
       access  -- signed with SECRET_KEY, 1 hour by default.
       refresh -- signed with REFRESH_SECRET_KEY, 7 days by default.
       Both carry the same identity claims {id, email, role} plus exp. Using
       separate secrets means an access token can never be replayed as a
       refresh token and vice versa. Verification returns None on any
       failure -- the route layer turns that into a 401.

  Passwords: bcrypt directly (no passlib wrapper), cost factor from
       Settings.bcrypt_rounds (10 by default). The _DUMMY_HASH constant
       enables timing equalization in authenticate_user() so response time
       does not reveal whether an email is registered.

Layer rule: no imports from api/ or catalog/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("libraryapi.auth")

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ("id", "email", "role")

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    Passwords longer than 72 bytes are truncated before hashing; bcrypt 4.x
    rejects longer input outright instead of truncating silently.
    """
    return bcrypt.hashpw(plain.encode("utf-8")[:72], bcrypt.gensalt(rounds=_settings.bcrypt_rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A stored value that is not a bcrypt hash (ValueError from bcrypt) is
    treated as a mismatch.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8")[:72], hashed.encode("utf-8"))
    except ValueError:
        return False


# Timing equalization dummy hash.
# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("libraryapi_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def _encode(user_id: int, email: str, role: str, secret: str, expire_seconds: int) -> str:
    expire = datetime.now(timezone.utc) + timedelta(seconds=expire_seconds)
    payload = {
        "sub": email,
        "id": user_id,
        "email": email,
        "role": role,
        "exp": expire,
    }
    return jwt.encode(payload, secret, algorithm=_ALGORITHM)


def _decode(token: str, secret: str) -> dict | None:
    try:
        payload = jwt.decode(token, secret, algorithms=[_ALGORITHM])
    except JWTError as exc:
        logger.info("Token rejected: %s", exc)
        return None
    if any(claim not in payload for claim in _REQUIRED_CLAIMS):
        return None
    if not isinstance(payload["id"], int) or isinstance(payload["id"], bool):
        return None
    return payload


def create_access_token(user_id: int, email: str, role: str, expire_seconds: int = 0) -> str:
    """Encode a short-lived access token.

    Args:
        user_id:        Numeric user ID stored in the DB.
        email:          Email, also stored as the JWT subject claim.
        role:           Role string ("ADMIN", "LIBRARIAN", ...).
        expire_seconds: Lifetime in seconds. 0 (default) means
                        Settings.access_token_expire_seconds.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.access_token_expire_seconds
    return _encode(user_id, email, role, _settings.secret_key, duration)


def create_refresh_token(user_id: int, email: str, role: str, expire_seconds: int = 0) -> str:
    """Encode a long-lived refresh token, signed with REFRESH_SECRET_KEY."""
    duration = expire_seconds if expire_seconds > 0 else _settings.refresh_token_expire_seconds
    return _encode(user_id, email, role, _settings.refresh_secret_key, duration)


def decode_access_token(token: str) -> dict | None:
    """Decode and verify an access token. Returns the payload dict or None on any failure."""
    return _decode(token, _settings.secret_key)


def decode_refresh_token(token: str) -> dict | None:
    """Decode and verify a refresh token. Returns the payload dict or None on any failure."""
    return _decode(token, _settings.refresh_secret_key)


def issue_token_pair(user: User) -> tuple[str, str]:
    """Return (access_token, refresh_token) for a persisted user."""
    return (
        create_access_token(user.id, user.email, user.role),
        create_refresh_token(user.id, user.email, user.role),
    )


# ---------------------------------------------------------------------------
# User authentication (constant-effort)
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Authenticate an email/password login with timing equalization.

    Always runs bcrypt whether or not the user exists:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Returns the User on success, None on any failure.
    """
    user = store.get_by_email(email)
    if user is None:
        # Equalize timing -- do NOT return early before running bcrypt
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.password):
        return None
    return user
