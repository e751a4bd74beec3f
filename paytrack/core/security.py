"""
JWT token creation / verification and password hashing (bcrypt).

Access tokens carry ``sub`` (user id) and ``role`` so the dashboard can
route without an extra round trip; the API still re-reads the user row.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from paytrack.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

_ALGORITHM = settings.ALGORITHM
_SECRET = settings.SECRET_KEY


# ── Passwords ───────────────────────────────────────────────────────
def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def get_password_hash(plain: str) -> str:
    return pwd_context.hash(plain)


# ── JWT tokens ──────────────────────────────────────────────────────
def create_access_token(
    subject: str | Any,
    role: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    claims: dict[str, Any] = {"exp": expire, "sub": str(subject), "type": "access"}
    if role is not None:
        claims["role"] = role
    return jwt.encode(claims, _SECRET, algorithm=_ALGORITHM)


def create_refresh_token(subject: str | Any) -> str:
    expire = datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return jwt.encode(
        {"exp": expire, "sub": str(subject), "type": "refresh"},
        _SECRET,
        algorithm=_ALGORITHM,
    )


def _decode(token: str, expected_type: str) -> dict | None:
    try:
        payload = jwt.decode(token, _SECRET, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != expected_type:
        return None
    return payload


def decode_access_token(token: str) -> dict | None:
    """Return payload dict if *access* token is valid, else ``None``."""
    return _decode(token, "access")


def decode_refresh_token(token: str) -> dict | None:
    """Return payload dict if *refresh* token is valid, else ``None``."""
    return _decode(token, "refresh")
