"""
FastAPI dependencies — auth guards, database session and payroll rules.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Cookie, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from paytrack.core.security import decode_access_token
from paytrack.db.session import async_session_factory
from paytrack.models.user import User
from paytrack.services.payroll_calculator import PayrollRules
from paytrack.services.rules import load_rules

# auto_error=False so the HttpOnly cookie can stand in for the header
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/login", auto_error=False)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Auth dependencies ───────────────────────────────────────────────
def _strip_bearer(value: str) -> str:
    return value.split(" ", 1)[1] if value.startswith("Bearer ") else value


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    access_token: Optional[str] = Cookie(default=None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the JWT from the Authorization header, else the cookie."""
    final_token = token or (_strip_bearer(access_token) if access_token else None)

    credentials_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not final_token:
        raise credentials_exc

    payload = decode_access_token(final_token)
    if payload is None:
        raise credentials_exc

    user_id: str | None = payload.get("sub")
    if user_id is None or not user_id.isdigit():
        raise credentials_exc

    user = await db.get(User, int(user_id))
    if user is None:
        raise credentials_exc
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    if not current_user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user account")
    return current_user


async def require_admin(
    current_user: User = Depends(get_current_active_user),
) -> User:
    """Only allow the admin role to proceed."""
    if current_user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user


# ── Business configuration ──────────────────────────────────────────
async def get_payroll_rules(db: AsyncSession = Depends(get_db)) -> PayrollRules:
    """Current calculator rules, built from the ``system_settings`` row."""
    return await load_rules(db)
