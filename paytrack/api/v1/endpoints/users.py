"""
User management (admin) and the caller's own profile.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paytrack.api.v1.deps import (get_current_active_user, get_db,
                                  get_payroll_rules, require_admin)
from paytrack.core import clock
from paytrack.core.exceptions import UserNotFoundError
from paytrack.core.security import get_password_hash
from paytrack.models.user import User
from paytrack.schemas.common import DeleteResponse
from paytrack.schemas.payroll import PayslipRead
from paytrack.schemas.time_entry import TimeEntryRead
from paytrack.schemas.user import (HoursProgress, RequiredHoursUpdate,
                                   UserCreate, UserDashboard, UserRead,
                                   UserUpdate)
from paytrack.services.payroll_calculator import PayrollRules
from paytrack.services.payslips import recent_payslips
from paytrack.services.time_tracking import hours_progress, today_entry

router = APIRouter(tags=["users"])
logger = logging.getLogger(__name__)


async def _get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


# ── Self service ────────────────────────────────────────────────────
@router.get("/me", response_model=UserRead)
async def read_current_user(
    current_user: User = Depends(get_current_active_user),
) -> User:
    return current_user


@router.get("/me/hours-progress", response_model=HoursProgress)
async def read_hours_progress(
    db: AsyncSession = Depends(get_db),
    rules: PayrollRules = Depends(get_payroll_rules),
    current_user: User = Depends(get_current_active_user),
) -> dict:
    """Worked hours from closed entries against the required-hours goal."""
    return await hours_progress(db, current_user, rules)


@router.get("/user-dashboard-data", response_model=UserDashboard)
async def read_dashboard(
    db: AsyncSession = Depends(get_db),
    rules: PayrollRules = Depends(get_payroll_rules),
    current_user: User = Depends(get_current_active_user),
) -> UserDashboard:
    """Today's entry, hours progress and the five latest released payslips."""
    entry = await today_entry(db, current_user.id)
    payslips = await recent_payslips(db, current_user.id)
    return UserDashboard(
        today_entry=TimeEntryRead.model_validate(entry) if entry else None,
        progress=HoursProgress(**await hours_progress(db, current_user, rules)),
        recent_payslips=[PayslipRead.model_validate(p) for p in payslips],
        last_updated=clock.local_now(),
    )


@router.put("/me/required-hours", response_model=UserRead)
async def update_required_hours(
    body: RequiredHoursUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> User:
    current_user.required_hours = body.required_hours
    await db.commit()
    await db.refresh(current_user)
    logger.info("User %s set required hours to %.2f", current_user.username, body.required_hours)
    return current_user


# ── Admin CRUD ──────────────────────────────────────────────────────
@router.get("/users", response_model=list[UserRead])
async def list_users(
    include_inactive: bool = Query(default=False, alias="includeInactive"),
    search: str | None = None,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> list[User]:
    query = select(User).order_by(User.department, User.username)
    if not include_inactive:
        query = query.where(User.is_active.is_(True))
    if search:
        # Escape SQL LIKE metacharacters
        safe_search = search.replace("%", r"\%").replace("_", r"\_")
        query = query.where(User.username.ilike(f"%{safe_search}%", escape="\\"))
    result = await db.execute(query)
    return list(result.scalars().all())


@router.post("/users", response_model=UserRead, status_code=201)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> User:
    """Create an employee or admin account."""
    existing = await db.execute(select(User).where(User.username == body.username))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Username already registered")

    user = User(
        hashed_password=get_password_hash(body.password),
        **body.model_dump(exclude={"password"}),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("Created %s %s", user.role, user.username)
    return user


@router.put("/users/{user_id}", response_model=UserRead)
async def update_user(
    user_id: int,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> User:
    user = await _get_user(db, user_id)

    changes = body.model_dump(exclude_unset=True)
    password = changes.pop("password", None)
    if password:
        user.hashed_password = get_password_hash(password)
    for field, value in changes.items():
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)
    logger.info("Updated user %d", user_id)
    return user


@router.delete("/users/{user_id}", response_model=DeleteResponse)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> DeleteResponse:
    """Soft-delete (deactivate) a user. Time entries and payslips are preserved."""
    user = await _get_user(db, user_id)
    if user.id == admin.id:
        raise HTTPException(status_code=400, detail="Cannot deactivate your own account")

    user.is_active = False
    await db.commit()
    logger.info("Deactivated user %d (%s)", user_id, user.username)
    return DeleteResponse(success=True, message=f"User '{user.username}' deactivated")
