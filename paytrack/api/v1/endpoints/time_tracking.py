"""
Time tracking endpoints — clock-in/out, overtime requests and admin views.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from paytrack.api.v1.deps import get_current_active_user, get_db, require_admin
from paytrack.api.v1.params import parse_id_list, period_selector
from paytrack.core import clock
from paytrack.core.clock import parse_hhmm
from paytrack.models.time_entry import TimeEntry
from paytrack.models.user import User
from paytrack.schemas.common import ActionResponse
from paytrack.schemas.payroll import PeriodSelector
from paytrack.schemas.time_entry import (ActiveUser, AvailableDate,
                                         ClockInResponse, ClockOutRequest,
                                         ClockOutResponse, OvertimeDecision,
                                         OvertimeRequestCreate,
                                         TimeAdjustRequest, TimeAdjustResponse,
                                         TimeEntryRead)
from paytrack.services import time_tracking
from paytrack.services.payslips import has_period, resolve_days

router = APIRouter(tags=["time-tracking"])
logger = logging.getLogger(__name__)


def _entry_row(entry: TimeEntry, username: str | None, department: str | None) -> TimeEntryRead:
    return TimeEntryRead.model_validate(entry).model_copy(
        update={"username": username, "department": department}
    )


# ── Employee clock ──────────────────────────────────────────────────
@router.post("/clock-in", response_model=ClockInResponse)
async def clock_in(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ClockInResponse:
    entry = await time_tracking.clock_in(db, current_user)
    return ClockInResponse(success=True, entry_id=entry.id, clock_in=entry.clock_in)


@router.post("/reset-clock-in", response_model=ClockInResponse)
async def reset_clock_in(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ClockInResponse:
    """Drop today's entries and start a fresh session now."""
    entry = await time_tracking.reset_clock_in(db, current_user)
    return ClockInResponse(success=True, entry_id=entry.id, clock_in=entry.clock_in)


@router.post("/clock-out", response_model=ClockOutResponse)
async def clock_out(
    body: ClockOutRequest | None = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ClockOutResponse:
    """Close the open session; an ``overtimeNote`` also files an overtime request."""
    note = body.overtime_note.strip() if body and body.overtime_note else None
    entry = await time_tracking.clock_out(db, current_user, overtime_note=note)
    return ClockOutResponse(
        success=True,
        entry_id=entry.id,
        clock_out=entry.clock_out,
        worked_hours=time_tracking.hours_between(entry.clock_in, entry.clock_out),
        overtime_requested=entry.overtime_requested,
    )


@router.get("/today-entry", response_model=TimeEntryRead | None)
async def today_entry(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> TimeEntry | None:
    return await time_tracking.today_entry(db, current_user.id)


# ── Overtime ────────────────────────────────────────────────────────
@router.post("/overtime-request", response_model=TimeEntryRead)
async def request_overtime(
    body: OvertimeRequestCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> TimeEntry:
    return await time_tracking.request_overtime(db, current_user, body.day, body.overtime_note)


@router.get("/overtime-requests", response_model=list[TimeEntryRead])
async def list_overtime_requests(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> list[TimeEntryRead]:
    rows = await time_tracking.pending_overtime_requests(db)
    return [_entry_row(entry, username, dept) for entry, username, dept in rows]


@router.post("/overtime-requests/{entry_id}/approve", response_model=ActionResponse)
async def decide_overtime(
    entry_id: int,
    body: OvertimeDecision,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ActionResponse:
    _, affected = await time_tracking.decide_overtime(db, entry_id, body.approved, admin)
    verdict = "approved" if body.approved else "rejected"
    return ActionResponse(
        message=f"Overtime request {verdict}; {affected} payslip(s) need recalculation"
    )


@router.get("/overtime-notifications", response_model=list[TimeEntryRead])
async def overtime_notifications(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> list[TimeEntry]:
    """Decided requests not yet shown to the caller; they are marked as shown."""
    return await time_tracking.overtime_notifications(db, current_user.id)


# ── Admin adjustments and views ─────────────────────────────────────
@router.post("/users/{user_id}/adjust-time", response_model=TimeAdjustResponse)
async def adjust_time(
    user_id: int,
    body: TimeAdjustRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> TimeAdjustResponse:
    entry, affected = await time_tracking.adjust_time(
        db,
        user_id,
        body.day,
        parse_hhmm(body.clock_in),
        parse_hhmm(body.clock_out) if body.clock_out else None,
        admin,
    )
    return TimeAdjustResponse(success=True, entry_id=entry.id, affected_payslips=affected)


@router.get("/time-logs", response_model=list[TimeEntryRead])
async def time_logs(
    selector: PeriodSelector = Depends(period_selector),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> list[TimeEntryRead]:
    """Entries in the selected period; the last seven days when none is given."""
    if has_period(selector):
        days = resolve_days(selector)
    else:
        today = clock.local_today()
        days = [today - timedelta(days=6), today]

    rows = await time_tracking.time_logs(db, days[0], days[-1], selector.user_ids)
    if selector.selected_dates:
        wanted = set(days)
        rows = [row for row in rows if row[0].work_date in wanted]
    return [_entry_row(entry, username, dept) for entry, username, dept in rows]


@router.get("/time-entries", response_model=list[TimeEntryRead])
async def time_entries_for_day(
    day: date = Query(alias="date"),
    user_ids: str | None = Query(default=None, alias="userIds"),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> list[TimeEntryRead]:
    rows = await time_tracking.time_logs(db, day, day, parse_id_list(user_ids))
    return [_entry_row(entry, username, dept) for entry, username, dept in rows]


@router.get("/available-dates", response_model=list[AvailableDate])
async def available_dates(
    user_ids: str | None = Query(default=None, alias="userIds"),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> list[dict]:
    return await time_tracking.available_dates(db, parse_id_list(user_ids))


@router.get("/active-users", response_model=list[ActiveUser])
async def active_users(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> list[ActiveUser]:
    rows = await time_tracking.active_users_today(db)
    return [
        ActiveUser(id=user.id, username=user.username, department=user.department, clock_in=clock_in)
        for user, clock_in in rows
    ]
