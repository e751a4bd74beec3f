"""
Clock-in / clock-out, overtime requests and admin time adjustments.

All timestamps come from :func:`paytrack.core.clock.local_now` so the stored
wall-clock values line up with the shift boundaries used by the calculator.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from paytrack.core import clock
from paytrack.core.exceptions import (ClockStateError, TimeEntryNotFoundError,
                                      UserNotFoundError)
from paytrack.models.time_entry import TimeEntry
from paytrack.models.user import User
from paytrack.services.payroll_calculator import PayrollRules
from paytrack.services.payslips import invalidate_payslips

logger = logging.getLogger(__name__)

# Manual overtime requests without a matching entry are filed as 16:00-18:00.
MANUAL_OVERTIME_START = time(16, 0)
MANUAL_OVERTIME_END = time(18, 0)


def hours_between(start: datetime, end: datetime) -> float:
    return round(max(0.0, (end - start).total_seconds()) / 3600, 2)


async def get_open_entry(db: AsyncSession, user_id: int) -> TimeEntry | None:
    result = await db.execute(
        select(TimeEntry)
        .where(TimeEntry.user_id == user_id, TimeEntry.clock_out.is_(None))
        .order_by(TimeEntry.clock_in.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


# ── Clocking ────────────────────────────────────────────────────────
async def clock_in(db: AsyncSession, user: User) -> TimeEntry:
    """Open a session for *user*; at most one open session may exist."""
    if await get_open_entry(db, user.id) is not None:
        raise ClockStateError("Already clocked in")

    now = clock.local_now()
    entry = TimeEntry(user_id=user.id, clock_in=now, work_date=now.date())
    db.add(entry)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race against a concurrent clock-in; the partial index held.
        await db.rollback()
        raise ClockStateError("Already clocked in") from None
    await db.refresh(entry)
    logger.info("Clock-in for %s at %s", user.username, now.isoformat())
    return entry


async def reset_clock_in(db: AsyncSession, user: User) -> TimeEntry:
    """Discard today's entries for *user* and clock in again at the current time.

    Payslips covering today are flagged for recalculation.
    """
    now = clock.local_now()
    today = now.date()
    await db.execute(
        delete(TimeEntry).where(TimeEntry.user_id == user.id, TimeEntry.work_date == today)
    )
    affected = await invalidate_payslips(db, user.id, today)
    entry = TimeEntry(user_id=user.id, clock_in=now, work_date=today)
    db.add(entry)
    try:
        await db.commit()
    except IntegrityError:
        # An open session from an earlier day is still holding the partial index.
        await db.rollback()
        raise ClockStateError("Already clocked in") from None
    await db.refresh(entry)
    logger.info(
        "Clock-in reset for %s at %s (%d payslip(s) flagged)",
        user.username,
        now.isoformat(),
        affected,
    )
    return entry


async def clock_out(
    db: AsyncSession, user: User, overtime_note: str | None = None
) -> TimeEntry:
    """Close the open session. A note files an overtime request on the entry."""
    entry = await get_open_entry(db, user.id)
    if entry is None:
        raise ClockStateError("No active clock in found")

    now = clock.local_now()
    entry.clock_out = max(now, entry.clock_in)
    if overtime_note:
        entry.overtime_requested = True
        entry.overtime_note = overtime_note
        entry.overtime_approved = None
    await db.commit()
    await db.refresh(entry)
    logger.info(
        "Clock-out for %s after %.2f h%s",
        user.username,
        hours_between(entry.clock_in, entry.clock_out),
        " (overtime requested)" if overtime_note else "",
    )
    return entry


async def today_entry(db: AsyncSession, user_id: int) -> TimeEntry | None:
    result = await db.execute(
        select(TimeEntry)
        .where(TimeEntry.user_id == user_id, TimeEntry.work_date == clock.local_today())
        .order_by(TimeEntry.clock_in.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


# ── Overtime ────────────────────────────────────────────────────────
async def request_overtime(
    db: AsyncSession, user: User, day: date, note: str | None
) -> TimeEntry:
    """Flag the day's first entry as an overtime request, or file a manual one."""
    result = await db.execute(
        select(TimeEntry)
        .where(TimeEntry.user_id == user.id, TimeEntry.work_date == day)
        .order_by(TimeEntry.clock_in)
        .limit(1)
    )
    entry = result.scalar_one_or_none()
    if entry is None:
        entry = TimeEntry(
            user_id=user.id,
            clock_in=datetime.combine(day, MANUAL_OVERTIME_START),
            clock_out=datetime.combine(day, MANUAL_OVERTIME_END),
            work_date=day,
        )
        db.add(entry)

    entry.overtime_requested = True
    entry.overtime_note = note
    entry.overtime_approved = None
    entry.overtime_notification_sent = False
    await db.commit()
    await db.refresh(entry)
    logger.info("Overtime requested by %s for %s (entry %d)", user.username, day, entry.id)
    return entry


async def pending_overtime_requests(
    db: AsyncSession,
) -> list[tuple[TimeEntry, str, str | None]]:
    result = await db.execute(
        select(TimeEntry, User.username, User.department)
        .join(User, TimeEntry.user_id == User.id)
        .where(
            TimeEntry.overtime_requested.is_(True),
            TimeEntry.overtime_approved.is_(None),
        )
        .order_by(TimeEntry.created_at.desc())
    )
    return [tuple(row) for row in result.all()]  # type: ignore[misc]


async def decide_overtime(
    db: AsyncSession, entry_id: int, approved: bool, admin: User
) -> tuple[TimeEntry, int]:
    """Record an admin decision; payslips covering the day need recalculation."""
    entry = await db.get(TimeEntry, entry_id)
    if entry is None:
        raise TimeEntryNotFoundError(entry_id)

    entry.overtime_approved = approved
    entry.overtime_approved_by = admin.id
    entry.overtime_notification_sent = False
    affected = await invalidate_payslips(db, entry.user_id, entry.work_date)
    await db.commit()
    await db.refresh(entry)
    logger.info(
        "Overtime %s for entry %d by %s",
        "approved" if approved else "rejected",
        entry_id,
        admin.username,
    )
    return entry, affected


async def overtime_notifications(db: AsyncSession, user_id: int) -> list[TimeEntry]:
    """Decided requests the user has not seen yet; marks them as seen."""
    result = await db.execute(
        select(TimeEntry)
        .where(
            TimeEntry.user_id == user_id,
            TimeEntry.overtime_approved.is_not(None),
            TimeEntry.overtime_notification_sent.is_(False),
        )
        .order_by(TimeEntry.updated_at.desc())
    )
    entries = list(result.scalars().all())
    for entry in entries:
        entry.overtime_notification_sent = True
    if entries:
        await db.commit()
    return entries


# ── Admin adjustment ────────────────────────────────────────────────
async def adjust_time(
    db: AsyncSession,
    user_id: int,
    day: date,
    clock_in_at: time,
    clock_out_at: time | None,
    admin: User,
) -> tuple[TimeEntry, int]:
    """Replace a user's entries for *day* with one corrected entry.

    Overtime request fields of the replaced entry are carried over. Payslips
    covering the day are flagged for recalculation.
    """
    if await db.get(User, user_id) is None:
        raise UserNotFoundError(user_id)

    result = await db.execute(
        select(TimeEntry)
        .where(TimeEntry.user_id == user_id, TimeEntry.work_date == day)
        .order_by(TimeEntry.clock_in)
    )
    previous = list(result.scalars().all())
    carried: dict = {}
    if previous:
        first = previous[0]
        carried = {
            "overtime_requested": first.overtime_requested,
            "overtime_approved": first.overtime_approved,
            "overtime_note": first.overtime_note,
            "overtime_approved_by": first.overtime_approved_by,
        }

    start = datetime.combine(day, clock_in_at)
    end = datetime.combine(day, clock_out_at) if clock_out_at else None
    if end is not None and end < start:
        raise ClockStateError("clockOut must not be before clockIn")
    if end is None:
        open_entry = await get_open_entry(db, user_id)
        if open_entry is not None and open_entry.work_date != day:
            raise ClockStateError("User already has an open session")

    await db.execute(
        delete(TimeEntry).where(TimeEntry.user_id == user_id, TimeEntry.work_date == day)
    )
    entry = TimeEntry(
        user_id=user_id,
        clock_in=start,
        clock_out=end,
        work_date=day,
        **carried,
    )
    db.add(entry)
    affected = await invalidate_payslips(db, user_id, day)
    await db.commit()
    await db.refresh(entry)
    logger.info(
        "Admin %s adjusted %s for user %d: %s-%s (%d payslip(s) flagged)",
        admin.username,
        day,
        user_id,
        clock_in_at.strftime("%H:%M"),
        clock_out_at.strftime("%H:%M") if clock_out_at else "open",
        affected,
    )
    return entry, affected


# ── Progress & dashboards ───────────────────────────────────────────
async def hours_progress(db: AsyncSession, user: User, rules: PayrollRules) -> dict:
    """Worked hours (closed entries) against the user's required-hours goal."""
    result = await db.execute(
        select(TimeEntry)
        .where(TimeEntry.user_id == user.id, TimeEntry.clock_out.is_not(None))
        .order_by(TimeEntry.clock_in)
    )
    entries = list(result.scalars().all())

    worked = sum(hours_between(e.clock_in, e.clock_out) for e in entries)
    overtime = 0.0
    late_days: set[date] = set()
    for e in entries:
        if e.overtime_requested and e.overtime_approved:
            shift_end = datetime.combine(e.work_date, rules.shift_end)
            overtime += hours_between(shift_end, e.clock_out) if e.clock_out > shift_end else 0.0
        if e.clock_in.time() > rules.shift_start:
            late_days.add(e.work_date)

    required = float(user.required_hours or 0.0)
    worked = round(worked, 2)
    return {
        "required_hours": required,
        "worked_hours": worked,
        "remaining_hours": round(max(0.0, required - worked), 2),
        "progress_percentage": round(min(100.0, worked / required * 100), 2) if required > 0 else 0.0,
        "is_completed": worked >= required,
        "total_overtime_hours": round(overtime, 2),
        "total_days_worked": len({e.work_date for e in entries}),
        "total_late_instances": len(late_days),
    }


async def active_users_today(db: AsyncSession) -> list[tuple[User, datetime]]:
    result = await db.execute(
        select(User, TimeEntry.clock_in)
        .join(TimeEntry, TimeEntry.user_id == User.id)
        .where(
            TimeEntry.work_date == clock.local_today(),
            TimeEntry.clock_out.is_(None),
            User.is_active.is_(True),
        )
        .order_by(User.department, TimeEntry.clock_in)
    )
    return [tuple(row) for row in result.all()]  # type: ignore[misc]


async def available_dates(
    db: AsyncSession, user_ids: list[int] | None = None, limit: int = 30
) -> list[dict]:
    """Most recent days that have closed entries, with user and entry counts."""
    query = (
        select(
            TimeEntry.work_date,
            func.count(func.distinct(TimeEntry.user_id)),
            func.count(TimeEntry.id),
        )
        .join(User, TimeEntry.user_id == User.id)
        .where(User.is_active.is_(True), TimeEntry.clock_out.is_not(None))
        .group_by(TimeEntry.work_date)
        .order_by(TimeEntry.work_date.desc())
        .limit(limit)
    )
    if user_ids:
        query = query.where(User.id.in_(user_ids))
    result = await db.execute(query)
    return [
        {"entry_date": day, "user_count": users, "total_entries": total}
        for day, users, total in result.all()
    ]


async def time_logs(
    db: AsyncSession,
    start: date,
    end: date,
    user_ids: list[int] | None = None,
) -> list[tuple[TimeEntry, str, str | None]]:
    """Entries whose work date falls in ``[start, end]``, joined with the user."""
    query = (
        select(TimeEntry, User.username, User.department)
        .join(User, TimeEntry.user_id == User.id)
        .where(TimeEntry.work_date >= start, TimeEntry.work_date <= end)
        .order_by(TimeEntry.work_date.desc(), User.department, User.username, TimeEntry.clock_in)
    )
    if user_ids:
        query = query.where(TimeEntry.user_id.in_(user_ids))
    result = await db.execute(query)
    return [tuple(row) for row in result.all()]  # type: ignore[misc]
