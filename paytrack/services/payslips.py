"""
Payslip generation, release, edit and recalculation.

Every payslip window is a single calendar day (``week_start == week_end``):
each selector mode is resolved to a list of days first. Inserts go through
"insert, do nothing on conflict" against the ``(user_id, week_start,
week_end)`` unique constraint, so repeating a generation is a no-op even
under concurrent requests.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from typing import Any

from sqlalchemy import insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from paytrack.core.clock import to_local
from paytrack.core.exceptions import (InvalidSelectorError,
                                      InvalidStatusTransition,
                                      PayslipNotFoundError, UserNotFoundError)
from paytrack.models.payslip import (ALLOWED_TRANSITIONS, Payslip, PayslipLog,
                                     PayslipStatus)
from paytrack.models.time_entry import TimeEntry
from paytrack.models.user import User
from paytrack.schemas.payroll import PayslipUpdate, PeriodSelector
from paytrack.services.payroll_calculator import (PayrollResult, PayrollRules,
                                                  calculate_payroll,
                                                  compute_total_salary)

logger = logging.getLogger(__name__)

MAX_PERIOD_DAYS = 366

_AMOUNT_FIELDS = (
    "total_hours",
    "overtime_hours",
    "undertime_hours",
    "base_salary",
    "overtime_pay",
    "undertime_deduction",
    "staff_house_deduction",
)


# ── Selectors ───────────────────────────────────────────────────────
def date_range(start: date, end: date) -> list[date]:
    """Inclusive list of days between *start* and *end*."""
    if start > end:
        raise InvalidSelectorError("startDate must not be after endDate")
    span = (end - start).days + 1
    if span > MAX_PERIOD_DAYS:
        raise InvalidSelectorError(f"Period must not exceed {MAX_PERIOD_DAYS} days")
    return [start + timedelta(days=i) for i in range(span)]


def resolve_days(selector: PeriodSelector) -> list[date]:
    """Expand a selector into the list of days it covers.

    Priority follows the dashboard: selected dates, then a range, then a week.
    """
    if selector.selected_dates:
        return sorted(set(selector.selected_dates))
    if selector.start_date and selector.end_date:
        return date_range(selector.start_date, selector.end_date)
    if selector.week_start:
        return date_range(selector.week_start, selector.week_start + timedelta(days=6))
    raise InvalidSelectorError(
        "Either weekStart, startDate/endDate, or selectedDates is required"
    )



def has_period(selector: PeriodSelector) -> bool:
    return bool(
        selector.selected_dates
        or selector.week_start
        or (selector.start_date and selector.end_date)
    )

# ── State machine ───────────────────────────────────────────────────
def transition(payslip: Payslip, target: PayslipStatus) -> None:
    current = PayslipStatus(payslip.status)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransition(current.value, target.value)
    payslip.status = target.value


# ── Persistence helpers ─────────────────────────────────────────────
def stored_amounts(result: PayrollResult) -> dict[str, Any]:
    """Round a calculation for storage; the net is derived from rounded parts."""
    values: dict[str, Any] = {
        name: round(getattr(result, name), 2) for name in _AMOUNT_FIELDS
    }
    values["total_salary"] = round(
        compute_total_salary(
            values["base_salary"],
            values["overtime_pay"],
            values["undertime_deduction"],
            values["staff_house_deduction"],
        ),
        2,
    )
    values["clock_in_time"] = result.clock_in_time
    values["clock_out_time"] = result.clock_out_time
    return values


async def _insert_if_absent(db: AsyncSession, values: dict[str, Any]) -> int | None:
    """Insert a payslip row; return its id, or ``None`` if the window is taken."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(Payslip).values(**values).on_conflict_do_nothing(
            constraint="uq_payslip_user_window"
        )
    elif dialect == "sqlite":
        stmt = sqlite.insert(Payslip).values(**values).on_conflict_do_nothing(
            index_elements=["user_id", "week_start", "week_end"]
        )
    else:
        existing = await db.execute(
            select(Payslip.id).where(
                Payslip.user_id == values["user_id"],
                Payslip.week_start == values["week_start"],
                Payslip.week_end == values["week_end"],
            )
        )
        if existing.scalar_one_or_none() is not None:
            return None
        stmt = insert(Payslip).values(**values)
    result = await db.execute(stmt.returning(Payslip.id))
    return result.scalar_one_or_none()


async def with_user_columns(
    db: AsyncSession, payslip_ids: Iterable[int]
) -> list[tuple[Payslip, str, str | None]]:
    ids = list(payslip_ids)
    if not ids:
        return []
    result = await db.execute(
        select(Payslip, User.username, User.department)
        .join(User, Payslip.user_id == User.id)
        .where(Payslip.id.in_(ids))
        .order_by(Payslip.week_start, User.department, User.username)
    )
    return [tuple(row) for row in result.all()]  # type: ignore[misc]


# ── Calculation ─────────────────────────────────────────────────────
async def calculate_for_window(
    db: AsyncSession,
    user_id: int,
    start: date,
    end: date,
    rules: PayrollRules,
) -> PayrollResult:
    """Run the calculator for one user over ``[start, end]``.

    Raises :class:`UserNotFoundError` for an unknown user; storage errors
    propagate unchanged.
    """
    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)

    result = await db.execute(
        select(TimeEntry)
        .where(
            TimeEntry.user_id == user_id,
            TimeEntry.work_date >= start,
            TimeEntry.work_date <= end,
        )
        .order_by(TimeEntry.clock_in)
    )
    entries = list(result.scalars().all())
    return calculate_payroll(
        entries,
        staff_house=bool(user.staff_house),
        rules=rules,
        window_days=(end - start).days + 1,
    )


# ── Generation ──────────────────────────────────────────────────────
async def generate_payslips(
    db: AsyncSession,
    days: Sequence[date],
    rules: PayrollRules,
    user_ids: Sequence[int] | None = None,
    *,
    admin_id: int,
) -> list[int]:
    """Create daily payslips for every active user with closed entries.

    Returns ids of newly created payslips only; existing windows are skipped.
    The whole batch and its `generated` audit row commit at once.
    """
    if not days:
        return []

    query = (
        select(TimeEntry, User)
        .join(User, TimeEntry.user_id == User.id)
        .where(
            User.is_active.is_(True),
            TimeEntry.work_date.in_(list(days)),
            TimeEntry.clock_out.is_not(None),
        )
        .order_by(TimeEntry.user_id, TimeEntry.clock_in)
    )
    if user_ids:
        query = query.where(User.id.in_(list(user_ids)))
    rows = (await db.execute(query)).all()

    by_window: dict[tuple[int, date], list[TimeEntry]] = defaultdict(list)
    users: dict[int, User] = {}
    for entry, user in rows:
        by_window[(user.id, entry.work_date)].append(entry)
        users[user.id] = user

    created: list[int] = []
    skipped = 0
    for (user_id, day), entries in sorted(by_window.items()):
        user = users[user_id]
        payroll = calculate_payroll(entries, staff_house=bool(user.staff_house), rules=rules)
        if payroll.total_hours <= 0:
            logger.debug("No payable hours for %s on %s", user.username, day)
            continue

        payslip_id = await _insert_if_absent(
            db,
            {
                "user_id": user_id,
                "week_start": day,
                "week_end": day,
                "status": PayslipStatus.PENDING.value,
                **stored_amounts(payroll),
            },
        )
        if payslip_id is None:
            skipped += 1
            logger.debug("Payslip already exists for %s on %s", user.username, day)
            continue
        created.append(payslip_id)

    stage_payslip_log(db, admin_id, "generated", days, len(created), user_ids)
    await db.commit()
    logger.info(
        "Generated %d payslips over %d day(s) (%d already existed)",
        len(created),
        len(days),
        skipped,
    )
    return created


# ── Manual edit ─────────────────────────────────────────────────────
async def update_payslip(
    db: AsyncSession, payslip_id: int, body: PayslipUpdate, *, admin_id: int
) -> Payslip:
    """Overwrite a payslip's figures verbatim and recompute its net pay."""
    payslip = await db.get(Payslip, payslip_id)
    if payslip is None:
        raise PayslipNotFoundError(payslip_id)

    for name in _AMOUNT_FIELDS:
        setattr(payslip, name, getattr(body, name))
    payslip.clock_in_time = to_local(body.clock_in) if body.clock_in else None
    payslip.clock_out_time = to_local(body.clock_out) if body.clock_out else None
    payslip.total_salary = round(
        compute_total_salary(
            body.base_salary,
            body.overtime_pay,
            body.undertime_deduction,
            body.staff_house_deduction,
        ),
        2,
    )
    stage_payslip_log(
        db,
        admin_id,
        "edited",
        [payslip.week_start, payslip.week_end],
        1,
        [payslip.user_id],
    )
    await db.commit()
    await db.refresh(payslip)
    logger.info("Payslip %d edited manually (net %.2f)", payslip_id, payslip.total_salary)
    return payslip


# ── Recalculation ───────────────────────────────────────────────────
async def recalculate_payslips(
    db: AsyncSession,
    rules: PayrollRules,
    payslip_ids: Sequence[int] | None = None,
    *,
    admin_id: int,
) -> list[int]:
    """Recompute payslips flagged ``needs_recalculation`` and reset them to pending."""
    query = select(Payslip).where(
        Payslip.status == PayslipStatus.NEEDS_RECALCULATION.value
    )
    if payslip_ids:
        query = query.where(Payslip.id.in_(list(payslip_ids)))
    payslips = list((await db.execute(query.order_by(Payslip.id))).scalars().all())

    done: list[int] = []
    for payslip in payslips:
        payroll = await calculate_for_window(
            db, payslip.user_id, payslip.week_start, payslip.week_end, rules
        )
        for name, value in stored_amounts(payroll).items():
            setattr(payslip, name, value)
        transition(payslip, PayslipStatus.PENDING)
        done.append(payslip.id)

    if payslips:
        stage_payslip_log(
            db,
            admin_id,
            "recalculated",
            [d for p in payslips for d in (p.week_start, p.week_end)],
            len(payslips),
            sorted({p.user_id for p in payslips}),
        )
    await db.commit()
    logger.info("Recalculated %d payslips", len(done))
    return done


# ── Release ─────────────────────────────────────────────────────────
async def release_payslips(
    db: AsyncSession, selector: PeriodSelector, *, admin_id: int
) -> list[int]:
    """Release pending payslips in scope. Without a period every pending one is in scope."""
    logged_days = resolve_days(selector) if has_period(selector) else []
    query = select(Payslip).where(Payslip.status == PayslipStatus.PENDING.value)
    if selector.selected_dates:
        dates = list(set(selector.selected_dates))
        query = query.where(Payslip.week_start.in_(dates), Payslip.week_end.in_(dates))
    elif selector.start_date and selector.end_date:
        query = query.where(
            Payslip.week_start >= selector.start_date,
            Payslip.week_end <= selector.end_date,
        )
    elif selector.week_start:
        query = query.where(
            Payslip.week_start >= selector.week_start,
            Payslip.week_end <= selector.week_start + timedelta(days=6),
        )
    if selector.user_ids:
        query = query.where(Payslip.user_id.in_(list(selector.user_ids)))

    payslips = list((await db.execute(query)).scalars().all())
    for payslip in payslips:
        transition(payslip, PayslipStatus.RELEASED)
    stage_payslip_log(
        db, admin_id, "released", logged_days, len(payslips), selector.user_ids
    )
    await db.commit()
    logger.info("Released %d payslips", len(payslips))
    return [p.id for p in payslips]


# ── Invalidation ────────────────────────────────────────────────────
async def invalidate_payslips(db: AsyncSession, user_id: int, day: date) -> int:
    """Flag the user's payslips whose window covers *day*. Caller commits."""
    result = await db.execute(
        select(Payslip).where(
            Payslip.user_id == user_id,
            Payslip.week_start <= day,
            Payslip.week_end >= day,
            Payslip.status != PayslipStatus.NEEDS_RECALCULATION.value,
        )
    )
    payslips = list(result.scalars().all())
    for payslip in payslips:
        transition(payslip, PayslipStatus.NEEDS_RECALCULATION)
    if payslips:
        logger.info(
            "Marked %d payslip(s) of user %d for recalculation (%s)",
            len(payslips),
            user_id,
            day,
        )
    return len(payslips)


# ── Audit log ───────────────────────────────────────────────────────
def stage_payslip_log(
    db: AsyncSession,
    admin_id: int,
    action: str,
    dates: Sequence[date],
    payslip_count: int,
    user_ids: Sequence[int] | None = None,
) -> PayslipLog:
    """Add an audit row to the session. The caller commits it with the change it records."""
    ordered = sorted(dates)
    entry = PayslipLog(
        admin_id=admin_id,
        action=action,
        period_start=ordered[0] if ordered else None,
        period_end=ordered[-1] if ordered else None,
        payslip_count=payslip_count,
        user_ids=list(user_ids) if user_ids else None,
    )
    db.add(entry)
    return entry


# ── Reports ─────────────────────────────────────────────────────────
async def payroll_report(
    db: AsyncSession,
    selector: PeriodSelector,
    status: str | None = None,
) -> list[tuple[Payslip, str, str | None]]:
    query = select(Payslip, User.username, User.department).join(
        User, Payslip.user_id == User.id
    )
    if selector.selected_dates:
        query = query.where(Payslip.week_start.in_(list(set(selector.selected_dates))))
    else:
        days = resolve_days(selector)
        query = query.where(Payslip.week_start >= days[0], Payslip.week_start <= days[-1])
    if selector.user_ids:
        query = query.where(Payslip.user_id.in_(list(selector.user_ids)))
    if status:
        query = query.where(Payslip.status == status)

    result = await db.execute(
        query.order_by(Payslip.week_start.desc(), User.department, User.username)
    )
    return [tuple(row) for row in result.all()]  # type: ignore[misc]


async def payroll_history(
    db: AsyncSession, user_id: int, start: date, end: date
) -> list[Payslip]:
    """A user's released payslips whose window starts in ``[start, end]``."""
    result = await db.execute(
        select(Payslip)
        .where(
            Payslip.user_id == user_id,
            Payslip.status == PayslipStatus.RELEASED.value,
            Payslip.week_start >= start,
            Payslip.week_start <= end,
        )
        .order_by(Payslip.week_start.desc())
    )
    return list(result.scalars().all())


async def recent_payslips(db: AsyncSession, user_id: int, limit: int = 5) -> list[Payslip]:
    result = await db.execute(
        select(Payslip)
        .where(Payslip.user_id == user_id, Payslip.status == PayslipStatus.RELEASED.value)
        .order_by(Payslip.week_start.desc(), Payslip.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
