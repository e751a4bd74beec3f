"""
Payroll endpoints — generation, reports, manual edits, release and recalculation.

Each admin action on payslips appends a ``payslip_logs`` row.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from paytrack.api.v1.deps import (get_current_active_user, get_db,
                                  get_payroll_rules, require_admin)
from paytrack.api.v1.params import period_selector
from paytrack.core import clock
from paytrack.core.exceptions import InvalidSelectorError
from paytrack.models.payslip import Payslip, PayslipStatus
from paytrack.models.user import User
from paytrack.schemas.payroll import (GeneratePayslipsRequest, PayslipRead,
                                      PayslipUpdate, PeriodSelector,
                                      RecalculateRequest, RecalculateResponse,
                                      ReleasePayslipsRequest, ReleaseResponse)
from paytrack.services import payslips as payslip_service
from paytrack.services.payroll_calculator import PayrollRules

router = APIRouter(tags=["payroll"])
logger = logging.getLogger(__name__)

_VALID_STATUSES = {s.value for s in PayslipStatus}


def _payslip_row(payslip: Payslip, username: str | None, department: str | None) -> PayslipRead:
    return PayslipRead.model_validate(payslip).model_copy(
        update={"username": username, "department": department}
    )


# ── Generation ──────────────────────────────────────────────────────
@router.post("/payslips/generate", response_model=list[PayslipRead])
async def generate_payslips(
    body: GeneratePayslipsRequest,
    db: AsyncSession = Depends(get_db),
    rules: PayrollRules = Depends(get_payroll_rules),
    admin: User = Depends(require_admin),
) -> list[PayslipRead]:
    """Create daily payslips for the selected days. Returns only new rows."""
    days = payslip_service.resolve_days(body)
    created = await payslip_service.generate_payslips(
        db, days, rules, body.user_ids, admin_id=admin.id
    )
    rows = await payslip_service.with_user_columns(db, created)
    return [_payslip_row(*row) for row in rows]


# ── Reports ─────────────────────────────────────────────────────────
@router.get("/payroll-report", response_model=list[PayslipRead])
async def payroll_report(
    selector: PeriodSelector = Depends(period_selector),
    status: str | None = None,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> list[PayslipRead]:
    if status is not None and status not in _VALID_STATUSES:
        raise InvalidSelectorError(f"Unknown status: {status}")
    rows = await payslip_service.payroll_report(db, selector, status)
    return [_payslip_row(*row) for row in rows]


_CSV_COLUMNS = (
    "username",
    "department",
    "week_start",
    "week_end",
    "total_hours",
    "overtime_hours",
    "undertime_hours",
    "base_salary",
    "overtime_pay",
    "undertime_deduction",
    "staff_house_deduction",
    "total_salary",
    "status",
)


@router.get("/payroll-report/csv")
async def payroll_report_csv(
    selector: PeriodSelector = Depends(period_selector),
    status: str | None = None,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> StreamingResponse:
    """Export the payroll report as a CSV file download."""
    if status is not None and status not in _VALID_STATUSES:
        raise InvalidSelectorError(f"Unknown status: {status}")
    rows = [_payslip_row(*row) for row in await payslip_service.payroll_report(db, selector, status)]

    def iter_csv():
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(_CSV_COLUMNS)
        for row in rows:
            data = row.model_dump()
            writer.writerow([data[col] if data[col] is not None else "" for col in _CSV_COLUMNS])
            yield buffer.getvalue()
            buffer.seek(0)
            buffer.truncate(0)
        if not rows:
            yield buffer.getvalue()

    stamp = clock.local_today().isoformat()
    return StreamingResponse(
        iter_csv(),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=payroll_{stamp}.csv"},
    )


@router.get("/payroll-history", response_model=list[PayslipRead])
async def payroll_history(
    specific_day: date | None = Query(default=None, alias="specificDay"),
    week_start: date | None = Query(default=None, alias="weekStart"),
    week_end: date | None = Query(default=None, alias="weekEnd"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> list[Payslip]:
    """The caller's released payslips; defaults to the current year."""
    if specific_day:
        start = end = specific_day
    elif week_start and week_end:
        if week_start > week_end:
            raise InvalidSelectorError("weekStart must not be after weekEnd")
        start, end = week_start, week_end
    else:
        year = clock.local_today().year
        start, end = date(year, 1, 1), date(year, 12, 31)
    return await payslip_service.payroll_history(db, current_user.id, start, end)


# ── Manual edit ─────────────────────────────────────────────────────
@router.put("/payroll/{payslip_id}", response_model=PayslipRead)
async def update_payslip(
    payslip_id: int,
    body: PayslipUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> PayslipRead:
    await payslip_service.update_payslip(db, payslip_id, body, admin_id=admin.id)
    rows = await payslip_service.with_user_columns(db, [payslip_id])
    return _payslip_row(*rows[0])


# ── Release & recalculation ─────────────────────────────────────────
@router.post("/payslips/release", response_model=ReleaseResponse)
async def release_payslips(
    body: ReleasePayslipsRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ReleaseResponse:
    """Release pending payslips in the selected period (all pending when none)."""
    released = await payslip_service.release_payslips(db, body, admin_id=admin.id)
    return ReleaseResponse(
        success=True,
        released_count=len(released),
        message=f"Released {len(released)} payslip(s)",
    )


@router.post("/payslips/recalculate", response_model=RecalculateResponse)
async def recalculate_payslips(
    body: RecalculateRequest | None = None,
    db: AsyncSession = Depends(get_db),
    rules: PayrollRules = Depends(get_payroll_rules),
    admin: User = Depends(require_admin),
) -> RecalculateResponse:
    ids = await payslip_service.recalculate_payslips(
        db, rules, body.payslip_ids if body else None, admin_id=admin.id
    )
    rows = await payslip_service.with_user_columns(db, ids)
    return RecalculateResponse(
        success=True,
        recalculated_count=len(rows),
        message=f"Recalculated {len(rows)} payslip(s)",
        payslips=[_payslip_row(*row) for row in rows],
    )
