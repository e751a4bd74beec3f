"""Pydantic schemas for payslip generation, reports, edits and logs."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field, model_validator

from paytrack.schemas.common import CamelModel


# ── Selectors ───────────────────────────────────────────────────────
class PeriodSelector(CamelModel):
    """One of ``selectedDates`` | ``startDate``+``endDate`` | ``weekStart``."""

    week_start: date | None = None
    start_date: date | None = None
    end_date: date | None = None
    selected_dates: list[date] | None = None
    user_ids: list[int] | None = None

    @model_validator(mode="after")
    def _ordered_range(self) -> "PeriodSelector":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("startDate must not be after endDate")
        return self


class GeneratePayslipsRequest(PeriodSelector):
    pass


class ReleasePayslipsRequest(PeriodSelector):
    pass


class RecalculateRequest(CamelModel):
    payslip_ids: list[int] | None = None


# ── Payslips ────────────────────────────────────────────────────────
class PayslipRead(BaseModel):
    id: int
    user_id: int
    week_start: date
    week_end: date
    total_hours: float
    overtime_hours: float
    undertime_hours: float
    base_salary: float
    overtime_pay: float
    undertime_deduction: float
    staff_house_deduction: float
    total_salary: float
    clock_in_time: datetime | None
    clock_out_time: datetime | None
    status: str
    username: str | None = None  # joined from users
    department: str | None = None

    model_config = {"from_attributes": True}


class PayslipUpdate(CamelModel):
    """Full overwrite of a payslip's computed fields.

    ``totalSalary`` is never accepted from the client; it is recomputed.
    """

    clock_in: datetime | None = None
    clock_out: datetime | None = None
    total_hours: float = Field(ge=0)
    overtime_hours: float = Field(ge=0)
    undertime_hours: float = Field(ge=0)
    base_salary: float = Field(ge=0)
    overtime_pay: float = Field(ge=0)
    undertime_deduction: float = Field(ge=0)
    staff_house_deduction: float = Field(ge=0)


class ReleaseResponse(BaseModel):
    success: bool
    released_count: int
    message: str


class RecalculateResponse(BaseModel):
    success: bool
    recalculated_count: int
    message: str
    payslips: list[PayslipRead]


# ── Logs ────────────────────────────────────────────────────────────
class PayslipLogCreate(CamelModel):
    action: str = Field(min_length=1, max_length=30)
    selected_dates: list[date] = Field(min_length=1)
    payslip_count: int = Field(default=0, ge=0)
    user_ids: list[int] | None = None


class PayslipLogRead(BaseModel):
    id: int
    admin_id: int
    admin_username: str | None = None
    action: str
    period_start: date | None
    period_end: date | None
    payslip_count: int
    user_ids: list[int] | None
    created_at: datetime | None

    model_config = {"from_attributes": True}
