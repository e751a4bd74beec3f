"""Pydantic schemas for clocking, overtime and time adjustments."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from paytrack.core.clock import parse_hhmm
from paytrack.schemas.common import CamelModel


# ── Time entries ────────────────────────────────────────────────────
class TimeEntryRead(BaseModel):
    id: int
    user_id: int
    clock_in: datetime
    clock_out: datetime | None
    work_date: date
    overtime_requested: bool
    overtime_approved: bool | None
    overtime_note: str | None
    username: str | None = None  # joined from users
    department: str | None = None

    model_config = {"from_attributes": True}


class ClockInResponse(BaseModel):
    success: bool
    entry_id: int
    clock_in: datetime


class ClockOutRequest(CamelModel):
    overtime_note: str | None = Field(default=None, max_length=1000)


class ClockOutResponse(BaseModel):
    success: bool
    entry_id: int
    clock_out: datetime
    worked_hours: float
    overtime_requested: bool


# ── Overtime ────────────────────────────────────────────────────────
class OvertimeRequestCreate(CamelModel):
    day: date = Field(alias="date")
    overtime_note: str | None = Field(default=None, max_length=1000)


class OvertimeDecision(CamelModel):
    approved: bool


# ── Admin time adjustment ──────────────────────────────────────────
class TimeAdjustRequest(CamelModel):
    day: date = Field(alias="date")
    clock_in: str
    clock_out: str | None = None

    @field_validator("clock_in")
    @classmethod
    def _clock_in(cls, v: str) -> str:
        parse_hhmm(v)
        return v.strip()

    @field_validator("clock_out")
    @classmethod
    def _clock_out(cls, v: str | None) -> str | None:
        if not v:
            return None
        parse_hhmm(v)
        return v.strip()


class TimeAdjustResponse(BaseModel):
    success: bool
    entry_id: int
    affected_payslips: int


# ── Dashboards ──────────────────────────────────────────────────────
class AvailableDate(BaseModel):
    entry_date: date
    user_count: int
    total_entries: int


class ActiveUser(BaseModel):
    id: int
    username: str
    department: str | None
    clock_in: datetime
