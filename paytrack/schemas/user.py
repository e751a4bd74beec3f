"""Pydantic schemas for User CRUD."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from paytrack.schemas.common import CamelModel
from paytrack.schemas.payroll import PayslipRead
from paytrack.schemas.time_entry import TimeEntryRead

_VALID_ROLES = {"admin", "employee"}
_USERNAME_RE = re.compile(r"^[A-Za-z0-9._-]{3,100}$")


def _check_username(v: str) -> str:
    v = v.strip().lower()
    if not _USERNAME_RE.match(v):
        raise ValueError("Username must be 3-100 chars: letters, digits, '.', '_' or '-'")
    return v


class UserCreate(CamelModel):
    username: str
    password: str = Field(min_length=6, max_length=72)
    full_name: str | None = None
    role: str = "employee"
    department: str | None = None
    staff_house: bool = False
    gcash_number: str | None = None
    required_hours: float = Field(default=0.0, ge=0)

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str) -> str:
        if v not in _VALID_ROLES:
            raise ValueError(f"Role must be one of: {sorted(_VALID_ROLES)}")
        return v

    @field_validator("username")
    @classmethod
    def _normalise_username(cls, v: str) -> str:
        return _check_username(v)


class UserRead(BaseModel):
    id: int
    username: str
    full_name: str | None
    role: str
    department: str | None
    staff_house: bool
    gcash_number: str | None
    required_hours: float
    is_active: bool
    created_at: datetime | None

    model_config = {"from_attributes": True}


class UserUpdate(CamelModel):
    full_name: str | None = None
    role: str | None = None
    department: str | None = None
    staff_house: bool | None = None
    gcash_number: str | None = None
    required_hours: float | None = Field(default=None, ge=0)
    is_active: bool | None = None
    password: str | None = Field(default=None, min_length=6, max_length=72)

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str | None) -> str | None:
        if v is not None and v not in _VALID_ROLES:
            raise ValueError(f"Role must be one of: {sorted(_VALID_ROLES)}")
        return v


class RequiredHoursUpdate(CamelModel):
    required_hours: float = Field(ge=0)


class HoursProgress(BaseModel):
    required_hours: float
    worked_hours: float
    remaining_hours: float
    progress_percentage: float
    is_completed: bool
    total_overtime_hours: float
    total_days_worked: int
    total_late_instances: int


class UserDashboard(BaseModel):
    today_entry: TimeEntryRead | None
    progress: HoursProgress
    recent_payslips: list[PayslipRead]
    last_updated: datetime
