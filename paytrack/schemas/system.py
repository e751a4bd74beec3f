"""Pydantic schemas for system settings, overview and health."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from paytrack.schemas.common import CamelModel


class SystemSettingsRead(BaseModel):
    breaktime_enabled: bool
    standard_hours: float
    hourly_rate: float
    updated_at: datetime | None = None


class SystemSettingsUpdate(CamelModel):
    breaktime_enabled: bool | None = None


class AdminOverview(BaseModel):
    payslips_needing_recalculation: int
    active_users_today: int
    pending_overtime_requests: int
    last_updated: datetime


class HealthResponse(BaseModel):
    db: bool
    redis: bool
