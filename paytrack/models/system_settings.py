"""
System settings model — singleton table for admin-configurable payroll rules.

Only one row should ever exist. The admin updates it via the settings API,
and payroll endpoints read it per request to build ``PayrollRules``.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer

from paytrack.db.base import Base


class SystemSettings(Base):
    __tablename__ = "system_settings"

    id: int = Column(Integer, primary_key=True, default=1)  # type: ignore[assignment]
    # True: 8.5 h standard day including a 30 minute break. False: 8 h day.
    breaktime_enabled: bool = Column(Boolean, nullable=False, default=True, server_default="true")  # type: ignore[assignment]
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
