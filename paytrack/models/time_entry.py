"""
TimeEntry model — one clock-in/clock-out session.

``clock_in`` / ``clock_out`` are naive wall-clock datetimes in the
organisation's timezone. ``clock_out IS NULL`` marks an open session;
the partial unique index allows at most one per user.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (Boolean, Column, Date, DateTime, ForeignKey, Index,
                        Integer, Text, text)
from sqlalchemy.orm import relationship

from paytrack.db.base import Base


class TimeEntry(Base):
    __tablename__ = "time_entries"
    __table_args__ = (
        Index("ix_time_entries_user_date", "user_id", "work_date"),
        Index(
            "uq_time_entries_open_session",
            "user_id",
            unique=True,
            postgresql_where=text("clock_out IS NULL"),
            sqlite_where=text("clock_out IS NULL"),
        ),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]
    clock_in: datetime = Column(DateTime, nullable=False)  # type: ignore[assignment]
    clock_out: datetime | None = Column(DateTime, nullable=True)  # type: ignore[assignment]
    work_date: date = Column(Date, nullable=False, index=True)  # type: ignore[assignment]

    overtime_requested: bool = Column(Boolean, nullable=False, default=False, server_default="false")  # type: ignore[assignment]
    # None = pending decision, True/False = decided
    overtime_approved: bool | None = Column(Boolean, nullable=True)  # type: ignore[assignment]
    overtime_note: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    overtime_approved_by: int | None = Column(Integer, ForeignKey("users.id"), nullable=True)  # type: ignore[assignment]
    overtime_notification_sent: bool = Column(Boolean, nullable=False, default=False, server_default="false")  # type: ignore[assignment]

    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user = relationship("User", back_populates="time_entries", foreign_keys=[user_id])
