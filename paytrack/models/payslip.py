"""
Payslip & PayslipLog models.
"""

from __future__ import annotations

import enum
from datetime import date, datetime, timezone

from sqlalchemy import (JSON, Column, Date, DateTime, Float, ForeignKey, Index,
                        Integer, String, UniqueConstraint)
from sqlalchemy.orm import relationship

from paytrack.db.base import Base


class PayslipStatus(str, enum.Enum):
    PENDING = "pending"
    RELEASED = "released"
    NEEDS_RECALCULATION = "needs_recalculation"


# Allowed moves of the release workflow. Anything else is rejected.
ALLOWED_TRANSITIONS: dict[PayslipStatus, frozenset[PayslipStatus]] = {
    PayslipStatus.PENDING: frozenset(
        {PayslipStatus.RELEASED, PayslipStatus.NEEDS_RECALCULATION}
    ),
    PayslipStatus.RELEASED: frozenset({PayslipStatus.NEEDS_RECALCULATION}),
    PayslipStatus.NEEDS_RECALCULATION: frozenset({PayslipStatus.PENDING}),
}


class Payslip(Base):
    __tablename__ = "payslips"
    __table_args__ = (
        UniqueConstraint("user_id", "week_start", "week_end", name="uq_payslip_user_window"),
        Index("ix_payslips_window", "week_start", "week_end"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)  # type: ignore[assignment]
    week_start: date = Column(Date, nullable=False)  # type: ignore[assignment]
    week_end: date = Column(Date, nullable=False)  # type: ignore[assignment]

    total_hours: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    overtime_hours: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    undertime_hours: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    base_salary: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    overtime_pay: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    undertime_deduction: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    staff_house_deduction: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    total_salary: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    clock_in_time: datetime | None = Column(DateTime, nullable=True)  # type: ignore[assignment]
    clock_out_time: datetime | None = Column(DateTime, nullable=True)  # type: ignore[assignment]

    status: str = Column(  # type: ignore[assignment]
        String(30),
        nullable=False,
        default=PayslipStatus.PENDING.value,
        server_default=PayslipStatus.PENDING.value,
        index=True,
    )
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user = relationship("User", back_populates="payslips")


class PayslipLog(Base):
    """Audit row for generate / release / recalculate / edit actions."""

    __tablename__ = "payslip_logs"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    admin_id: int = Column(Integer, ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]
    action: str = Column(String(30), nullable=False)  # type: ignore[assignment]
    period_start: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    period_end: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    payslip_count: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    user_ids: list[int] | None = Column(JSON, nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
