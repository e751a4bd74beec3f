"""
User model — employees and administrators share one table.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String
from sqlalchemy.orm import relationship

from paytrack.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    username: str = Column(String(100), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    hashed_password: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    full_name: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    role: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default="employee",
        server_default="employee",
    )  # admin | employee
    department: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    # Lives in the company staff house; a weekly charge is prorated into payslips.
    staff_house: bool = Column(Boolean, nullable=False, default=False, server_default="false")  # type: ignore[assignment]
    gcash_number: str | None = Column(String(30), nullable=True)  # type: ignore[assignment]
    required_hours: float = Column(Float, nullable=False, default=0.0, server_default="0")  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    time_entries = relationship(
        "TimeEntry",
        back_populates="user",
        foreign_keys="TimeEntry.user_id",
        cascade="all, delete-orphan",
    )
    payslips = relationship("Payslip", back_populates="user", cascade="all, delete-orphan")
