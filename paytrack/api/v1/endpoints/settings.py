"""
System settings endpoints — the admin-configurable breaktime toggle.

Singleton pattern: one row in system_settings, created with defaults on
first access.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from paytrack.api.v1.deps import get_db, require_admin
from paytrack.models.system_settings import SystemSettings
from paytrack.models.user import User
from paytrack.schemas.system import SystemSettingsRead, SystemSettingsUpdate
from paytrack.services.rules import get_or_create_settings, rules_from_settings

router = APIRouter(tags=["settings"])
logger = logging.getLogger(__name__)


def _read(row: SystemSettings) -> SystemSettingsRead:
    rules = rules_from_settings(row)
    return SystemSettingsRead(
        breaktime_enabled=row.breaktime_enabled,
        standard_hours=rules.standard_hours,
        hourly_rate=round(rules.hourly_rate, 4),
        updated_at=row.updated_at,
    )


@router.get("/settings", response_model=SystemSettingsRead)
async def get_settings(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> SystemSettingsRead:
    return _read(await get_or_create_settings(db))


@router.put("/settings", response_model=SystemSettingsRead)
async def update_settings(
    body: SystemSettingsUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> SystemSettingsRead:
    """Update payroll settings. Existing payslips are not recalculated."""
    row = await get_or_create_settings(db)

    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(row, field, value)

    await db.commit()
    await db.refresh(row)
    logger.info("System settings updated: %s", body.model_dump(exclude_unset=True))
    return _read(row)
