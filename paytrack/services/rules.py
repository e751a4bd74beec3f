"""
Runtime payroll configuration.

The ``system_settings`` singleton is read per request and turned into an
immutable :class:`PayrollRules` that is handed to the calculator.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paytrack.core.config import settings
from paytrack.models.system_settings import SystemSettings
from paytrack.services.payroll_calculator import PayrollRules

logger = logging.getLogger(__name__)


async def get_or_create_settings(db: AsyncSession) -> SystemSettings:
    """Fetch the singleton settings row, creating it with defaults if absent."""
    result = await db.execute(select(SystemSettings).limit(1))
    row = result.scalar_one_or_none()
    if row is None:
        row = SystemSettings(id=1, breaktime_enabled=True)
        db.add(row)
        await db.commit()
        await db.refresh(row)
        logger.info("Created default system settings")
    return row


def rules_from_settings(row: SystemSettings) -> PayrollRules:
    return PayrollRules(breaktime_enabled=bool(row.breaktime_enabled), tz=settings.tz)


async def load_rules(db: AsyncSession) -> PayrollRules:
    return rules_from_settings(await get_or_create_settings(db))
