"""
Admin overview and health check.
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from paytrack.api.v1.deps import get_db, require_admin
from paytrack.core import clock
from paytrack.core.config import settings
from paytrack.models.payslip import Payslip, PayslipStatus
from paytrack.models.time_entry import TimeEntry
from paytrack.models.user import User
from paytrack.schemas.system import AdminOverview, HealthResponse

router = APIRouter(tags=["system"])
logger = logging.getLogger(__name__)


@router.get("/admin/overview", response_model=AdminOverview)
async def admin_overview(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> AdminOverview:
    """Counters for the admin dashboard header."""
    needs_recalc = await db.execute(
        select(func.count(Payslip.id)).where(
            Payslip.status == PayslipStatus.NEEDS_RECALCULATION.value
        )
    )
    active_today = await db.execute(
        select(func.count(func.distinct(TimeEntry.user_id))).where(
            TimeEntry.work_date == clock.local_today(),
            TimeEntry.clock_out.is_(None),
        )
    )
    pending_ot = await db.execute(
        select(func.count(TimeEntry.id)).where(
            TimeEntry.overtime_requested.is_(True),
            TimeEntry.overtime_approved.is_(None),
        )
    )
    return AdminOverview(
        payslips_needing_recalculation=needs_recalc.scalar() or 0,
        active_users_today=active_today.scalar() or 0,
        pending_overtime_requests=pending_ot.scalar() or 0,
        last_updated=clock.local_now(),
    )


@router.get("/health", response_model=HealthResponse)
async def health(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Public health check — DB and Redis connectivity."""
    result = HealthResponse(db=False, redis=False)

    try:
        await db.execute(select(1))
        result.db = True
    except Exception as e:
        logger.error("Health check DB failure: %s", e)

    try:
        r = aioredis.from_url(settings.REDIS_URL)
        await r.ping()
        await r.aclose()
        result.redis = True
    except Exception as e:
        logger.error("Health check Redis failure: %s", e)

    return result
