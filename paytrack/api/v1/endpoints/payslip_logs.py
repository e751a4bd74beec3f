"""
Payslip audit log endpoints (admin only).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paytrack.api.v1.deps import get_db, require_admin
from paytrack.models.payslip import PayslipLog
from paytrack.models.user import User
from paytrack.schemas.common import DeleteResponse
from paytrack.schemas.payroll import PayslipLogCreate, PayslipLogRead
from paytrack.services.payslips import stage_payslip_log

router = APIRouter(tags=["payslip-logs"])
logger = logging.getLogger(__name__)

LOG_PAGE_SIZE = 50


@router.get("/payslip-logs", response_model=list[PayslipLogRead])
async def list_payslip_logs(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> list[PayslipLogRead]:
    """Latest audit rows, newest first."""
    result = await db.execute(
        select(PayslipLog, User.username)
        .outerjoin(User, PayslipLog.admin_id == User.id)
        .order_by(PayslipLog.created_at.desc(), PayslipLog.id.desc())
        .limit(LOG_PAGE_SIZE)
    )
    return [
        PayslipLogRead.model_validate(log).model_copy(update={"admin_username": username})
        for log, username in result.all()
    ]


@router.post("/payslip-logs", response_model=PayslipLogRead, status_code=201)
async def create_payslip_log(
    body: PayslipLogCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> PayslipLogRead:
    log = stage_payslip_log(
        db, admin.id, body.action, body.selected_dates, body.payslip_count, body.user_ids
    )
    await db.commit()
    await db.refresh(log)
    return PayslipLogRead.model_validate(log).model_copy(update={"admin_username": admin.username})


@router.delete("/payslip-logs/{log_id}", response_model=DeleteResponse)
async def delete_payslip_log(
    log_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> DeleteResponse:
    log = await db.get(PayslipLog, log_id)
    if log is None:
        raise HTTPException(status_code=404, detail="Payslip log not found")

    await db.delete(log)
    await db.commit()
    logger.info("Deleted payslip log %d", log_id)
    return DeleteResponse(success=True, message="Payslip log deleted")
