"""
V1 API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from paytrack.api.v1.endpoints import (auth, payroll, payslip_logs, settings,
                                       system, time_tracking, users)

api_router = APIRouter()

# Login, refresh, logout
api_router.include_router(auth.router)

# Profile and user management
api_router.include_router(users.router)

# Clock-in/out, overtime, time adjustments
api_router.include_router(time_tracking.router)

# Generation, reports, release, recalculation
api_router.include_router(payroll.router)
api_router.include_router(payslip_logs.router)

# Breaktime toggle, overview, health
api_router.include_router(settings.router)
api_router.include_router(system.router)
