"""
Paytrack — Application entry point.

This is the **only** file that assembles the app. Business logic lives in
the `services/` package; HTTP wiring in `api/`.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import select

from paytrack.api.v1.api import api_router
from paytrack.api.v1.endpoints.auth import limiter
from paytrack.core.config import settings
from paytrack.core.exceptions import register_exception_handlers
from paytrack.core.security import get_password_hash
from paytrack.db.base import Base
from paytrack.db.session import async_session_factory, engine

# Ensure all models are imported so metadata.create_all can see them
from paytrack.models.payslip import Payslip, PayslipLog  # noqa: F401
from paytrack.models.system_settings import SystemSettings  # noqa: F401
from paytrack.models.time_entry import TimeEntry  # noqa: F401
from paytrack.models.user import User

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    # Seed default admin user on first run
    async with async_session_factory() as session:
        result = await session.execute(
            select(User).where(User.username == settings.FIRST_ADMIN_USERNAME)
        )
        if result.scalar_one_or_none() is None:
            session.add(
                User(
                    username=settings.FIRST_ADMIN_USERNAME,
                    hashed_password=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
                    full_name="System Administrator",
                    role="admin",
                )
            )
            await session.commit()
            logger.info(
                "Default admin created: %s (password: <redacted>)",
                settings.FIRST_ADMIN_USERNAME,
            )

    logger.info("Paytrack v%s started (timezone %s)", settings.VERSION, settings.TIMEZONE)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Employee time tracking and payroll",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Rate limiting on login/refresh
    application.state.limiter = limiter
    application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    application.include_router(api_router, prefix=settings.API_V1_PREFIX)
    return application


app = create_app()
