"""
Async SQLAlchemy engine & session factory.

PostgreSQL (asyncpg) in production; SQLite (aiosqlite) for local runs and tests.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from paytrack.core.config import settings


def _engine_args(url: str) -> dict[str, Any]:
    args: dict[str, Any] = {"echo": False, "pool_pre_ping": True}
    if url.startswith("postgresql"):
        args.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_recycle=300,
        )
    elif url.startswith("sqlite"):
        args["connect_args"] = {"check_same_thread": False}
    return args


engine = create_async_engine(settings.DATABASE_URL, **_engine_args(settings.DATABASE_URL))

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
