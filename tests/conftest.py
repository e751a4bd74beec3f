"""
Shared test fixtures for the Paytrack test suite.

Async throughout: aiosqlite in-memory database, AsyncSession, httpx client
over the ASGI app. Users are real rows and tokens are real JWTs.
"""

import os
import sys
from datetime import date, datetime
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["TIMEZONE"] = "Asia/Manila"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from paytrack.api.v1.deps import get_db
from paytrack.core import clock
from paytrack.core.security import create_access_token, get_password_hash
from paytrack.db.base import Base
from paytrack.main import app
from paytrack.models.time_entry import TimeEntry
from paytrack.models.user import User

test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# One hash for every fixture user; bcrypt is slow on purpose.
PASSWORD = "secret123"
PASSWORD_HASH = get_password_hash(PASSWORD)


@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test and drop them after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestingSessionLocal() as session:
        yield session


app.dependency_overrides[get_db] = _override_get_db


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with TestingSessionLocal() as session:
        yield session


# ── Users & tokens ──────────────────────────────────────────────────
async def create_user(db: AsyncSession, username: str, role: str = "employee", **fields) -> User:
    user = User(username=username, hashed_password=PASSWORD_HASH, role=role, **fields)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, role=user.role)}"}


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "boss", role="admin")


@pytest.fixture
async def employee(db_session: AsyncSession) -> User:
    return await create_user(db_session, "juan", department="Kitchen")


@pytest.fixture
def admin_headers(admin_user: User) -> dict[str, str]:
    return auth_headers(admin_user)


@pytest.fixture
def employee_headers(employee: User) -> dict[str, str]:
    return auth_headers(employee)


# ── Time entries ────────────────────────────────────────────────────
async def add_entry(
    db: AsyncSession,
    user: User,
    day: date,
    start: str,
    end: str | None,
    **fields,
) -> TimeEntry:
    """Insert an entry for *day* from ``HH:MM`` strings."""
    clock_in = datetime.combine(day, clock.parse_hhmm(start))
    clock_out = datetime.combine(day, clock.parse_hhmm(end)) if end else None
    entry = TimeEntry(
        user_id=user.id, clock_in=clock_in, clock_out=clock_out, work_date=day, **fields
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    return entry


class FrozenClock:
    """Settable stand-in for :func:`paytrack.core.clock.local_now`."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def frozen_clock(monkeypatch) -> FrozenClock:
    frozen = FrozenClock(datetime(2024, 3, 4, 7, 0))
    monkeypatch.setattr(clock, "local_now", frozen)
    return frozen
