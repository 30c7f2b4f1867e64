"""Shared test fixtures — async DB, client, auth helpers, factories.

Reusable across all test modules (auth, attendance, leave, reports).
Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test configuration before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import date, datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from attendly.auth.models import User
from attendly.auth.schemas import CallerContext
from attendly.auth.service import hash_password
from attendly.common.constants import AttendanceType
from attendly.config import settings
from attendly.database import Base, get_db
from attendly.main import create_app

# Import ALL model modules so every table is on Base.metadata
import attendly.attendance.models  # noqa: F401
import attendly.leave.models  # noqa: F401

from attendly.attendance.models import AttendanceRecord
from attendly.leave.models import LeaveBalance, LeaveRequest, LeaveType

# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"
TEST_PASSWORD = "secret123"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from attendly.common.rate_limit import limiter

    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Model factories ─────────────────────────────────────────────────

_password_hash: str | None = None


def _test_password_hash() -> str:
    global _password_hash
    if _password_hash is None:
        _password_hash = hash_password(TEST_PASSWORD)
    return _password_hash


async def make_user(
    db: AsyncSession,
    *,
    name: str = "Test User",
    email: str = "user@example.com",
    is_admin: bool = False,
) -> User:
    user = User(
        name=name,
        email=email,
        password_hash=_test_password_hash(),
        is_admin=is_admin,
    )
    db.add(user)
    await db.flush()
    return user


async def make_leave_type(
    db: AsyncSession,
    *,
    name: str = "Annual Leave",
    default_days: int = 12,
) -> LeaveType:
    leave_type = LeaveType(name=name, default_days=default_days)
    db.add(leave_type)
    await db.flush()
    return leave_type


async def make_balance(
    db: AsyncSession,
    user_id: int,
    leave_type_id: int,
    *,
    year: int = 2024,
    total_days: int = 12,
    used_days: int = 0,
) -> LeaveBalance:
    balance = LeaveBalance(
        user_id=user_id,
        leave_type_id=leave_type_id,
        year=year,
        total_days=total_days,
        used_days=used_days,
        remaining_days=total_days - used_days,
    )
    db.add(balance)
    await db.flush()
    return balance


async def make_leave_request(
    db: AsyncSession,
    user_id: int,
    leave_type_id: int,
    start_date: date,
    end_date: date,
    *,
    status=None,
    reason: str | None = None,
) -> LeaveRequest:
    from attendly.common.constants import LeaveStatus

    leave_request = LeaveRequest(
        user_id=user_id,
        leave_type_id=leave_type_id,
        start_date=start_date,
        end_date=end_date,
        reason=reason,
        status=status or LeaveStatus.pending,
    )
    db.add(leave_request)
    await db.flush()
    return leave_request


async def make_attendance(
    db: AsyncSession,
    user_id: int,
    day: date,
    *,
    has_consent: bool = True,
    type: AttendanceType = AttendanceType.manual,
    leave_request_id: int | None = None,
) -> AttendanceRecord:
    record = AttendanceRecord(
        user_id=user_id,
        date=day,
        has_consent=has_consent,
        type=type,
        leave_request_id=leave_request_id,
    )
    db.add(record)
    await db.flush()
    return record


def caller_for(user: User) -> CallerContext:
    return CallerContext(user_id=user.id, is_admin=user.is_admin)


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(
    user_id: int,
    *,
    is_admin: bool = False,
    expired: bool = False,
) -> str:
    """Generate a JWT access token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS)
    payload = {
        "sub": str(user_id),
        "is_admin": is_admin,
        "type": "access",
        "exp": exp,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, is_admin=user.is_admin)}"}


@pytest.fixture
async def employee(db) -> User:
    return await make_user(db, name="Erin Employee", email="erin@example.com")


@pytest.fixture
async def admin(db) -> User:
    return await make_user(db, name="Ada Admin", email="ada@example.com", is_admin=True)
