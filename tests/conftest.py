"""Pytest fixtures for payroll export engine tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from datetime import date

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from payroll_export.api.app import create_app
from payroll_export.api.dependencies import get_db_session
from payroll_export.calculators.types import (
    AttendanceRecord,
    ConfigurationSnapshot,
    OvertimeRules,
    WageLadder,
)
from payroll_export.config import Settings, get_settings
from payroll_export.models import Base

from factories import STANDARD_RULES, Seeder, make_ladder, make_record

# In-memory SQLite shared across connections via StaticPool
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def record_factory() -> Callable[..., AttendanceRecord]:
    return make_record


@pytest.fixture
def ladder() -> WageLadder:
    return make_ladder()


@pytest.fixture
def snapshot(ladder: WageLadder) -> ConfigurationSnapshot:
    """Configuration with the standard supplement set and one ladder."""
    return ConfigurationSnapshot(
        version="test-1",
        supplement_rules=STANDARD_RULES,
        ladders={ladder.ladder_id: ladder},
        overtime=OvertimeRules(),
        holidays=frozenset({date(2024, 5, 17)}),
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        engine_version="test",
        host="127.0.0.1",
        port=8000,
        debug=False,
        max_workers=2,
        log_level="INFO",
    )


@pytest_asyncio.fixture
async def engine():
    """Create test database engine with a fresh schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def seeder(session: AsyncSession) -> Seeder:
    return Seeder(session)


@pytest_asyncio.fixture
async def client(session_factory, settings) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, wired to the test database."""
    app = create_app()

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_settings] = lambda: settings

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
