"""Shared fixtures for the test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from cleansteps.db import Base, get_session
from cleansteps.main import app
from cleansteps.recovery import records  # noqa: F401  (registers tables)
from cleansteps.recovery.goals import CleanTimeGoal, goal_to_record


# ---------------------------------------------------------------------------
# In-memory database (no real Postgres needed)
# ---------------------------------------------------------------------------

@pytest.fixture()
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture()
def override_session(session_factory):
    """Override the FastAPI dependency: one fresh session per request, shared in-memory DB."""
    async def _override():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_session] = _override
    yield session_factory
    app.dependency_overrides.clear()


@pytest.fixture()
async def client(override_session):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def days_ago(days: float) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days)


def clean_time_record(title: str = "30 days", target: float = 2_592_000, **goal: Any) -> dict[str, Any]:
    """Stored-form record for a CleanTimeGoal."""
    return goal_to_record(CleanTimeGoal(title=title, target_clean_time=target, **goal))
