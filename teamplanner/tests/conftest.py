"""
Shared pytest configuration for planner tests.

Uses a SQLite (aiosqlite) file database by default; set TEST_DATABASE_URL to
run against PostgreSQL instead.

SAFETY: This module REFUSES to run against any database whose name does not
contain the substring "test". This prevents accidental deletion of
development or production data when environment variables are misconfigured.
"""

import os
import tempfile

import pytest
import pytest_asyncio


def _resolve_test_database_url() -> str:
    """Build the test database URL with safety checks.

    Raises ``RuntimeError`` if the resolved URL does not point to a database
    whose name contains "test".
    """
    url = os.getenv(
        "TEST_DATABASE_URL",
        f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'teamplanner_test.db')}",
    )

    # ── Safety gate: database name MUST contain "test" ──────────────────
    db_name = url.rsplit("/", 1)[-1].split("?")[0]  # strip query params
    if "test" not in db_name.lower():
        raise RuntimeError(
            f"\n{'=' * 70}\n"
            f"  SAFETY: Refusing to run tests against database '{db_name}'.\n"
            f"  The database name must contain 'test' to prevent accidental\n"
            f"  data loss in development or production databases.\n\n"
            f"  Resolved URL: {url}\n\n"
            f"  Fix: set TEST_DATABASE_URL to a test database, e.g.:\n"
            f"    export TEST_DATABASE_URL=postgresql+asyncpg://.../teamplanner_test\n"
            f"{'=' * 70}"
        )

    return url


# Validated at import time so pytest fails immediately with a clear message.
TEST_DATABASE_URL = _resolve_test_database_url()

# Must be set before any teamplanner module creates the engine or the limiter
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["ENV"] = "test"
os.environ["SEED_DEFAULT_PLAYERS"] = "false"

from sqlalchemy import delete  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from teamplanner.database.db import Base  # noqa: E402
from teamplanner.utils.scheduling import ManualScheduler  # noqa: E402


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine with all tables."""
    # NullPool avoids reusing connections across event loops
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        from teamplanner.database import models  # noqa: F401

        await conn.run_sync(Base.metadata.create_all)

        # Empty all tables before the test to ensure clean state
        for table in reversed(Base.metadata.sorted_tables):
            await conn.execute(delete(table))

    # Monkey-patch AsyncSessionLocal so code that opens its own sessions
    # (get_db_session, ServiceAvailabilityStore, init_defaults) uses the test engine
    from teamplanner.database import db

    test_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    original_async_session_local = db.AsyncSessionLocal
    db.AsyncSessionLocal = test_session_maker

    yield engine

    db.AsyncSessionLocal = original_async_session_local
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine):
    """A session on the freshly emptied test database."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture
def scheduler():
    """Manually advanced clock for client timers."""
    return ManualScheduler()
