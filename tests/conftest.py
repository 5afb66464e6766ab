"""
Pytest configuration and fixtures for RankPilot tests.
"""
import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy import JSON
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("ENVIRONMENT", "test")

# IMPORTANT: Patch PostgreSQL types for SQLite compatibility
# Must be done before importing any models
import sqlalchemy.dialects.postgresql as pg_dialect
from sqlalchemy.types import TypeDecorator, CHAR
import uuid as uuid_module

# Custom UUID type that works with SQLite
class SQLiteUUID(TypeDecorator):
    """SQLite-compatible UUID type."""
    impl = CHAR(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return uuid_module.UUID(value)
        return value

pg_dialect.JSONB = JSON
pg_dialect.UUID = SQLiteUUID

from rankpilot.core.exceptions import NetworkError
from rankpilot.models.base import Base
from rankpilot.models.tier import Tier
from rankpilot.models.usage import UsageLog
from rankpilot.models.user import User
from rankpilot.services.fetcher import FetchResult, PageFetcher

# Use SQLite for testing (in-memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()


# ============================================================================
# Sample Data Fixtures
# ============================================================================

@pytest_asyncio.fixture(scope="function")
async def free_tier(db_session: AsyncSession) -> Tier:
    """Free tier: 5 audits, 10,000 tokens."""
    tier = Tier(
        id=uuid.UUID("00000000-0000-0000-0000-000000000001"),
        name="Free",
        audit_limit=5,
        token_limit=10_000,
        price=0,
    )
    db_session.add(tier)
    await db_session.commit()
    return tier


@pytest_asyncio.fixture(scope="function")
async def test_user(db_session: AsyncSession, free_tier: Tier) -> User:
    """User on the free tier with a billing period around now."""
    now = datetime.now(timezone.utc)
    user = User(
        id=uuid.UUID("00000000-0000-0000-0000-000000000002"),
        email="test@example.com",
        name="Test User",
        tier_id=free_tier.id,
        current_period_start=now - timedelta(days=10),
        current_period_end=now + timedelta(days=20),
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
def add_usage(db_session: AsyncSession):
    """Factory appending usage log entries for a user."""

    async def _add_usage(
        user: User,
        count: int = 1,
        tokens_used: int = 0,
        with_audit: bool = True,
        created_at: datetime = None,
    ) -> list[UsageLog]:
        entries = []
        for _ in range(count):
            entry = UsageLog(
                user_id=user.id,
                audit_id=uuid.uuid4() if with_audit else None,
                tokens_used=tokens_used,
            )
            if created_at is not None:
                entry.created_at = created_at
            db_session.add(entry)
            entries.append(entry)
        await db_session.commit()
        return entries

    return _add_usage


# ============================================================================
# Mock Fixtures
# ============================================================================

@pytest.fixture
def make_fetcher():
    """Factory for a PageFetcher stub serving canned pages.

    ``pages`` maps URL to HTML, or to an exception the fetch should raise.
    Unknown URLs fail with NetworkError.
    """

    def _make_fetcher(pages: dict, elapsed_ms: int = 300) -> MagicMock:
        async def fetch(url: str) -> FetchResult:
            page = pages.get(url)
            if isinstance(page, Exception):
                raise page
            if page is None:
                raise NetworkError(url, "ConnectError: Name or service not known")
            return FetchResult(
                url=url,
                final_url=url,
                status_code=200,
                html=page,
                elapsed_ms=elapsed_ms,
            )

        fetcher = MagicMock(spec=PageFetcher)
        fetcher.fetch = AsyncMock(side_effect=fetch)
        return fetcher

    return _make_fetcher


@pytest.fixture
def mock_queue():
    """Queue transport recording enqueued jobs."""
    queue = MagicMock()
    queue.enqueue = MagicMock(return_value=None)
    return queue
