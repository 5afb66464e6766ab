"""
Database connection and session management for RankPilot.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from rankpilot.config import settings
from rankpilot.models.base import Base

engine = create_async_engine(
    settings.async_database_url,
    echo=settings.ENVIRONMENT == "development",
    pool_pre_ping=True,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Context manager for database sessions (for background tasks)."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_task_session_maker():
    """Create a fresh engine and session maker for Celery task execution.

    Each Celery task runs its coroutine on a new event loop, so it needs an
    engine whose connection pool is bound to that loop.
    """
    task_engine = create_async_engine(settings.async_database_url, pool_pre_ping=True, pool_size=5, max_overflow=10)
    return task_engine, async_sessionmaker(task_engine, class_=AsyncSession, expire_on_commit=False)


async def init_db() -> None:
    """Create tables and seed the default tiers."""
    from rankpilot.models.tier import Tier
    from rankpilot.models.user import User
    from rankpilot.models.usage import UsageLog
    from rankpilot.models.audit import Audit, AuditSnapshot
    from rankpilot.services.quota import seed_tiers

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with get_db_context() as session:
        await seed_tiers(session)

    await engine.dispose()
