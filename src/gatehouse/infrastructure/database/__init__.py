"""
Asynchronous database utilities for the SQL event store.

**Security Note**: Configure DATABASE_URL with TLS when the database is
reachable over an untrusted network, and never log the URL since it embeds
credentials.
"""

from typing import Any, Dict

import structlog
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from gatehouse.core.config.settings import Settings

from .models import UserEventRecord, UserLookup

logger = structlog.get_logger(__name__)

__all__ = ["UserEventRecord", "UserLookup", "create_engine", "create_session_factory", "create_tables"]


def create_engine(settings: Settings) -> AsyncEngine:
    """Builds the async engine from ``settings.DATABASE_URL``.

    Pool sizing is skipped for SQLite, whose async driver uses a static pool.
    """
    if not settings.uses_database:
        raise ValueError("DATABASE_URL is not configured")

    url = make_url(settings.DATABASE_URL)
    engine_kwargs: Dict[str, Any] = {"echo": settings.DATABASE_ECHO}
    if not url.drivername.startswith("sqlite"):
        engine_kwargs["pool_size"] = settings.DATABASE_POOL_SIZE
        engine_kwargs["max_overflow"] = settings.DATABASE_MAX_OVERFLOW
        engine_kwargs["pool_pre_ping"] = True
    return create_async_engine(url, **engine_kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create the event-store tables (development and test setups)."""
    logger.info("creating_event_store_tables")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
