"""
Redis Connection Module

Provides the asynchronous Redis client used by the server-side token stores
(refresh-token records and the revoked-token blacklist).

**Security Note**: Use a ``rediss://`` URL when Redis is reachable over an
untrusted network, and never log the connection URL since it may embed the
password.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from redis.asyncio import Redis

from gatehouse.core.config.settings import Settings

logger = structlog.get_logger(__name__)


def create_redis_client(settings: Settings) -> Redis:
    """Builds a client from ``settings.REDIS_URL`` with string responses."""
    if not settings.uses_redis:
        raise ValueError("REDIS_URL is not configured")
    return Redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)


@asynccontextmanager
async def redis_connection(settings: Settings) -> AsyncIterator[Redis]:
    """Yields a Redis client and closes it afterwards."""
    redis = create_redis_client(settings)
    logger.debug("redis_connection_created")
    try:
        yield redis
    finally:
        await redis.aclose()
        logger.debug("redis_connection_closed")
