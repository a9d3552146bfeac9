"""Server-side token bookkeeping.

Two stores back the token service:

- the refresh-token store maps the SHA-256 hash of each opaque refresh token
  to its owner until expiry; consuming a record deletes it, which is what makes
  refresh tokens single use (rotation);
- the revocation store blacklists token ids (``jti``) until the token would
  have expired anyway.

In-memory implementations serve development and tests; Redis implementations
use key TTLs so entries disappear on their own.
"""

from datetime import datetime
from typing import Dict, Optional, Tuple
from uuid import UUID

import structlog
from redis.asyncio import Redis

from gatehouse.domain.interfaces.clock import IClock
from gatehouse.domain.interfaces.services import IRefreshTokenStore, ITokenRevocationStore

logger = structlog.get_logger(__name__)


def _ttl_seconds(expires_at: datetime, now: datetime) -> int:
    return int((expires_at - now).total_seconds())


class InMemoryRefreshTokenStore(IRefreshTokenStore):
    """Dictionary-backed refresh-token records.

    No method awaits while touching the dictionary, so each operation is
    atomic with respect to other coroutines on the loop.
    """

    def __init__(self, clock: IClock):
        self._clock = clock
        self._records: Dict[str, Tuple[UUID, datetime]] = {}

    async def save(self, token_hash: str, user_id: UUID, expires_at: datetime) -> None:
        self._records[token_hash] = (user_id, expires_at)

    async def consume(self, token_hash: str) -> Optional[UUID]:
        record = self._records.pop(token_hash, None)
        if record is None:
            return None
        user_id, expires_at = record
        if expires_at <= self._clock.now():
            return None
        return user_id

    async def delete(self, token_hash: str) -> None:
        self._records.pop(token_hash, None)

    def __len__(self) -> int:
        return len(self._records)


class InMemoryTokenRevocationStore(ITokenRevocationStore):
    def __init__(self, clock: IClock):
        self._clock = clock
        self._revoked: Dict[str, datetime] = {}

    async def revoke(self, token_id: str, expires_at: datetime) -> None:
        self._revoked[token_id] = expires_at

    async def is_revoked(self, token_id: str) -> bool:
        expires_at = self._revoked.get(token_id)
        if expires_at is None:
            return False
        if expires_at <= self._clock.now():
            del self._revoked[token_id]
            return False
        return True


class RedisRefreshTokenStore(IRefreshTokenStore):
    """Refresh-token records stored as ``<prefix>:refresh_token:<hash>`` keys.

    Args:
        redis_client: Async client created with ``decode_responses=True``.
        clock: Source of the current time for TTL computation.
        key_prefix: Namespace for keys.
    """

    def __init__(self, redis_client: Redis, clock: IClock, key_prefix: str = "gatehouse"):
        self.redis_client = redis_client
        self._clock = clock
        self._key_prefix = key_prefix

    async def save(self, token_hash: str, user_id: UUID, expires_at: datetime) -> None:
        ttl = _ttl_seconds(expires_at, self._clock.now())
        if ttl <= 0:
            logger.warning("refresh_token_already_expired", expires_at=expires_at.isoformat())
            return
        await self.redis_client.setex(self._key(token_hash), ttl, str(user_id))

    async def consume(self, token_hash: str) -> Optional[UUID]:
        # GETDEL makes the read and the delete a single atomic step.
        value = await self.redis_client.getdel(self._key(token_hash))
        if value is None:
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        try:
            return UUID(value)
        except ValueError:
            logger.error("refresh_token_record_corrupt", key=self._key(token_hash)[:24])
            return None

    async def delete(self, token_hash: str) -> None:
        await self.redis_client.delete(self._key(token_hash))

    def _key(self, token_hash: str) -> str:
        return f"{self._key_prefix}:refresh_token:{token_hash}"


class RedisTokenRevocationStore(ITokenRevocationStore):
    """Blacklisted token ids stored as ``<prefix>:blacklist:<jti>`` keys."""

    def __init__(self, redis_client: Redis, clock: IClock, key_prefix: str = "gatehouse"):
        self.redis_client = redis_client
        self._clock = clock
        self._key_prefix = key_prefix

    async def revoke(self, token_id: str, expires_at: datetime) -> None:
        ttl = _ttl_seconds(expires_at, self._clock.now())
        if ttl <= 0:
            return
        await self.redis_client.setex(self._key(token_id), ttl, "revoked")
        logger.info("token_revoked", ttl=ttl)

    async def is_revoked(self, token_id: str) -> bool:
        return await self.redis_client.exists(self._key(token_id)) > 0

    def _key(self, token_id: str) -> str:
        return f"{self._key_prefix}:blacklist:{token_id}"
