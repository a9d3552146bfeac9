"""Unit tests for Redis client construction."""

import pytest
from redis.asyncio import Redis

from gatehouse.infrastructure.redis import create_redis_client, redis_connection


@pytest.mark.unit
class TestRedisClient:
    def test_requires_configuration(self, test_settings):
        with pytest.raises(ValueError):
            create_redis_client(test_settings)

    @pytest.mark.asyncio
    async def test_connection_is_closed(self, test_settings, mocker):
        settings = test_settings.model_copy(update={"REDIS_URL": "redis://cache:6379/0"})
        client = mocker.AsyncMock(spec=Redis)
        client.aclose = mocker.AsyncMock()
        from_url = mocker.patch("gatehouse.infrastructure.redis.Redis.from_url", return_value=client)

        async with redis_connection(settings) as redis:
            assert redis is client

        from_url.assert_called_once_with("redis://cache:6379/0", encoding="utf-8", decode_responses=True)
        client.aclose.assert_awaited_once()
