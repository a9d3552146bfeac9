"""Unit tests for the composition root."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.asyncio import Redis

from gatehouse.core.pipeline import LoggingMiddleware, MetricsMiddleware, TimeoutMiddleware
from gatehouse.infrastructure.dependency_injection.auth_dependencies import build_auth_container
from gatehouse.infrastructure.repositories.in_memory_user_repository import InMemoryUserRepository
from gatehouse.infrastructure.repositories.sqlalchemy_user_repository import SqlAlchemyUserRepository
from gatehouse.infrastructure.services.clock import SystemClock
from gatehouse.infrastructure.services.google_identity import (
    DisabledGoogleIdentityVerifier,
    GoogleIdTokenVerifier,
)
from gatehouse.infrastructure.services.token_stores import (
    InMemoryRefreshTokenStore,
    RedisRefreshTokenStore,
    RedisTokenRevocationStore,
)


@pytest.fixture
def redis_client(mocker):
    client = mocker.AsyncMock(spec=Redis)
    client.aclose = AsyncMock()
    return client


@pytest.mark.unit
class TestBuildAuthContainer:
    @pytest.mark.asyncio
    async def test_defaults_to_in_memory_adapters(self, test_settings):
        container = build_auth_container(test_settings)

        assert isinstance(container.users, InMemoryUserRepository)
        assert isinstance(container.token_service.refresh_store, InMemoryRefreshTokenStore)
        assert isinstance(container.clock, SystemClock)
        assert isinstance(container.authentication._google_verifier, GoogleIdTokenVerifier)
        assert [type(m) for m in container.authentication._pipeline.middlewares] == [
            LoggingMiddleware,
            MetricsMiddleware,
            TimeoutMiddleware,
        ]
        assert container.authentication._pipeline is container.accounts._pipeline
        await container.aclose()

    def test_google_sign_in_disabled_without_client_id(self, test_settings):
        settings = test_settings.model_copy(update={"GOOGLE_CLIENT_ID": ""})

        container = build_auth_container(settings)

        assert isinstance(container.authentication._google_verifier, DisabledGoogleIdentityVerifier)

    def test_lockout_policy_comes_from_settings(self, test_settings):
        settings = test_settings.model_copy(update={"MAX_FAILED_LOGIN_ATTEMPTS": 3, "LOCKOUT_DURATION_MINUTES": 15})

        container = build_auth_container(settings)

        policy = container.authentication._lockout_policy
        assert policy.max_failed_attempts == 3
        assert policy.lockout_duration.total_seconds() == 15 * 60

    @pytest.mark.asyncio
    async def test_redis_client_selects_redis_stores(self, test_settings, redis_client):
        container = build_auth_container(test_settings, redis_client=redis_client)

        assert isinstance(container.token_service.refresh_store, RedisRefreshTokenStore)
        assert isinstance(container.token_service.revocation_store, RedisTokenRevocationStore)
        await container.aclose()
        redis_client.aclose.assert_awaited_once()

    def test_redis_url_builds_client(self, test_settings, mocker, redis_client):
        factory = mocker.patch(
            "gatehouse.infrastructure.dependency_injection.auth_dependencies.create_redis_client",
            return_value=redis_client,
        )
        settings = test_settings.model_copy(update={"REDIS_URL": "redis://cache:6379/0"})

        container = build_auth_container(settings)

        factory.assert_called_once_with(settings)
        assert container.redis_client is redis_client

    def test_session_factory_selects_sql_repository(self, test_settings):
        container = build_auth_container(test_settings, session_factory=MagicMock())
        assert isinstance(container.users, SqlAlchemyUserRepository)

    @pytest.mark.asyncio
    async def test_database_url_builds_engine(self, test_settings, mocker):
        engine = mocker.AsyncMock()
        mocker.patch(
            "gatehouse.infrastructure.dependency_injection.auth_dependencies.create_engine", return_value=engine
        )
        settings = test_settings.model_copy(update={"DATABASE_URL": "postgresql+asyncpg://db/gatehouse"})

        container = build_auth_container(settings)

        assert isinstance(container.users, SqlAlchemyUserRepository)
        await container.aclose()
        engine.dispose.assert_awaited_once()

    def test_repository_override(self, test_settings, user_repository, clock):
        container = build_auth_container(test_settings, users=user_repository, clock=clock)
        assert container.users is user_repository
        assert container.clock is clock

    @pytest.mark.asyncio
    async def test_published_events_are_not_retained_by_default(self, test_settings, clock):
        container = build_auth_container(test_settings, clock=clock)
        received = []

        async def subscriber(event):
            received.append(event.event_type)

        container.event_publisher.add_subscriber(subscriber)
        await container.accounts.register_local("carol@example.com", "Carol", "Str0ng!Passw0rd")
        for _ in range(20):
            await container.authentication.local_login("carol@example.com", "Str0ng!Passw0rd")

        assert received.count("LoginSucceeded") == 20
        assert container.event_publisher.get_published_events() == []
        await container.aclose()
