"""Composition root for the authentication engine.

Builds the workflow services from ``Settings``, choosing adapters by
configuration:

- DATABASE_URL set: SQL event store; otherwise the in-memory repository
- REDIS_URL set: Redis token stores; otherwise in-memory stores
- GOOGLE_CLIENT_ID set: JWKS-backed Google verifier; otherwise Google
  sign-in is disabled

Every collaborator can be overridden, which is how tests inject a frozen
clock or a fake Google verifier.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional

import structlog
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from gatehouse.core.config.settings import Settings
from gatehouse.core.config.settings import settings as default_settings
from gatehouse.core.metrics import UseCaseMetrics
from gatehouse.core.pipeline import UseCasePipeline
from gatehouse.domain.interfaces.clock import IClock
from gatehouse.domain.interfaces.repositories import IUserRepository
from gatehouse.domain.interfaces.services import (
    IGoogleIdentityVerifier,
    IRefreshTokenStore,
    ITokenRevocationStore,
)
from gatehouse.domain.services.authentication.account_service import AccountService
from gatehouse.domain.services.authentication.authentication_service import AuthenticationService
from gatehouse.domain.services.lockout_policy import LockoutPolicy
from gatehouse.infrastructure.database import create_engine, create_session_factory
from gatehouse.infrastructure.redis import create_redis_client
from gatehouse.infrastructure.repositories.in_memory_user_repository import InMemoryUserRepository
from gatehouse.infrastructure.repositories.sqlalchemy_user_repository import SqlAlchemyUserRepository
from gatehouse.infrastructure.services.clock import SystemClock
from gatehouse.infrastructure.services.event_publisher import InMemoryEventPublisher
from gatehouse.infrastructure.services.google_identity import (
    DisabledGoogleIdentityVerifier,
    GoogleIdTokenVerifier,
)
from gatehouse.infrastructure.services.jwt_token_service import JwtTokenService
from gatehouse.infrastructure.services.password_hasher import BcryptPasswordHasher
from gatehouse.infrastructure.services.token_stores import (
    InMemoryRefreshTokenStore,
    InMemoryTokenRevocationStore,
    RedisRefreshTokenStore,
    RedisTokenRevocationStore,
)
from gatehouse.infrastructure.services.totp_service import TOTPService

logger = structlog.get_logger(__name__)


@dataclass
class AuthContainer:
    """Wired services plus the resources that need closing."""

    settings: Settings
    clock: IClock
    users: IUserRepository
    event_publisher: InMemoryEventPublisher
    token_service: JwtTokenService
    authentication: AuthenticationService
    accounts: AccountService
    metrics: UseCaseMetrics
    engine: Optional[AsyncEngine] = field(default=None, repr=False)
    redis_client: Optional[Redis] = field(default=None, repr=False)

    async def aclose(self) -> None:
        if self.redis_client is not None:
            await self.redis_client.aclose()
        if self.engine is not None:
            await self.engine.dispose()


def _build_repository(
    settings: Settings,
    publisher: InMemoryEventPublisher,
    session_factory: Optional[Callable[[], AsyncSession]],
):
    if session_factory is not None:
        return SqlAlchemyUserRepository(session_factory, publisher), None
    if settings.uses_database:
        engine = create_engine(settings)
        return SqlAlchemyUserRepository(create_session_factory(engine), publisher), engine
    return InMemoryUserRepository(publisher), None


def _build_token_stores(settings: Settings, clock: IClock, redis_client: Optional[Redis]):
    if redis_client is None and settings.uses_redis:
        redis_client = create_redis_client(settings)
    if redis_client is None:
        stores: tuple[IRefreshTokenStore, ITokenRevocationStore] = (
            InMemoryRefreshTokenStore(clock),
            InMemoryTokenRevocationStore(clock),
        )
        return stores, None
    stores = (
        RedisRefreshTokenStore(redis_client, clock, settings.REDIS_KEY_PREFIX),
        RedisTokenRevocationStore(redis_client, clock, settings.REDIS_KEY_PREFIX),
    )
    return stores, redis_client


def _build_google_verifier(settings: Settings) -> IGoogleIdentityVerifier:
    if not settings.GOOGLE_CLIENT_ID:
        logger.warning("google_sign_in_disabled", reason="GOOGLE_CLIENT_ID is not configured")
        return DisabledGoogleIdentityVerifier()
    return GoogleIdTokenVerifier(settings.GOOGLE_CLIENT_ID, settings.GOOGLE_JWKS_URL)


def build_auth_container(
    settings: Optional[Settings] = None,
    *,
    clock: Optional[IClock] = None,
    google_verifier: Optional[IGoogleIdentityVerifier] = None,
    redis_client: Optional[Redis] = None,
    session_factory: Optional[Callable[[], AsyncSession]] = None,
    users: Optional[IUserRepository] = None,
    retain_events: bool = False,
) -> AuthContainer:
    """Wires the authentication engine.

    Args:
        settings: Configuration; defaults to the module-level settings.
        clock: Time source; defaults to the system clock.
        google_verifier: Overrides the Google ID-token verifier.
        redis_client: Uses Redis token stores with this client.
        session_factory: Uses the SQL event store with this session factory.
        users: Overrides the repository entirely.
        retain_events: Keep published events on the publisher for inspection.

    Returns:
        AuthContainer: The wired services.
    """
    settings = settings or default_settings
    clock = clock or SystemClock()
    publisher = InMemoryEventPublisher(retain_events=retain_events)
    engine = None
    if users is None:
        users, engine = _build_repository(settings, publisher, session_factory)
    (refresh_store, revocation_store), redis_client = _build_token_stores(settings, clock, redis_client)

    metrics = UseCaseMetrics()
    pipeline = UseCasePipeline.default(settings.USE_CASE_TIMEOUT_SECONDS, metrics)
    password_hasher = BcryptPasswordHasher(settings.BCRYPT_WORK_FACTOR)
    mfa_service = TOTPService(clock, settings.MFA_ISSUER, settings.TOTP_VALID_WINDOW)
    token_service = JwtTokenService(settings, clock, refresh_store, revocation_store)

    authentication = AuthenticationService(
        users=users,
        password_hasher=password_hasher,
        mfa_service=mfa_service,
        token_service=token_service,
        google_verifier=google_verifier or _build_google_verifier(settings),
        clock=clock,
        lockout_policy=LockoutPolicy.from_settings(settings),
        pipeline=pipeline,
    )
    accounts = AccountService(
        users=users,
        password_hasher=password_hasher,
        mfa_service=mfa_service,
        clock=clock,
        mfa_issuer=settings.MFA_ISSUER,
        pipeline=pipeline,
    )
    logger.info(
        "auth_container_built",
        repository=type(users).__name__,
        token_store=type(refresh_store).__name__,
    )
    return AuthContainer(
        settings=settings,
        clock=clock,
        users=users,
        event_publisher=publisher,
        token_service=token_service,
        authentication=authentication,
        accounts=accounts,
        metrics=metrics,
        engine=engine,
        redis_client=redis_client,
    )
