import pytest
import pytest_asyncio

from gatehouse.core.config.settings import Settings
from gatehouse.infrastructure.dependency_injection.auth_dependencies import build_auth_container
from gatehouse.infrastructure.repositories.in_memory_user_repository import InMemoryUserRepository
from gatehouse.infrastructure.services.event_publisher import InMemoryEventPublisher
from gatehouse.infrastructure.services.google_identity import GoogleIdTokenVerifier
from gatehouse.infrastructure.services.jwt_token_service import JwtTokenService
from gatehouse.infrastructure.services.password_hasher import BcryptPasswordHasher
from gatehouse.infrastructure.services.token_stores import (
    InMemoryRefreshTokenStore,
    InMemoryTokenRevocationStore,
)
from gatehouse.infrastructure.services.totp_service import TOTPService
from tests.factories.google import TEST_GOOGLE_CLIENT_ID, GoogleTokenSigner
from tests.utils.clock import FrozenClock

TEST_JWT_SECRET = "test-secret-key-that-is-long-enough-0123456789"


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        APP_ENV="test",
        JWT_ALGORITHM="HS256",
        JWT_SECRET_KEY=TEST_JWT_SECRET,
        BCRYPT_WORK_FACTOR=4,
        GOOGLE_CLIENT_ID=TEST_GOOGLE_CLIENT_ID,
        DATABASE_URL="",
        REDIS_URL="",
        REDIS_HOST="",
        USE_CASE_TIMEOUT_SECONDS=5.0,
    )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def event_publisher() -> InMemoryEventPublisher:
    return InMemoryEventPublisher(retain_events=True)


@pytest.fixture
def user_repository(event_publisher) -> InMemoryUserRepository:
    return InMemoryUserRepository(event_publisher)


@pytest.fixture
def password_hasher() -> BcryptPasswordHasher:
    return BcryptPasswordHasher(work_factor=4)


@pytest.fixture
def totp_service(clock) -> TOTPService:
    return TOTPService(clock, issuer_name="Gatehouse", valid_window=1)


@pytest.fixture
def refresh_store(clock) -> InMemoryRefreshTokenStore:
    return InMemoryRefreshTokenStore(clock)


@pytest.fixture
def revocation_store(clock) -> InMemoryTokenRevocationStore:
    return InMemoryTokenRevocationStore(clock)


@pytest.fixture
def token_service(test_settings, clock, refresh_store, revocation_store) -> JwtTokenService:
    return JwtTokenService(test_settings, clock, refresh_store, revocation_store)


@pytest.fixture(scope="session")
def google_signer() -> GoogleTokenSigner:
    return GoogleTokenSigner()


@pytest.fixture
def google_verifier(google_signer) -> GoogleIdTokenVerifier:
    return GoogleIdTokenVerifier(TEST_GOOGLE_CLIENT_ID, jwks_client=google_signer.jwks_client)


@pytest_asyncio.fixture
async def container(test_settings, clock, google_verifier):
    auth_container = build_auth_container(
        test_settings, clock=clock, google_verifier=google_verifier, retain_events=True
    )
    yield auth_container
    await auth_container.aclose()
