"""End-to-end authentication journeys against in-memory adapters.

Each test walks a user through several use cases the way a client would,
checking both the returned outcomes and the persisted event stream.
"""

import pyotp
import pytest

from gatehouse.core.exceptions import RevokedTokenError
from gatehouse.domain.entities.user import User
from gatehouse.domain.services.authentication.results import (
    INVALID_CREDENTIALS,
    AuthFailure,
    AuthSuccess,
    Completed,
    FailureKind,
    MfaRequired,
)
from gatehouse.domain.value_objects.email import Email
from tests.factories.google import create_fake_google_claims
from tests.factories.user import fake_strong_password


def stream_types(container, user_id):
    return [e.event_type for e in container.event_publisher.get_published_events(user_id=user_id)]


@pytest.mark.feature
class TestPasswordJourney:
    @pytest.mark.asyncio
    async def test_register_lock_out_recover(self, container):
        # Arrange
        password = fake_strong_password()
        registered = await container.accounts.register_local("carol@example.com", "Carol", password)
        user_id = registered.user_id

        # Act: five bad passwords, then the right one while locked
        failures = [await container.authentication.local_login("carol@example.com", "Wr0ng!pass") for _ in range(5)]
        while_locked = await container.authentication.local_login("carol@example.com", password)
        container.clock.advance(minutes=29)
        still_locked = await container.authentication.local_login("carol@example.com", password)
        container.clock.advance(minutes=1)
        recovered = await container.authentication.local_login("carol@example.com", password)

        # Assert
        expected = AuthFailure(FailureKind.UNAUTHORIZED, INVALID_CREDENTIALS)
        assert failures == [expected] * 5
        assert while_locked == expected
        assert still_locked == expected
        assert isinstance(recovered, AuthSuccess)
        assert stream_types(container, user_id) == [
            "UserCreated",
            "PasswordSet",
            "LoginFailed",
            "LoginFailed",
            "LoginFailed",
            "LoginFailed",
            "LoginFailed",
            "AccountLocked",
            "LoginSucceeded",
        ]

    @pytest.mark.asyncio
    async def test_persisted_stream_replays_to_same_state(self, container):
        password = fake_strong_password()
        registered = await container.accounts.register_local("dave@example.com", "Dave", password)
        await container.accounts.verify_email(registered.user_id)
        await container.accounts.assign_role(registered.user_id, "Admin")
        await container.authentication.local_login("dave@example.com", "Wr0ng!pass")
        await container.authentication.local_login("dave@example.com", password)

        events = container.event_publisher.get_published_events(user_id=registered.user_id)
        replayed = User.from_history(events)
        stored = await container.users.get_by_id(registered.user_id)

        assert replayed.version == stored.version == len(events)
        assert replayed.role_names == stored.role_names == ("Admin", "User")
        assert replayed.last_login_at == stored.last_login_at
        assert replayed.failed_login_attempts == stored.failed_login_attempts == 0


@pytest.mark.feature
class TestMfaJourney:
    @pytest.mark.asyncio
    async def test_enroll_login_and_disable(self, container):
        # Arrange
        password = fake_strong_password()
        registered = await container.accounts.register_local("erin@example.com", "Erin", password)
        enrollment = await container.accounts.begin_mfa_enrollment(registered.user_id)
        totp = pyotp.TOTP(enrollment.secret)
        await container.accounts.confirm_mfa_enrollment(
            registered.user_id, enrollment.secret, totp.at(container.clock.now())
        )

        # Act
        primary = await container.authentication.local_login("erin@example.com", password)
        container.clock.advance(seconds=40)
        session = await container.authentication.verify_mfa_with_token(
            primary.mfa_pending_token, totp.at(container.clock.now())
        )
        disabled = await container.accounts.disable_mfa(registered.user_id, totp.at(container.clock.now()))
        direct = await container.authentication.local_login("erin@example.com", password)

        # Assert
        assert isinstance(primary, MfaRequired)
        assert isinstance(session, AuthSuccess)
        assert isinstance(disabled, Completed)
        assert isinstance(direct, AuthSuccess)
        assert "MfaDisabled" in stream_types(container, registered.user_id)

    @pytest.mark.asyncio
    async def test_pending_token_expires(self, container):
        password = fake_strong_password()
        registered = await container.accounts.register_local("fay@example.com", "Fay", password)
        enrollment = await container.accounts.begin_mfa_enrollment(registered.user_id)
        totp = pyotp.TOTP(enrollment.secret)
        await container.accounts.confirm_mfa_enrollment(
            registered.user_id, enrollment.secret, totp.at(container.clock.now())
        )
        primary = await container.authentication.local_login("fay@example.com", password)

        container.clock.advance(minutes=6)
        result = await container.authentication.verify_mfa_with_token(
            primary.mfa_pending_token, totp.at(container.clock.now())
        )

        assert result.kind is FailureKind.UNAUTHORIZED


@pytest.mark.feature
class TestGoogleJourney:
    @pytest.mark.asyncio
    async def test_google_signup_then_subject_mismatch(self, container, google_signer):
        # Arrange
        original = google_signer.sign(create_fake_google_claims(email="gus@corp.example", sub="111", hd="corp.example"))
        impostor = google_signer.sign(create_fake_google_claims(email="gus@corp.example", sub="222"))

        # Act
        signup = await container.authentication.google_login(original)
        mismatch = await container.authentication.google_login(impostor)
        again = await container.authentication.google_login(original)

        # Assert
        assert isinstance(signup, AuthSuccess)
        assert mismatch.kind is FailureKind.VALIDATION
        assert isinstance(again, AuthSuccess)
        stored = await container.users.get_by_email(Email("gus@corp.example"))
        assert stored.google_id == "111"
        assert stream_types(container, stored.id) == ["UserCreatedFromGoogle", "LoginSucceeded", "LoginSucceeded"]

    @pytest.mark.asyncio
    async def test_password_user_links_google_and_uses_both(self, container, google_signer):
        password = fake_strong_password()
        registered = await container.accounts.register_local("hal@example.com", "Hal", password)
        token = google_signer.sign(create_fake_google_claims(email="hal@example.com", sub="333"))

        before_link = await container.authentication.google_login(token)
        linked = await container.authentication.link_google_account(registered.user_id, token)
        via_google = await container.authentication.google_login(token)
        via_password = await container.authentication.local_login("hal@example.com", password)

        assert before_link.kind is FailureKind.VALIDATION
        assert isinstance(linked, Completed)
        assert isinstance(via_google, AuthSuccess)
        assert isinstance(via_password, AuthSuccess)
        assert via_google.user.user_id == via_password.user.user_id == registered.user_id


@pytest.mark.feature
class TestSessionJourney:
    @pytest.mark.asyncio
    async def test_refresh_rotation_and_logout(self, container):
        # Arrange
        password = fake_strong_password()
        await container.accounts.register_local("ivy@example.com", "Ivy", password)
        first = await container.authentication.local_login("ivy@example.com", password)

        # Act: the access token expires, the session is refreshed twice, then closed
        container.clock.advance(minutes=61)
        second = await container.authentication.refresh_tokens(first.access_token, first.refresh_token)
        replay = await container.authentication.refresh_tokens(second.access_token, first.refresh_token)
        third = await container.authentication.refresh_tokens(second.access_token, second.refresh_token)
        logout = await container.authentication.logout(third.access_token, third.refresh_token)
        after_logout = await container.authentication.refresh_tokens(third.access_token, third.refresh_token)

        # Assert
        assert isinstance(second, AuthSuccess)
        assert replay.kind is FailureKind.UNAUTHORIZED
        assert isinstance(third, AuthSuccess)
        assert isinstance(logout, Completed)
        assert after_logout.kind is FailureKind.UNAUTHORIZED
        with pytest.raises(RevokedTokenError):
            await container.token_service.validate_access_token(third.access_token)

    @pytest.mark.asyncio
    async def test_refresh_token_outlives_access_token_but_not_its_own_expiry(self, container):
        password = fake_strong_password()
        await container.accounts.register_local("jo@example.com", "Jo", password)
        session = await container.authentication.local_login("jo@example.com", password)

        container.clock.advance(days=30, seconds=1)
        result = await container.authentication.refresh_tokens(session.access_token, session.refresh_token)

        assert result.kind is FailureKind.UNAUTHORIZED
