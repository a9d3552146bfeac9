"""Unit tests for the account management workflow."""

from urllib.parse import unquote
from uuid import uuid4

import pyotp
import pytest

from gatehouse.domain.services.authentication.results import (
    INVALID_CREDENTIALS,
    MFA_ALREADY_ENABLED,
    MFA_NOT_ENABLED,
    USE_GOOGLE_LOGIN,
    AuthFailure,
    AuthSuccess,
    Completed,
    FailureKind,
    MfaEnrollment,
)
from tests.factories.google import create_fake_google_claims
from tests.factories.user import fake_strong_password

PASSWORD = "Str0ng!Passw0rd"
EMAIL = "alice@example.com"


async def register(container, email: str = EMAIL):
    result = await container.accounts.register_local(email, "Alice", PASSWORD)
    return result.user_id


@pytest.mark.unit
class TestRegisterLocal:
    @pytest.mark.asyncio
    async def test_registers_and_hashes_password(self, container):
        # Act
        result = await container.accounts.register_local("Alice@Example.com", "Alice", PASSWORD)

        # Assert
        assert isinstance(result, Completed)
        assert result.user.email == EMAIL
        assert result.user.has_password
        assert not result.user.is_email_verified
        user = await container.users.get_by_id(result.user_id)
        assert user.password_hash != PASSWORD
        assert user.password_hash.startswith("$2b$")

    @pytest.mark.asyncio
    async def test_duplicate_email_is_conflict(self, container):
        await register(container)
        result = await container.accounts.register_local("ALICE@example.com", "Other", fake_strong_password())
        assert result.kind is FailureKind.CONFLICT

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "email, name, password",
        [
            ("bad-email", "Alice", PASSWORD),
            (EMAIL, "  ", PASSWORD),
            (EMAIL, "Alice", "short"),
            (EMAIL, "Alice", "alllowercase1!"),
        ],
    )
    async def test_invalid_input_is_validation(self, container, email, name, password):
        result = await container.accounts.register_local(email, name, password)
        assert result.kind is FailureKind.VALIDATION


@pytest.mark.unit
class TestMfaEnrollment:
    @pytest.mark.asyncio
    async def test_begin_does_not_modify_user(self, container):
        user_id = await register(container)

        enrollment = await container.accounts.begin_mfa_enrollment(user_id)

        assert isinstance(enrollment, MfaEnrollment)
        assert len(enrollment.secret) == 32
        assert enrollment.provisioning_uri.startswith("otpauth://totp/")
        assert "Gatehouse" in enrollment.provisioning_uri
        assert EMAIL in unquote(enrollment.provisioning_uri)
        assert (await container.users.get_by_id(user_id)).version == 2

    @pytest.mark.asyncio
    async def test_confirm_with_valid_code_enables_mfa(self, container):
        user_id = await register(container)
        enrollment = await container.accounts.begin_mfa_enrollment(user_id)
        code = pyotp.TOTP(enrollment.secret).at(container.clock.now())

        result = await container.accounts.confirm_mfa_enrollment(user_id, enrollment.secret, code)

        assert isinstance(result, Completed)
        assert result.user.is_mfa_enabled
        user = await container.users.get_by_id(user_id)
        assert user.mfa_secret == enrollment.secret

    @pytest.mark.asyncio
    async def test_confirm_with_invalid_code_is_unauthorized(self, container):
        user_id = await register(container)
        enrollment = await container.accounts.begin_mfa_enrollment(user_id)

        result = await container.accounts.confirm_mfa_enrollment(user_id, enrollment.secret, "12ab56")

        assert result.kind is FailureKind.UNAUTHORIZED
        assert not (await container.users.get_by_id(user_id)).is_mfa_enabled

    @pytest.mark.asyncio
    async def test_enrolling_twice_is_validation(self, container):
        user_id = await register(container)
        enrollment = await container.accounts.begin_mfa_enrollment(user_id)
        code = pyotp.TOTP(enrollment.secret).at(container.clock.now())
        await container.accounts.confirm_mfa_enrollment(user_id, enrollment.secret, code)

        assert await container.accounts.begin_mfa_enrollment(user_id) == AuthFailure(
            FailureKind.VALIDATION, MFA_ALREADY_ENABLED
        )
        again = await container.accounts.confirm_mfa_enrollment(user_id, enrollment.secret, code)
        assert again == AuthFailure(FailureKind.VALIDATION, MFA_ALREADY_ENABLED)

    @pytest.mark.asyncio
    async def test_disable_requires_valid_code(self, container):
        user_id = await register(container)
        enrollment = await container.accounts.begin_mfa_enrollment(user_id)
        code = pyotp.TOTP(enrollment.secret).at(container.clock.now())
        await container.accounts.confirm_mfa_enrollment(user_id, enrollment.secret, code)

        rejected = await container.accounts.disable_mfa(user_id, "")
        disabled = await container.accounts.disable_mfa(user_id, code)

        assert rejected.kind is FailureKind.UNAUTHORIZED
        assert isinstance(disabled, Completed)
        user = await container.users.get_by_id(user_id)
        assert not user.is_mfa_enabled
        assert user.mfa_secret is None

    @pytest.mark.asyncio
    async def test_disable_when_not_enabled_is_validation(self, container):
        user_id = await register(container)
        result = await container.accounts.disable_mfa(user_id, "123456")
        assert result == AuthFailure(FailureKind.VALIDATION, MFA_NOT_ENABLED)

    @pytest.mark.asyncio
    async def test_unknown_user_is_not_found(self, container):
        assert (await container.accounts.begin_mfa_enrollment(uuid4())).kind is FailureKind.NOT_FOUND


@pytest.mark.unit
class TestProfileAndVerification:
    @pytest.mark.asyncio
    async def test_update_profile(self, container):
        user_id = await register(container)

        result = await container.accounts.update_profile(user_id, "Alice Liddell", "https://example.com/a.png")

        assert result.user.name == "Alice Liddell"
        assert result.user.picture == "https://example.com/a.png"

    @pytest.mark.asyncio
    async def test_update_profile_rejects_empty_name(self, container):
        user_id = await register(container)
        assert (await container.accounts.update_profile(user_id, "")).kind is FailureKind.VALIDATION

    @pytest.mark.asyncio
    async def test_verify_email_once(self, container):
        user_id = await register(container)

        first = await container.accounts.verify_email(user_id)
        second = await container.accounts.verify_email(user_id)

        assert first.user.is_email_verified
        assert second.kind is FailureKind.VALIDATION


@pytest.mark.unit
class TestChangePassword:
    @pytest.mark.asyncio
    async def test_change_password_then_login_with_new_one(self, container):
        user_id = await register(container)
        new_password = fake_strong_password()

        result = await container.accounts.change_password(user_id, PASSWORD, new_password)

        assert isinstance(result, Completed)
        assert isinstance(await container.authentication.local_login(EMAIL, new_password), AuthSuccess)
        old = await container.authentication.local_login(EMAIL, PASSWORD)
        assert old.kind is FailureKind.UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_wrong_current_password_is_unauthorized(self, container):
        user_id = await register(container)
        result = await container.accounts.change_password(user_id, "Wr0ng!Password", fake_strong_password())
        assert result == AuthFailure(FailureKind.UNAUTHORIZED, INVALID_CREDENTIALS)

    @pytest.mark.asyncio
    async def test_weak_or_unchanged_password_is_validation(self, container):
        user_id = await register(container)
        assert (await container.accounts.change_password(user_id, PASSWORD, "weak")).kind is FailureKind.VALIDATION
        assert (await container.accounts.change_password(user_id, PASSWORD, PASSWORD)).kind is FailureKind.VALIDATION

    @pytest.mark.asyncio
    async def test_google_account_has_no_password_to_change(self, container, google_signer):
        login = await container.authentication.google_login(
            google_signer.sign(create_fake_google_claims(email="gina@example.com", sub="g-1"))
        )

        result = await container.accounts.change_password(login.user.user_id, PASSWORD, fake_strong_password())

        assert result == AuthFailure(FailureKind.VALIDATION, USE_GOOGLE_LOGIN)


@pytest.mark.unit
class TestRoles:
    @pytest.mark.asyncio
    async def test_assign_and_remove_role(self, container):
        user_id = await register(container)

        assigned = await container.accounts.assign_role(user_id, "Admin")
        removed = await container.accounts.remove_role(user_id, "Admin")

        assert assigned.user.roles == ("Admin", "User")
        assert removed.user.roles == ("User",)

    @pytest.mark.asyncio
    async def test_assigned_role_is_carried_in_access_token(self, container):
        user_id = await register(container)
        await container.accounts.assign_role(user_id, "Admin")

        session = await container.authentication.local_login(EMAIL, PASSWORD)

        claims = await container.token_service.validate_access_token(session.access_token)
        assert claims.roles == frozenset({"Admin", "User"})

    @pytest.mark.asyncio
    async def test_unknown_or_default_role_is_validation(self, container):
        user_id = await register(container)
        assert (await container.accounts.assign_role(user_id, "Root")).kind is FailureKind.VALIDATION
        assert (await container.accounts.remove_role(user_id, "User")).kind is FailureKind.VALIDATION
