"""Unit tests for the exception hierarchy."""

from uuid import uuid4

import pytest

from gatehouse.core.exceptions import (
    AccountAlreadyLinkedError,
    ConcurrencyError,
    DomainError,
    EmailAlreadyVerifiedError,
    ExpiredTokenError,
    GatehouseError,
    InvalidArgumentError,
    InvalidTokenError,
    MfaAlreadyEnabledError,
    MfaNotEnabledError,
    RevokedTokenError,
)


@pytest.mark.unit
class TestExceptions:
    @pytest.mark.parametrize(
        "error_class, code",
        [
            (MfaAlreadyEnabledError, "mfa_already_enabled"),
            (MfaNotEnabledError, "mfa_not_enabled"),
            (EmailAlreadyVerifiedError, "email_already_verified"),
            (AccountAlreadyLinkedError, "account_already_linked"),
        ],
    )
    def test_domain_errors_have_default_codes(self, error_class, code):
        error = error_class()
        assert isinstance(error, DomainError)
        assert error.code == code
        assert str(error) == error.message

    def test_invalid_argument_is_domain_error(self):
        error = InvalidArgumentError("Name cannot be empty")
        assert isinstance(error, DomainError)
        assert error.code == "invalid_argument"

    def test_token_errors_share_a_base(self):
        assert issubclass(ExpiredTokenError, InvalidTokenError)
        assert issubclass(RevokedTokenError, InvalidTokenError)
        assert ExpiredTokenError().code == "token_expired"

    def test_concurrency_error_carries_versions(self):
        user_id = uuid4()
        error = ConcurrencyError(user_id, 3, 5)
        assert isinstance(error, GatehouseError)
        assert (error.aggregate_id, error.expected_version, error.actual_version) == (user_id, 3, 5)
        assert "expected version 3, found 5" in str(error)
