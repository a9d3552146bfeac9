from __future__ import annotations

"""Centralized, structured exception hierarchy for Gatehouse.

Every custom exception carries a machine-readable `code` for programmatic
handling and a human-readable `message` for logging.

Two families live here:

- Domain errors raised by the `User` aggregate when a command would violate an
  invariant. They signal programmer misuse; the authentication workflows
  check preconditions first and report expected outcomes as `AuthFailure`
  values instead.
- Infrastructure errors (tokens, persistence, identity verification) raised
  by the adapters. Token and identity errors are translated by the workflows;
  persistence errors propagate unchanged to the caller.
"""

from typing import Final
from uuid import UUID

__all__: Final = [
    "GatehouseError",
    "DomainError",
    "InvalidArgumentError",
    "MfaAlreadyEnabledError",
    "MfaNotEnabledError",
    "EmailAlreadyVerifiedError",
    "AccountAlreadyLinkedError",
    "ConcurrencyError",
    "DuplicateUserError",
    "InvalidTokenError",
    "ExpiredTokenError",
    "RevokedTokenError",
    "IdentityVerificationError",
    "DatabaseError",
]


class GatehouseError(Exception):
    """Base exception class for all custom errors in Gatehouse.

    Attributes:
        message (str): A human-readable error message, suitable for logging.
        code (str): A unique, machine-readable error code.
    """

    message: str
    code: str = "generic_error"

    def __init__(self, message: str, code: str = "generic_error"):
        self.message = message
        self.code = code
        Exception.__init__(self, self.message)

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Aggregate invariant violations
# ---------------------------------------------------------------------------


class DomainError(GatehouseError):
    """Raised when an aggregate command is invoked in a state that forbids it."""

    def __init__(self, message: str, code: str = "domain_error"):
        super().__init__(message, code)


class InvalidArgumentError(DomainError):
    """Raised for empty or malformed command arguments (`InvalidArgument`)."""

    def __init__(self, message: str, code: str = "invalid_argument"):
        super().__init__(message, code)


class MfaAlreadyEnabledError(DomainError):
    """Raised by `enable_mfa` when MFA is already on (`AlreadyEnabled`)."""

    def __init__(self, message: str = "MFA is already enabled", code: str = "mfa_already_enabled"):
        super().__init__(message, code)


class MfaNotEnabledError(DomainError):
    """Raised by `disable_mfa` when MFA is off (`NotEnabled`)."""

    def __init__(self, message: str = "MFA is not enabled", code: str = "mfa_not_enabled"):
        super().__init__(message, code)


class EmailAlreadyVerifiedError(DomainError):
    """Raised by `verify_email` on an already verified account (`AlreadyVerified`)."""

    def __init__(self, message: str = "Email is already verified", code: str = "email_already_verified"):
        super().__init__(message, code)


class AccountAlreadyLinkedError(DomainError):
    """Raised when linking a Google subject to an account that already has one."""

    def __init__(
        self,
        message: str = "Account is already linked to a Google identity",
        code: str = "account_already_linked",
    ):
        super().__init__(message, code)


# ---------------------------------------------------------------------------
# Persistence errors
# ---------------------------------------------------------------------------


class ConcurrencyError(GatehouseError):
    """Raised when an event stream changed between load and append.

    Attributes:
        aggregate_id: Identity of the contended aggregate.
        expected_version: Version the writer loaded.
        actual_version: Version found in the store at append time.
    """

    def __init__(self, aggregate_id: UUID, expected_version: int, actual_version: int):
        self.aggregate_id = aggregate_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Concurrency conflict on user {aggregate_id}: expected version "
            f"{expected_version}, found {actual_version}",
            "concurrency_conflict",
        )


class DuplicateUserError(GatehouseError):
    """Raised when a normalized email or Google subject is already registered."""

    def __init__(self, message: str = "User already exists", code: str = "duplicate_user"):
        super().__init__(message, code)


class DatabaseError(GatehouseError):
    """Wraps low-level database driver errors."""

    def __init__(self, message: str, code: str = "database_error"):
        super().__init__(message, code)


# ---------------------------------------------------------------------------
# Token and identity errors
# ---------------------------------------------------------------------------


class InvalidTokenError(GatehouseError):
    """Raised when a token fails signature, claim or type checks."""

    def __init__(self, message: str = "Invalid token", code: str = "invalid_token"):
        super().__init__(message, code)


class ExpiredTokenError(InvalidTokenError):
    """Raised when a structurally valid token is past its expiry."""

    def __init__(self, message: str = "Token has expired", code: str = "token_expired"):
        super().__init__(message, code)


class RevokedTokenError(InvalidTokenError):
    """Raised when a token id is on the revocation list."""

    def __init__(self, message: str = "Token has been revoked", code: str = "token_revoked"):
        super().__init__(message, code)


class IdentityVerificationError(GatehouseError):
    """Raised when an external identity assertion (Google ID token) is rejected."""

    def __init__(self, message: str = "Identity token rejected", code: str = "identity_verification_failed"):
        super().__init__(message, code)
