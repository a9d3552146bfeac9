"""Outcomes returned by the authentication workflows.

Expected business outcomes (bad password, lockout, unknown user) are values,
never exceptions. Every use case returns one of the dataclasses below.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Optional, Tuple, Union
from uuid import UUID

from gatehouse.domain.entities.user import User

INVALID_CREDENTIALS = "Invalid credentials"
USER_NOT_FOUND = "User not found"
USE_GOOGLE_LOGIN = "This account uses Google login"
REGISTERED_WITH_DIFFERENT_METHOD = "Email already registered via different method"
MFA_NOT_ENABLED = "MFA is not enabled"
MFA_ALREADY_ENABLED = "MFA is already enabled"
INVALID_TOKEN = "Invalid token"


class FailureKind(str, Enum):
    """Failure taxonomy exposed to callers."""

    NOT_FOUND = "NotFound"
    VALIDATION = "Validation"
    UNAUTHORIZED = "Unauthorized"
    CONFLICT = "Conflict"


@dataclass(frozen=True)
class UserSummary:
    """Public view of a user, safe to hand to clients."""

    user_id: UUID
    email: str
    name: str
    picture: Optional[str]
    roles: Tuple[str, ...]
    is_mfa_enabled: bool
    is_email_verified: bool
    is_google_linked: bool
    has_password: bool

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(
            user_id=user.id,
            email=user.email.value,
            name=user.name,
            picture=user.picture,
            roles=user.role_names,
            is_mfa_enabled=user.is_mfa_enabled,
            is_email_verified=user.is_email_verified,
            is_google_linked=user.is_google_linked,
            has_password=user.has_password,
        )


@dataclass(frozen=True)
class AuthSuccess:
    """A full session: access token, refresh token and the user summary."""

    access_token: str = field(repr=False)
    refresh_token: Optional[str] = field(repr=False)
    user: UserSummary
    expires_in: int
    token_type: str = "bearer"

    outcome: ClassVar[str] = "success"


@dataclass(frozen=True)
class MfaRequired:
    """Primary credentials were correct; a TOTP code is still needed."""

    user_id: UUID
    mfa_pending_token: Optional[str] = field(default=None, repr=False)

    outcome: ClassVar[str] = "mfa_required"


@dataclass(frozen=True)
class AuthFailure:
    kind: FailureKind
    message: str

    @property
    def outcome(self) -> str:
        return f"failure:{self.kind.value}"


@dataclass(frozen=True)
class Completed:
    """An account operation succeeded."""

    user_id: UUID
    user: Optional[UserSummary] = None

    outcome: ClassVar[str] = "completed"


@dataclass(frozen=True)
class MfaEnrollment:
    """A freshly generated TOTP secret awaiting confirmation."""

    user_id: UUID
    secret: str = field(repr=False)
    provisioning_uri: str = field(repr=False)

    outcome: ClassVar[str] = "mfa_enrollment"


AuthResult = Union[AuthSuccess, MfaRequired, AuthFailure]
AccountResult = Union[Completed, AuthFailure]
EnrollmentResult = Union[MfaEnrollment, AuthFailure]


def not_found(message: str = USER_NOT_FOUND) -> AuthFailure:
    return AuthFailure(FailureKind.NOT_FOUND, message)


def validation(message: str) -> AuthFailure:
    return AuthFailure(FailureKind.VALIDATION, message)


def unauthorized(message: str = INVALID_CREDENTIALS) -> AuthFailure:
    return AuthFailure(FailureKind.UNAUTHORIZED, message)


def conflict(message: str) -> AuthFailure:
    return AuthFailure(FailureKind.CONFLICT, message)
