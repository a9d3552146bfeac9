"""Authentication and account workflows."""

from .account_service import AccountService
from .authentication_service import AuthenticationService
from .results import (
    AccountResult,
    AuthFailure,
    AuthResult,
    AuthSuccess,
    Completed,
    EnrollmentResult,
    FailureKind,
    MfaEnrollment,
    MfaRequired,
    UserSummary,
)

__all__ = [
    "AccountService",
    "AuthenticationService",
    "AccountResult",
    "AuthFailure",
    "AuthResult",
    "AuthSuccess",
    "Completed",
    "EnrollmentResult",
    "FailureKind",
    "MfaEnrollment",
    "MfaRequired",
    "UserSummary",
]
