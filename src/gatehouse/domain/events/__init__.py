"""Domain events for the User aggregate."""

from .user_events import (
    EVENT_TYPES,
    AccountLocked,
    BaseUserEvent,
    EmailVerified,
    GoogleAccountLinked,
    LoginFailed,
    LoginSucceeded,
    MfaDisabled,
    MfaEnabled,
    PasswordSet,
    ProfileUpdated,
    RoleAssigned,
    RoleRemoved,
    UserCreated,
    UserCreatedFromGoogle,
    UserEvent,
    UserLoggedOut,
    event_from_payload,
    event_to_payload,
)

__all__ = [
    "EVENT_TYPES",
    "AccountLocked",
    "BaseUserEvent",
    "EmailVerified",
    "GoogleAccountLinked",
    "LoginFailed",
    "LoginSucceeded",
    "MfaDisabled",
    "MfaEnabled",
    "PasswordSet",
    "ProfileUpdated",
    "RoleAssigned",
    "RoleRemoved",
    "UserCreated",
    "UserCreatedFromGoogle",
    "UserEvent",
    "UserLoggedOut",
    "event_from_payload",
    "event_to_payload",
]
