"""User Domain Events.

Every state change of the ``User`` aggregate is recorded as one of the
immutable events below. The events are the unit of persistence: the
aggregate is rebuilt by folding its stream from an empty state, so the set
of variants is closed and each variant must be handled by the fold.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Type, Union
from uuid import UUID


@dataclass(frozen=True)
class BaseUserEvent:
    """Base class for all user events.

    Attributes:
        user_id: Identity of the aggregate the event belongs to
        occurred_at: When the event occurred (UTC)
    """

    user_id: UUID
    occurred_at: datetime

    def __post_init__(self):
        """Ensure occurred_at is timezone-aware."""
        if not self.occurred_at.tzinfo:
            object.__setattr__(self, "occurred_at", self.occurred_at.replace(tzinfo=timezone.utc))

    @property
    def event_type(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class UserCreated(BaseUserEvent):
    """A local (password) account was registered.

    Attributes:
        email: Normalized email address
        name: Display name
    """

    email: str
    name: str


@dataclass(frozen=True)
class UserCreatedFromGoogle(BaseUserEvent):
    """An account was created from a verified Google identity.

    Folding this event marks the email as verified and the user as a
    workspace user.
    """

    email: str
    name: str
    google_id: str
    picture: Optional[str] = None
    domain: Optional[str] = None


@dataclass(frozen=True)
class PasswordSet(BaseUserEvent):
    password_hash: str = field(repr=False)


@dataclass(frozen=True)
class MfaEnabled(BaseUserEvent):
    secret: str = field(repr=False)


@dataclass(frozen=True)
class MfaDisabled(BaseUserEvent):
    pass


@dataclass(frozen=True)
class ProfileUpdated(BaseUserEvent):
    name: str
    picture: Optional[str] = None


@dataclass(frozen=True)
class LoginSucceeded(BaseUserEvent):
    """Successful authentication; resets the failure counter and any lockout.

    Attributes:
        provider: ``AuthenticationProvider`` value that proved the identity
        ip_address: Client IP address, if known
        user_agent: Client user agent, if known
        is_mfa_enabled: Whether the account required MFA at the time
    """

    provider: str = "local"
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    is_mfa_enabled: bool = False


@dataclass(frozen=True)
class LoginFailed(BaseUserEvent):
    """Failed authentication; increments the failure counter.

    Attributes:
        reason: Why the attempt failed, e.g. ``invalid_password``
        ip_address: Client IP address, if known
        user_agent: Client user agent, if known
        failed_attempts: Consecutive failures including this one
    """

    reason: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    failed_attempts: int = 0


@dataclass(frozen=True)
class AccountLocked(BaseUserEvent):
    """The failure threshold was reached.

    Attributes:
        lockout_end: Instant until which authentication is refused
        failed_attempts: Failures that triggered the lockout
        ip_address: Client IP address of the locking attempt, if known
    """

    lockout_end: datetime
    failed_attempts: int = 0
    ip_address: Optional[str] = None

    def __post_init__(self):
        super().__post_init__()
        if not self.lockout_end.tzinfo:
            object.__setattr__(self, "lockout_end", self.lockout_end.replace(tzinfo=timezone.utc))


@dataclass(frozen=True)
class UserLoggedOut(BaseUserEvent):
    """A session was ended by the user. Audit only; no state changes."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass(frozen=True)
class EmailVerified(BaseUserEvent):
    pass


@dataclass(frozen=True)
class GoogleAccountLinked(BaseUserEvent):
    """A Google subject was explicitly linked to an existing account."""

    google_id: str
    domain: Optional[str] = None


@dataclass(frozen=True)
class RoleAssigned(BaseUserEvent):
    role: str


@dataclass(frozen=True)
class RoleRemoved(BaseUserEvent):
    role: str


UserEvent = Union[
    UserCreated,
    UserCreatedFromGoogle,
    PasswordSet,
    MfaEnabled,
    MfaDisabled,
    ProfileUpdated,
    LoginSucceeded,
    LoginFailed,
    AccountLocked,
    UserLoggedOut,
    EmailVerified,
    GoogleAccountLinked,
    RoleAssigned,
    RoleRemoved,
]

EVENT_TYPES: Dict[str, Type[BaseUserEvent]] = {
    cls.__name__: cls for cls in UserEvent.__args__  # type: ignore[attr-defined]
}

_DATETIME_FIELDS = frozenset({"occurred_at", "lockout_end"})


def event_to_payload(event: BaseUserEvent) -> Dict[str, Any]:
    """Serialize an event to a JSON-compatible dictionary.

    The event type is not part of the payload; store it alongside.
    """
    payload: Dict[str, Any] = {}
    for f in fields(event):
        value = getattr(event, f.name)
        if isinstance(value, UUID):
            value = str(value)
        elif isinstance(value, datetime):
            value = value.isoformat()
        payload[f.name] = value
    return payload


def event_from_payload(event_type: str, payload: Dict[str, Any]) -> UserEvent:
    """Rebuild an event from its stored type name and payload.

    Raises:
        ValueError: If the event type is unknown
    """
    try:
        event_cls = EVENT_TYPES[event_type]
    except KeyError:
        raise ValueError(f"Unknown user event type: {event_type}") from None

    kwargs: Dict[str, Any] = {}
    for f in fields(event_cls):
        if f.name not in payload:
            continue
        value = payload[f.name]
        if f.name == "user_id":
            value = UUID(str(value))
        elif f.name in _DATETIME_FIELDS and isinstance(value, str):
            value = datetime.fromisoformat(value)
        kwargs[f.name] = value
    return event_cls(**kwargs)  # type: ignore[return-value]
