"""User aggregate root.

The ``User`` aggregate owns identity, credential, MFA and lockout state. It is
event sourced: every command validates its preconditions, appends one or more
events from ``gatehouse.domain.events`` and folds them into memory through a
single deterministic ``_when`` function. Loading a user replays the persisted
stream through the same fold, so replaying a stream twice from an empty state
always produces the same aggregate.

Commands raise ``DomainError`` subclasses when invoked in a state that forbids
them. The authentication workflows check those preconditions first; a domain
error reaching the workflow layer is a defect.
"""

from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Set, Tuple, assert_never
from uuid import UUID, uuid4

import structlog

from gatehouse.core.exceptions import (
    AccountAlreadyLinkedError,
    DomainError,
    EmailAlreadyVerifiedError,
    InvalidArgumentError,
    MfaAlreadyEnabledError,
    MfaNotEnabledError,
)
from gatehouse.domain.events.user_events import (
    AccountLocked,
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
)
from gatehouse.domain.interfaces.clock import IClock
from gatehouse.domain.services.lockout_policy import DEFAULT_LOCKOUT_POLICY, LockoutPolicy
from gatehouse.domain.value_objects.email import Email
from gatehouse.domain.value_objects.request_context import (
    EMPTY_REQUEST_CONTEXT,
    AuthenticationProvider,
    RequestContext,
)

logger = structlog.get_logger(__name__)


class Role(str, Enum):
    """Role identifiers carried in access tokens.

    Attributes:
        USER: Default role every account starts with.
        ADMIN: Administrative privileges.
    """

    USER = "User"
    ADMIN = "Admin"


DEFAULT_ROLE = Role.USER


def _require_text(value: Optional[str], field_name: str) -> str:
    if value is None or not value.strip():
        raise InvalidArgumentError(f"{field_name} cannot be empty")
    return value.strip()


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value.strip()


def _parse_email(value: str) -> Email:
    try:
        return Email(value)
    except ValueError as e:
        raise InvalidArgumentError(str(e)) from e


def _parse_role(value) -> Role:
    try:
        return Role(value)
    except ValueError:
        raise InvalidArgumentError(f"Unknown role: {value}") from None


class User:
    """Represents a User and acts as an Aggregate Root.

    Attributes:
        id: Aggregate identity.
        email: Normalized email address.
        name: Display name.
        picture: Optional avatar URL.
        password_hash: Present only for accounts with a local password.
        google_id: Present only for Google-linked accounts.
        domain: Google Workspace domain, if any.
        is_workspace_user: Set for accounts created from Google.
        is_mfa_enabled: Whether TOTP is required at login.
        mfa_secret: TOTP secret, set if and only if MFA is enabled.
        failed_login_attempts: Consecutive failures since the last success.
        lockout_end: Instant until which logins are refused, if locked.
        roles: Role membership.
        is_email_verified: Whether the email address has been verified.
        created_at: Creation instant.
        last_login_at: Last successful login.
        version: Number of persisted events folded into this instance.
    """

    def __init__(self, user_id: UUID):
        self.id = user_id
        self.email: Optional[Email] = None
        self.name: str = ""
        self.picture: Optional[str] = None
        self.password_hash: Optional[str] = None
        self.google_id: Optional[str] = None
        self.domain: Optional[str] = None
        self.is_workspace_user = False
        self.is_mfa_enabled = False
        self.mfa_secret: Optional[str] = None
        self.failed_login_attempts = 0
        self.lockout_end: Optional[datetime] = None
        self.roles: Set[Role] = set()
        self.is_email_verified = False
        self.created_at: Optional[datetime] = None
        self.last_login_at: Optional[datetime] = None
        self.version = 0
        self._pending_events: List[UserEvent] = []

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def create_local(
        cls,
        email: str,
        name: str,
        password_hash: str,
        clock: IClock,
        user_id: Optional[UUID] = None,
    ) -> "User":
        """Registers a password account.

        Raises:
            InvalidArgumentError: If the email is invalid or a field is empty.
        """
        normalized = _parse_email(_require_text(email, "Email"))
        display_name = _require_text(name, "Name")
        password_hash = _require_text(password_hash, "Password hash")

        user = cls(user_id or uuid4())
        now = clock.now()
        user._apply(UserCreated(user_id=user.id, occurred_at=now, email=normalized.value, name=display_name))
        user._apply(PasswordSet(user_id=user.id, occurred_at=now, password_hash=password_hash))
        logger.info("user_created", user_id=str(user.id), email=normalized.mask_for_logging(), source="local")
        return user

    @classmethod
    def create_from_google(
        cls,
        email: str,
        google_id: str,
        name: str,
        picture: Optional[str],
        domain: Optional[str],
        clock: IClock,
        user_id: Optional[UUID] = None,
    ) -> "User":
        """Creates an account from a verified Google identity.

        The email is considered verified and the account is flagged as a
        workspace user.

        Raises:
            InvalidArgumentError: If the email is invalid or a required field is empty.
        """
        normalized = _parse_email(_require_text(email, "Email"))
        google_id = _require_text(google_id, "Google id")
        display_name = _require_text(name, "Name")

        user = cls(user_id or uuid4())
        user._apply(
            UserCreatedFromGoogle(
                user_id=user.id,
                occurred_at=clock.now(),
                email=normalized.value,
                name=display_name,
                google_id=google_id,
                picture=_optional_text(picture),
                domain=_optional_text(domain),
            )
        )
        logger.info("user_created", user_id=str(user.id), email=normalized.mask_for_logging(), source="google")
        return user

    @classmethod
    def from_history(cls, events: Iterable[UserEvent]) -> "User":
        """Rebuilds an aggregate by folding its persisted stream from empty state.

        Raises:
            ValueError: If the stream is empty, does not start with a creation
                event, or mixes aggregates.
        """
        history = list(events)
        if not history:
            raise ValueError("Cannot rebuild a user from an empty event stream")
        first = history[0]
        if not isinstance(first, (UserCreated, UserCreatedFromGoogle)):
            raise ValueError(f"User stream must start with a creation event, got {first.event_type}")

        user = cls(first.user_id)
        for event in history:
            if event.user_id != user.id:
                raise ValueError(f"Event {event.event_type} belongs to user {event.user_id}, not {user.id}")
            user._when(event)
        user.version = len(history)
        return user

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def enable_mfa(self, secret: str, clock: IClock) -> None:
        """Turns on TOTP for the account.

        Raises:
            MfaAlreadyEnabledError: If MFA is already on.
            InvalidArgumentError: If the secret is empty.
        """
        if self.is_mfa_enabled:
            raise MfaAlreadyEnabledError()
        secret = _require_text(secret, "MFA secret")
        self._apply(MfaEnabled(user_id=self.id, occurred_at=clock.now(), secret=secret))

    def disable_mfa(self, clock: IClock) -> None:
        """Turns off TOTP and clears the secret.

        Raises:
            MfaNotEnabledError: If MFA is off.
        """
        if not self.is_mfa_enabled:
            raise MfaNotEnabledError()
        self._apply(MfaDisabled(user_id=self.id, occurred_at=clock.now()))

    def update_profile(self, name: str, picture: Optional[str], clock: IClock) -> None:
        display_name = _require_text(name, "Name")
        self._apply(
            ProfileUpdated(user_id=self.id, occurred_at=clock.now(), name=display_name, picture=_optional_text(picture))
        )

    def record_login_attempt(
        self,
        successful: bool,
        clock: IClock,
        policy: LockoutPolicy = DEFAULT_LOCKOUT_POLICY,
        provider: AuthenticationProvider = AuthenticationProvider.LOCAL,
        context: RequestContext = EMPTY_REQUEST_CONTEXT,
        reason: Optional[str] = None,
    ) -> None:
        """Records the outcome of an authentication attempt.

        A success resets the failure counter and clears any lockout. A failure
        increments the counter; when the incremented count reaches the policy
        threshold an ``AccountLocked`` event follows in the same invocation.

        Args:
            successful: Whether the credential checked out.
            clock: Time source for the event timestamps.
            policy: Failure threshold and lockout duration.
            provider: How the identity was proved; recorded on success.
            context: Client address and user agent for the audit trail.
            reason: Why the attempt failed; recorded on failure.
        """
        now = clock.now()
        if successful:
            self._apply(
                LoginSucceeded(
                    user_id=self.id,
                    occurred_at=now,
                    provider=AuthenticationProvider(provider).value,
                    ip_address=context.ip_address,
                    user_agent=context.user_agent,
                    is_mfa_enabled=self.is_mfa_enabled,
                )
            )
            return

        self._apply(
            LoginFailed(
                user_id=self.id,
                occurred_at=now,
                reason=reason,
                ip_address=context.ip_address,
                user_agent=context.user_agent,
                failed_attempts=self.failed_login_attempts + 1,
            )
        )
        if policy.should_lock(self.failed_login_attempts):
            self._apply(
                AccountLocked(
                    user_id=self.id,
                    occurred_at=now,
                    lockout_end=policy.lockout_end(now),
                    failed_attempts=self.failed_login_attempts,
                    ip_address=context.ip_address,
                )
            )
            logger.warning(
                "account_locked",
                user_id=str(self.id),
                failed_attempts=self.failed_login_attempts,
                lockout_end=self.lockout_end.isoformat(),
            )

    def record_logout(self, clock: IClock, context: RequestContext = EMPTY_REQUEST_CONTEXT) -> None:
        """Appends a logout to the audit trail."""
        self._apply(
            UserLoggedOut(
                user_id=self.id,
                occurred_at=clock.now(),
                ip_address=context.ip_address,
                user_agent=context.user_agent,
            )
        )

    def verify_email(self, clock: IClock) -> None:
        """Marks the email address as verified.

        Raises:
            EmailAlreadyVerifiedError: If it already is.
        """
        if self.is_email_verified:
            raise EmailAlreadyVerifiedError()
        self._apply(EmailVerified(user_id=self.id, occurred_at=clock.now()))

    def change_password(self, password_hash: str, clock: IClock) -> None:
        """Replaces the local password hash.

        Raises:
            DomainError: If the account has no local password to replace.
            InvalidArgumentError: If the hash is empty.
        """
        if not self.has_password:
            raise DomainError("Account has no local password", "no_local_password")
        password_hash = _require_text(password_hash, "Password hash")
        self._apply(PasswordSet(user_id=self.id, occurred_at=clock.now(), password_hash=password_hash))

    def link_google_account(self, google_id: str, domain: Optional[str], clock: IClock) -> None:
        """Links a Google subject to this account.

        Raises:
            AccountAlreadyLinkedError: If a Google subject is already linked.
            InvalidArgumentError: If the Google id is empty.
        """
        if self.google_id is not None:
            raise AccountAlreadyLinkedError()
        google_id = _require_text(google_id, "Google id")
        self._apply(
            GoogleAccountLinked(
                user_id=self.id, occurred_at=clock.now(), google_id=google_id, domain=_optional_text(domain)
            )
        )

    def assign_role(self, role, clock: IClock) -> None:
        """Adds a role; assigning a role the user already has is a no-op."""
        parsed = _parse_role(role)
        if parsed in self.roles:
            return
        self._apply(RoleAssigned(user_id=self.id, occurred_at=clock.now(), role=parsed.value))

    def remove_role(self, role, clock: IClock) -> None:
        """Removes a role; removing a role the user lacks is a no-op.

        Raises:
            InvalidArgumentError: If the role is the default role.
        """
        parsed = _parse_role(role)
        if parsed is DEFAULT_ROLE:
            raise InvalidArgumentError("The default role cannot be removed")
        if parsed not in self.roles:
            return
        self._apply(RoleRemoved(user_id=self.id, occurred_at=clock.now(), role=parsed.value))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_locked_out(self, now: datetime) -> bool:
        """Derived lockout check: locked iff ``lockout_end`` lies after ``now``."""
        return self.lockout_end is not None and self.lockout_end > now

    @property
    def has_password(self) -> bool:
        return self.password_hash is not None

    @property
    def is_google_linked(self) -> bool:
        return self.google_id is not None

    @property
    def role_names(self) -> Tuple[str, ...]:
        return tuple(sorted(role.value for role in self.roles))

    @property
    def pending_events(self) -> Tuple[UserEvent, ...]:
        """Events appended since the aggregate was loaded or last committed."""
        return tuple(self._pending_events)

    def mark_committed(self) -> None:
        """Called by repositories after the pending events were persisted."""
        self.version += len(self._pending_events)
        self._pending_events.clear()

    # ------------------------------------------------------------------
    # Event folding
    # ------------------------------------------------------------------

    def _apply(self, event: UserEvent) -> None:
        self._when(event)
        self._pending_events.append(event)

    def _when(self, event: UserEvent) -> None:
        match event:
            case UserCreated():
                self.email = Email(event.email)
                self.name = event.name
                self.roles = {DEFAULT_ROLE}
                self.created_at = event.occurred_at
            case UserCreatedFromGoogle():
                self.email = Email(event.email)
                self.name = event.name
                self.google_id = event.google_id
                self.picture = event.picture
                self.domain = event.domain
                self.is_workspace_user = True
                self.is_email_verified = True
                self.roles = {DEFAULT_ROLE}
                self.created_at = event.occurred_at
            case PasswordSet():
                self.password_hash = event.password_hash
            case MfaEnabled():
                self.is_mfa_enabled = True
                self.mfa_secret = event.secret
            case MfaDisabled():
                self.is_mfa_enabled = False
                self.mfa_secret = None
            case ProfileUpdated():
                self.name = event.name
                self.picture = event.picture
            case LoginSucceeded():
                self.failed_login_attempts = 0
                self.lockout_end = None
                self.last_login_at = event.occurred_at
            case LoginFailed():
                self.failed_login_attempts += 1
            case AccountLocked():
                self.lockout_end = event.lockout_end
            case UserLoggedOut():
                pass
            case EmailVerified():
                self.is_email_verified = True
            case GoogleAccountLinked():
                self.google_id = event.google_id
                self.domain = event.domain
            case RoleAssigned():
                self.roles = self.roles | {Role(event.role)}
            case RoleRemoved():
                self.roles = self.roles - {Role(event.role)}
            case _:
                assert_never(event)

    def __repr__(self) -> str:
        return f"User(id={self.id}, version={self.version}, pending={len(self._pending_events)})"
