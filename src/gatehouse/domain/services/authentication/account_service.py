"""Account management workflow.

Registration, MFA enrollment, profile maintenance, email verification,
password change and role management. Like the authentication workflow, these
use cases report expected outcomes as result values and let infrastructure
errors propagate.
"""

from typing import Optional
from uuid import UUID

import structlog

from gatehouse.core.exceptions import DuplicateUserError
from gatehouse.core.pipeline import UseCasePipeline, use_case
from gatehouse.domain.entities.user import DEFAULT_ROLE, Role, User
from gatehouse.domain.interfaces.clock import IClock
from gatehouse.domain.interfaces.repositories import IUserRepository
from gatehouse.domain.interfaces.services import IMfaService, IPasswordHasher
from gatehouse.domain.services.authentication.base import DEFAULT_MAX_CONCURRENCY_RETRIES, WorkflowService
from gatehouse.domain.services.authentication.results import (
    MFA_ALREADY_ENABLED,
    MFA_NOT_ENABLED,
    USE_GOOGLE_LOGIN,
    AccountResult,
    AuthFailure,
    Completed,
    EnrollmentResult,
    MfaEnrollment,
    UserSummary,
    conflict,
    not_found,
    unauthorized,
    validation,
)
from gatehouse.domain.value_objects.email import Email
from gatehouse.domain.value_objects.password import Password

logger = structlog.get_logger(__name__)

EMAIL_ALREADY_REGISTERED = "Email is already registered"
INVALID_MFA_CODE = "Invalid MFA code"


def _completed(user: User) -> Completed:
    return Completed(user_id=user.id, user=UserSummary.from_user(user))


class AccountService(WorkflowService):
    """Application service for account maintenance use cases.

    Args:
        users: User event store.
        password_hasher: Hashes new passwords and checks current ones.
        mfa_service: Generates TOTP secrets and validates codes.
        clock: Injected time source.
        mfa_issuer: Issuer label shown by authenticator apps.
        pipeline: Middleware composition applied to every use case.
        max_concurrency_retries: Attempts at appending to a contended stream.
    """

    def __init__(
        self,
        users: IUserRepository,
        password_hasher: IPasswordHasher,
        mfa_service: IMfaService,
        clock: IClock,
        mfa_issuer: str = "Gatehouse",
        pipeline: Optional[UseCasePipeline] = None,
        max_concurrency_retries: int = DEFAULT_MAX_CONCURRENCY_RETRIES,
    ):
        super().__init__(users, clock, pipeline, max_concurrency_retries)
        self._password_hasher = password_hasher
        self._mfa_service = mfa_service
        self._mfa_issuer = mfa_issuer

    @use_case()
    async def register_local(self, email: str, name: str, password: str) -> AccountResult:
        """Registers a password account after checking the password policy."""
        try:
            normalized = Email(email)
            Password(password)
        except ValueError as e:
            return validation(str(e))
        if not name or not name.strip():
            return validation("Name cannot be empty")

        if await self._users.get_by_email(normalized) is not None:
            return conflict(EMAIL_ALREADY_REGISTERED)

        password_hash = await self._password_hasher.hash(password)
        user = User.create_local(normalized.value, name, password_hash, self._clock)
        try:
            await self._users.add(user)
        except DuplicateUserError:
            return conflict(EMAIL_ALREADY_REGISTERED)
        return _completed(user)

    # ------------------------------------------------------------------
    # MFA enrollment
    # ------------------------------------------------------------------

    @use_case()
    async def begin_mfa_enrollment(self, user_id: UUID) -> EnrollmentResult:
        """Generates a secret and provisioning URI; the user is not modified."""
        user = await self._users.get_by_id(user_id)
        if user is None:
            return not_found()
        if user.is_mfa_enabled:
            return validation(MFA_ALREADY_ENABLED)

        secret = self._mfa_service.generate_secret()
        uri = self._mfa_service.get_enrollment_uri(user.email.value, secret, self._mfa_issuer)
        return MfaEnrollment(user_id=user.id, secret=secret, provisioning_uri=uri)

    @use_case()
    async def confirm_mfa_enrollment(self, user_id: UUID, secret: str, code: str) -> AccountResult:
        """Enables MFA once the first code generated from ``secret`` validates."""
        user = await self._users.get_by_id(user_id)
        if user is None:
            return not_found()
        if user.is_mfa_enabled:
            return validation(MFA_ALREADY_ENABLED)
        if not secret or not secret.strip():
            return validation("MFA secret is required")

        if not await self._mfa_service.validate_code(secret, code):
            return unauthorized(INVALID_MFA_CODE)

        def enable(u: User) -> Optional[AuthFailure]:
            if u.is_mfa_enabled:
                return validation(MFA_ALREADY_ENABLED)
            u.enable_mfa(secret, self._clock)
            return None

        outcome = await self._persist_with_retry(user, enable)
        if isinstance(outcome, AuthFailure):
            return outcome
        logger.info("mfa_enabled", user_id=str(outcome.id))
        return _completed(outcome)

    @use_case()
    async def disable_mfa(self, user_id: UUID, code: str) -> AccountResult:
        """Disables MFA; requires a valid current code."""
        user = await self._users.get_by_id(user_id)
        if user is None:
            return not_found()
        if not user.is_mfa_enabled:
            return validation(MFA_NOT_ENABLED)

        if not await self._mfa_service.validate_code(user.mfa_secret, code):
            return unauthorized(INVALID_MFA_CODE)

        def disable(u: User) -> Optional[AuthFailure]:
            if not u.is_mfa_enabled:
                return validation(MFA_NOT_ENABLED)
            u.disable_mfa(self._clock)
            return None

        outcome = await self._persist_with_retry(user, disable)
        if isinstance(outcome, AuthFailure):
            return outcome
        logger.info("mfa_disabled", user_id=str(outcome.id))
        return _completed(outcome)

    # ------------------------------------------------------------------
    # Profile and credentials
    # ------------------------------------------------------------------

    @use_case()
    async def update_profile(self, user_id: UUID, name: str, picture: Optional[str] = None) -> AccountResult:
        if not name or not name.strip():
            return validation("Name cannot be empty")
        user = await self._users.get_by_id(user_id)
        if user is None:
            return not_found()

        def update(u: User) -> Optional[AuthFailure]:
            u.update_profile(name, picture, self._clock)
            return None

        outcome = await self._persist_with_retry(user, update)
        return outcome if isinstance(outcome, AuthFailure) else _completed(outcome)

    @use_case()
    async def verify_email(self, user_id: UUID) -> AccountResult:
        user = await self._users.get_by_id(user_id)
        if user is None:
            return not_found()

        def verify(u: User) -> Optional[AuthFailure]:
            if u.is_email_verified:
                return validation("Email is already verified")
            u.verify_email(self._clock)
            return None

        outcome = await self._persist_with_retry(user, verify)
        return outcome if isinstance(outcome, AuthFailure) else _completed(outcome)

    @use_case()
    async def change_password(self, user_id: UUID, current_password: str, new_password: str) -> AccountResult:
        """Replaces the password after verifying the current one.

        Google-only accounts have no password to change and get Validation.
        """
        user = await self._users.get_by_id(user_id)
        if user is None:
            return not_found()
        if not user.has_password:
            return validation(USE_GOOGLE_LOGIN)
        try:
            Password(new_password)
        except ValueError as e:
            return validation(str(e))
        if current_password == new_password:
            return validation("New password must differ from the current password")
        if user.is_locked_out(self._clock.now()):
            return unauthorized()

        if not await self._password_hasher.verify(current_password or "", user.password_hash):
            logger.warning("password_change_rejected", user_id=str(user.id))
            return unauthorized()

        new_hash = await self._password_hasher.hash(new_password)

        def change(u: User) -> Optional[AuthFailure]:
            u.change_password(new_hash, self._clock)
            return None

        outcome = await self._persist_with_retry(user, change)
        if isinstance(outcome, AuthFailure):
            return outcome
        logger.info("password_changed", user_id=str(outcome.id))
        return _completed(outcome)

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    @use_case()
    async def assign_role(self, user_id: UUID, role: str) -> AccountResult:
        try:
            parsed = Role(role)
        except ValueError:
            return validation(f"Unknown role: {role}")
        user = await self._users.get_by_id(user_id)
        if user is None:
            return not_found()

        def assign(u: User) -> Optional[AuthFailure]:
            u.assign_role(parsed, self._clock)
            return None

        outcome = await self._persist_with_retry(user, assign)
        return outcome if isinstance(outcome, AuthFailure) else _completed(outcome)

    @use_case()
    async def remove_role(self, user_id: UUID, role: str) -> AccountResult:
        try:
            parsed = Role(role)
        except ValueError:
            return validation(f"Unknown role: {role}")
        if parsed is DEFAULT_ROLE:
            return validation("The default role cannot be removed")
        user = await self._users.get_by_id(user_id)
        if user is None:
            return not_found()

        def remove(u: User) -> Optional[AuthFailure]:
            u.remove_role(parsed, self._clock)
            return None

        outcome = await self._persist_with_retry(user, remove)
        return outcome if isinstance(outcome, AuthFailure) else _completed(outcome)
