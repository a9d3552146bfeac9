"""Authentication workflow.

Orchestrates local login, Google login and account linking, MFA
verification, token refresh and logout by composing the ``User`` aggregate
with the password hasher, MFA service, token service and Google verifier.

Every branch that decides an outcome persists the aggregate's new events
before returning, so lockout state is durable even when the login fails.
Password and TOTP checks run before the persistence loop; no lock or
transaction spans an external call.
"""

from typing import Optional
from uuid import UUID

import structlog

from gatehouse.core.exceptions import DuplicateUserError, IdentityVerificationError, InvalidTokenError
from gatehouse.core.pipeline import UseCasePipeline, use_case
from gatehouse.domain.entities.user import User
from gatehouse.domain.interfaces.clock import IClock
from gatehouse.domain.interfaces.repositories import IUserRepository
from gatehouse.domain.interfaces.services import (
    IGoogleIdentityVerifier,
    IMfaService,
    IPasswordHasher,
    ITokenService,
)
from gatehouse.domain.services.authentication.base import DEFAULT_MAX_CONCURRENCY_RETRIES, WorkflowService
from gatehouse.domain.services.authentication.results import (
    INVALID_TOKEN,
    MFA_NOT_ENABLED,
    REGISTERED_WITH_DIFFERENT_METHOD,
    USE_GOOGLE_LOGIN,
    AccountResult,
    AuthFailure,
    AuthResult,
    AuthSuccess,
    Completed,
    MfaRequired,
    UserSummary,
    conflict,
    not_found,
    unauthorized,
    validation,
)
from gatehouse.domain.services.lockout_policy import DEFAULT_LOCKOUT_POLICY, LockoutPolicy
from gatehouse.domain.value_objects.email import Email
from gatehouse.domain.value_objects.request_context import (
    EMPTY_REQUEST_CONTEXT,
    AuthenticationProvider,
    RequestContext,
)

logger = structlog.get_logger(__name__)

# Failure reasons recorded on LoginFailed events
INVALID_PASSWORD_REASON = "invalid_password"
INVALID_MFA_CODE_REASON = "invalid_mfa_code"


class AuthenticationService(WorkflowService):
    """Application service for the authentication use cases.

    Args:
        users: User event store.
        password_hasher: Verifies local passwords.
        mfa_service: Validates TOTP codes.
        token_service: Mints, validates, rotates and revokes tokens.
        google_verifier: Verifies Google ID tokens.
        clock: Injected time source.
        lockout_policy: Failed-login threshold and lockout duration.
        pipeline: Middleware composition applied to every use case.
        max_concurrency_retries: Attempts at appending to a contended stream.
    """

    def __init__(
        self,
        users: IUserRepository,
        password_hasher: IPasswordHasher,
        mfa_service: IMfaService,
        token_service: ITokenService,
        google_verifier: IGoogleIdentityVerifier,
        clock: IClock,
        lockout_policy: LockoutPolicy = DEFAULT_LOCKOUT_POLICY,
        pipeline: Optional[UseCasePipeline] = None,
        max_concurrency_retries: int = DEFAULT_MAX_CONCURRENCY_RETRIES,
    ):
        super().__init__(users, clock, pipeline, max_concurrency_retries)
        self._password_hasher = password_hasher
        self._mfa_service = mfa_service
        self._token_service = token_service
        self._google_verifier = google_verifier
        self._lockout_policy = lockout_policy

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    @use_case()
    async def local_login(
        self,
        email: str,
        password: str,
        context: RequestContext = EMPTY_REQUEST_CONTEXT,
    ) -> AuthResult:
        """Authenticates with email and password.

        ``context`` carries the client address and user agent recorded on the
        resulting login event.

        Returns:
            ``AuthSuccess`` with tokens, ``MfaRequired`` when MFA is enabled,
            or ``AuthFailure``: NotFound for an unknown email, Validation for a
            Google-only account, Unauthorized for a bad password or lockout.
        """
        try:
            normalized = Email(email)
        except ValueError as e:
            return validation(str(e))
        if not password:
            return validation("Password is required")

        user = await self._users.get_by_email(normalized)
        if user is None:
            logger.warning("login_unknown_email", email=normalized.mask_for_logging())
            return not_found()
        if user.is_locked_out(self._clock.now()):
            logger.warning("login_rejected_locked_out", user_id=str(user.id))
            return unauthorized()
        if not user.has_password:
            return validation(USE_GOOGLE_LOGIN)

        is_valid = await self._password_hasher.verify(password, user.password_hash)
        outcome = await self._record_login_attempt(
            user, is_valid, AuthenticationProvider.LOCAL, context, INVALID_PASSWORD_REASON
        )
        if isinstance(outcome, AuthFailure):
            return outcome
        if not is_valid:
            logger.warning(
                "login_failed_bad_password",
                user_id=str(outcome.id),
                failed_attempts=outcome.failed_login_attempts,
            )
            return unauthorized()
        return await self._complete_primary_authentication(outcome)

    @use_case()
    async def google_login(self, id_token: str, context: RequestContext = EMPTY_REQUEST_CONTEXT) -> AuthResult:
        """Authenticates with a Google ID token, creating the account on first use.

        An existing account whose stored Google subject differs from the
        presented one (including password accounts that were never linked) is
        refused with Validation and left untouched.
        """
        try:
            identity = await self._google_verifier.verify(id_token)
        except IdentityVerificationError as e:
            return unauthorized(e.message)
        if not identity.email_verified:
            return validation("Google email address is not verified")

        user = await self._users.get_by_email(identity.email)
        if user is None:
            user = User.create_from_google(
                email=identity.email.value,
                google_id=identity.subject,
                name=identity.name,
                picture=identity.picture,
                domain=identity.hosted_domain,
                clock=self._clock,
            )
            user.record_login_attempt(
                True, self._clock, self._lockout_policy, provider=AuthenticationProvider.GOOGLE, context=context
            )
            try:
                await self._users.add(user)
            except DuplicateUserError as e:
                logger.warning("google_signup_conflict", email=identity.email.mask_for_logging())
                return conflict(e.message)
            return await self._complete_primary_authentication(user)

        if user.google_id != identity.subject:
            logger.warning(
                "google_login_subject_mismatch",
                user_id=str(user.id),
                email=identity.email.mask_for_logging(),
            )
            return validation(REGISTERED_WITH_DIFFERENT_METHOD)
        if user.is_locked_out(self._clock.now()):
            return unauthorized()

        outcome = await self._record_login_attempt(user, True, AuthenticationProvider.GOOGLE, context)
        if isinstance(outcome, AuthFailure):
            return outcome
        return await self._complete_primary_authentication(outcome)

    # ------------------------------------------------------------------
    # MFA
    # ------------------------------------------------------------------

    @use_case()
    async def verify_mfa(
        self,
        user_id: UUID,
        code: str,
        context: RequestContext = EMPTY_REQUEST_CONTEXT,
    ) -> AuthResult:
        """Completes a login with a TOTP code.

        Invalid codes count toward the lockout threshold like bad passwords.
        """
        return await self._verify_mfa(user_id, code, context)

    @use_case()
    async def verify_mfa_with_token(
        self,
        mfa_pending_token: str,
        code: str,
        context: RequestContext = EMPTY_REQUEST_CONTEXT,
    ) -> AuthResult:
        """Completes a login using the MFA-pending token handed out at login.

        The pending token is revoked once it has produced a session.
        """
        try:
            claims = await self._token_service.validate_mfa_pending_token(mfa_pending_token)
        except InvalidTokenError as e:
            return unauthorized(e.message)

        result = await self._verify_mfa(claims.user_id, code, context)
        if isinstance(result, AuthSuccess):
            await self._token_service.revoke_token(mfa_pending_token)
        return result

    async def _verify_mfa(self, user_id: UUID, code: str, context: RequestContext) -> AuthResult:
        user = await self._users.get_by_id(user_id)
        if user is None:
            return not_found()
        if not user.is_mfa_enabled:
            return validation(MFA_NOT_ENABLED)
        if user.is_locked_out(self._clock.now()):
            return unauthorized()

        is_valid = await self._mfa_service.validate_code(user.mfa_secret, code)
        outcome = await self._record_login_attempt(
            user, is_valid, AuthenticationProvider.MFA, context, INVALID_MFA_CODE_REASON
        )
        if isinstance(outcome, AuthFailure):
            return outcome
        if not is_valid:
            logger.warning("mfa_code_rejected", user_id=str(outcome.id), failed_attempts=outcome.failed_login_attempts)
            return unauthorized()
        return await self._issue_session(outcome)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    @use_case()
    async def refresh_tokens(self, access_token: str, refresh_token: str) -> AuthResult:
        """Exchanges an access token (possibly expired) and a refresh token for a new pair.

        The access token's signature must verify; its expiry is ignored. The
        refresh token is single use: it is consumed whether or not the
        exchange succeeds, and the old access token id is revoked.
        """
        try:
            claims = await self._token_service.get_claims_from_expired_token(access_token)
        except InvalidTokenError as e:
            logger.warning("refresh_rejected_access_token", error=e.message)
            return unauthorized(INVALID_TOKEN)

        owner = await self._token_service.consume_refresh_token(refresh_token)
        if owner is None or owner != claims.user_id:
            logger.warning("refresh_rejected_refresh_token", user_id=str(claims.user_id), replay=owner is None)
            return unauthorized(INVALID_TOKEN)

        user = await self._users.get_by_id(claims.user_id)
        if user is None:
            return not_found()
        if user.is_locked_out(self._clock.now()):
            return unauthorized()

        await self._token_service.revoke_token(access_token)
        return await self._issue_session(user)

    @use_case()
    async def logout(
        self,
        access_token: str,
        refresh_token: Optional[str] = None,
        context: RequestContext = EMPTY_REQUEST_CONTEXT,
    ) -> AccountResult:
        """Revokes the access token until it expires and drops the refresh token.

        The logout is appended to the user's stream. Tokens of a user that no
        longer exists are still revoked.
        """
        try:
            claims = await self._token_service.get_claims_from_expired_token(access_token)
        except InvalidTokenError as e:
            return unauthorized(e.message)

        await self._token_service.revoke_token(access_token)
        if refresh_token:
            await self._token_service.revoke_refresh_token(refresh_token)

        user = await self._users.get_by_id(claims.user_id)
        if user is None:
            logger.warning("logout_unknown_user", user_id=str(claims.user_id))
            return Completed(user_id=claims.user_id)

        def record(u: User) -> Optional[AuthFailure]:
            u.record_logout(self._clock, context)
            return None

        await self._persist_with_retry(user, record)
        logger.info("user_logged_out", user_id=str(claims.user_id))
        return Completed(user_id=claims.user_id)

    # ------------------------------------------------------------------
    # Account linking
    # ------------------------------------------------------------------

    @use_case()
    async def link_google_account(self, user_id: UUID, id_token: str) -> AccountResult:
        """Explicitly links a Google identity to an existing account.

        This is the only path by which a password account gains a Google
        subject. The verified Google email must equal the account email.
        """
        user = await self._users.get_by_id(user_id)
        if user is None:
            return not_found()

        try:
            identity = await self._google_verifier.verify(id_token)
        except IdentityVerificationError as e:
            return unauthorized(e.message)
        if not identity.email_verified:
            return validation("Google email address is not verified")
        if identity.email != user.email:
            return validation("Google account email does not match the account email")

        owner = await self._users.get_by_google_id(identity.subject)
        if owner is not None and owner.id != user.id:
            return conflict("Google account is already linked to another user")

        def link(u: User) -> Optional[AuthFailure]:
            if u.google_id is not None:
                return validation("Account is already linked to a Google identity")
            u.link_google_account(identity.subject, identity.hosted_domain, self._clock)
            return None

        try:
            outcome = await self._persist_with_retry(user, link)
        except DuplicateUserError as e:
            return conflict(e.message)
        if isinstance(outcome, AuthFailure):
            return outcome
        logger.info("google_account_linked", user_id=str(outcome.id))
        return Completed(user_id=outcome.id, user=UserSummary.from_user(outcome))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _record_login_attempt(
        self,
        user: User,
        successful: bool,
        provider: AuthenticationProvider,
        context: RequestContext,
        reason: Optional[str] = None,
    ):
        """Persists the attempt, re-checking lockout against the latest stream.

        Returns:
            The committed user, or an Unauthorized failure when the account
            was locked by a concurrent request in the meantime.
        """

        def record(u: User) -> Optional[AuthFailure]:
            if u.is_locked_out(self._clock.now()):
                return unauthorized()
            u.record_login_attempt(
                successful,
                self._clock,
                self._lockout_policy,
                provider=provider,
                context=context,
                reason=None if successful else reason,
            )
            return None

        return await self._persist_with_retry(user, record)

    async def _complete_primary_authentication(self, user: User) -> AuthResult:
        if user.is_mfa_enabled:
            pending_token = await self._token_service.create_mfa_pending_token(user.id)
            logger.info("login_requires_mfa", user_id=str(user.id))
            return MfaRequired(user_id=user.id, mfa_pending_token=pending_token)
        return await self._issue_session(user)

    async def _issue_session(self, user: User) -> AuthSuccess:
        tokens = await self._token_service.create_token_pair(user)
        logger.info("login_succeeded", user_id=str(user.id))
        return AuthSuccess(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            user=UserSummary.from_user(user),
            expires_in=tokens.access_expires_in,
        )
