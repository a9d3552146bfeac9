"""Service interfaces consumed by the authentication workflows.

These ports cover the capabilities the domain relies on but does not
implement itself: password hashing, TOTP, token issuance and validation,
Google ID-token verification, server-side token bookkeeping and domain event
publishing.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID

from gatehouse.domain.entities.user import User
from gatehouse.domain.events.user_events import BaseUserEvent
from gatehouse.domain.value_objects.google_identity import GoogleIdentity
from gatehouse.domain.value_objects.tokens import TokenClaims, TokenPair


class IPasswordHasher(ABC):
    """Interface for one-way password hashing."""

    @abstractmethod
    async def hash(self, plain_password: str) -> str:
        raise NotImplementedError

    @abstractmethod
    async def verify(self, plain_password: str, password_hash: str) -> bool:
        """Returns True if the password matches the hash.

        A malformed hash verifies as False rather than raising.
        """
        raise NotImplementedError


class IMfaService(ABC):
    """Interface for time-based one-time password (TOTP) operations."""

    @abstractmethod
    def generate_secret(self) -> str:
        """Returns a fresh base32 secret with at least 160 bits of entropy."""
        raise NotImplementedError

    @abstractmethod
    async def validate_code(self, secret: str, code: str) -> bool:
        """Validates a 6-digit code against the current and adjacent time steps.

        Non-numeric or wrong-length codes are rejected without running the
        cryptographic check.
        """
        raise NotImplementedError

    @abstractmethod
    def get_enrollment_uri(self, email: str, secret: str, issuer: Optional[str] = None) -> str:
        """Returns an ``otpauth://`` provisioning URI for authenticator apps."""
        raise NotImplementedError


class ITokenService(ABC):
    """Interface for session token lifecycle management.

    Access and MFA-pending tokens are signed and self-describing. Refresh
    tokens are opaque; the service records them server-side so they can be
    rotated and revoked.
    """

    @abstractmethod
    async def create_access_token(self, user: User) -> str:
        """Signs a short-lived access token carrying the user id, email and roles."""
        raise NotImplementedError

    @abstractmethod
    async def create_refresh_token(self, user_id: UUID) -> str:
        """Issues and records an opaque long-lived refresh token."""
        raise NotImplementedError

    @abstractmethod
    async def create_token_pair(self, user: User) -> TokenPair:
        raise NotImplementedError

    @abstractmethod
    async def create_mfa_pending_token(self, user_id: UUID) -> str:
        """Signs a very short-lived token usable only to complete MFA verification."""
        raise NotImplementedError

    @abstractmethod
    async def validate_access_token(self, token: str) -> TokenClaims:
        """Verifies signature, expiry, revocation and scope of an access token.

        Raises:
            InvalidTokenError: If the token is malformed, tampered or not an access token.
            ExpiredTokenError: If the token has expired.
            RevokedTokenError: If the token was revoked.
        """
        raise NotImplementedError

    @abstractmethod
    async def validate_mfa_pending_token(self, token: str) -> TokenClaims:
        """Verifies an MFA-pending token; access tokens are rejected here."""
        raise NotImplementedError

    @abstractmethod
    async def get_claims_from_expired_token(self, token: str) -> TokenClaims:
        """Verifies the signature of an access token while tolerating expiry.

        Raises:
            InvalidTokenError: If the signature or scope is wrong.
        """
        raise NotImplementedError

    @abstractmethod
    async def consume_refresh_token(self, refresh_token: str) -> Optional[UUID]:
        """Atomically invalidates a refresh token and returns its owner.

        Returns:
            The owning user id, or None if the token is unknown, expired or
            already used.
        """
        raise NotImplementedError

    @abstractmethod
    async def revoke_token(self, token: str) -> None:
        """Revokes a signed token until its natural expiry."""
        raise NotImplementedError

    @abstractmethod
    async def revoke_refresh_token(self, refresh_token: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def is_revoked(self, token: str) -> bool:
        raise NotImplementedError


class IGoogleIdentityVerifier(ABC):
    """Interface for verifying Google ID tokens."""

    @abstractmethod
    async def verify(self, id_token: str) -> GoogleIdentity:
        """Validates signature, issuer, audience and expiry of an ID token.

        Raises:
            IdentityVerificationError: If the token is rejected.
        """
        raise NotImplementedError


class IRefreshTokenStore(ABC):
    """Server-side record of issued refresh tokens, keyed by token hash."""

    @abstractmethod
    async def save(self, token_hash: str, user_id: UUID, expires_at: datetime) -> None:
        raise NotImplementedError

    @abstractmethod
    async def consume(self, token_hash: str) -> Optional[UUID]:
        """Deletes the record and returns its owner, or None if absent or expired."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, token_hash: str) -> None:
        raise NotImplementedError


class ITokenRevocationStore(ABC):
    """Blacklist of revoked token ids, each kept until the token's expiry."""

    @abstractmethod
    async def revoke(self, token_id: str, expires_at: datetime) -> None:
        raise NotImplementedError

    @abstractmethod
    async def is_revoked(self, token_id: str) -> bool:
        raise NotImplementedError


class IEventPublisher(ABC):
    """Interface for publishing persisted domain events to listeners."""

    @abstractmethod
    async def publish(self, event: BaseUserEvent) -> None:
        raise NotImplementedError

    @abstractmethod
    async def publish_many(self, events: Sequence[BaseUserEvent]) -> None:
        raise NotImplementedError
