"""Token value objects for domain modeling.

These value objects give the authentication workflows typed views of the
session credentials they hand out, independent of the signing library.
"""

import base64
import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar, FrozenSet, Optional
from uuid import UUID


class TokenUse(str, Enum):
    """Scope a signed token was minted for.

    An ``mfa_pending`` token only proves that primary credentials were
    correct; it must never be accepted where an ``access`` token is expected.
    """

    ACCESS = "access"
    MFA_PENDING = "mfa_pending"


@dataclass(frozen=True)
class TokenId:
    """Value object for a JWT token identifier (``jti`` claim).

    256 bits of entropy, encoded as 43 URL-safe base64 characters.
    """

    value: str

    TOKEN_ID_LENGTH: ClassVar[int] = 43
    VALID_CHARS: ClassVar[str] = string.ascii_letters + string.digits + "-_"

    def __post_init__(self):
        if not self.value:
            raise ValueError("Token ID cannot be empty")
        if len(self.value) != self.TOKEN_ID_LENGTH:
            raise ValueError(f"Token ID must be exactly {self.TOKEN_ID_LENGTH} characters (256 bits, base64url)")
        if not all(c in self.VALID_CHARS for c in self.value):
            raise ValueError("Token ID contains invalid characters")

    @classmethod
    def generate(cls) -> "TokenId":
        """Generate a new cryptographically secure token ID."""
        raw_bytes = secrets.token_bytes(32)
        return cls(base64.urlsafe_b64encode(raw_bytes).rstrip(b"=").decode("ascii"))

    def mask_for_logging(self) -> str:
        return self.value[:4] + "*" * (len(self.value) - 4)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims extracted from a signed token.

    Attributes:
        user_id: Subject of the token.
        token_id: The ``jti`` claim, used as the revocation key.
        token_use: Scope the token was minted for.
        expires_at: Expiry instant (UTC).
        issued_at: Issue instant (UTC).
        roles: Roles embedded at issue time (access tokens only).
        email: Email embedded at issue time (access tokens only).
    """

    user_id: UUID
    token_id: str
    token_use: TokenUse
    expires_at: datetime
    issued_at: datetime
    roles: FrozenSet[str] = field(default_factory=frozenset)
    email: Optional[str] = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


@dataclass(frozen=True)
class TokenPair:
    """Access/refresh token pair handed to a client after authentication.

    Attributes:
        access_token: Short-lived signed token.
        refresh_token: Opaque long-lived credential.
        access_expires_in: Access token lifetime in seconds.
        refresh_expires_in: Refresh token lifetime in seconds.
        token_type: Always ``bearer``.
    """

    access_token: str = field(repr=False)
    refresh_token: str = field(repr=False)
    access_expires_in: int
    refresh_expires_in: int
    token_type: str = "bearer"
