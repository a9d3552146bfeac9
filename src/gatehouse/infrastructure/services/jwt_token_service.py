"""Token service backed by PyJWT.

Access and MFA-pending tokens are signed JWTs with ``sub``, ``jti``, ``iat``,
``exp``, ``iss``, ``aud`` and a ``token_use`` claim that scopes them. Refresh
tokens are opaque random strings recorded server-side by SHA-256 hash.

Expiry is evaluated against the injected clock rather than by PyJWT, which
lets the refresh flow verify the signature of an expired access token with
the same decoding path.
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

import jwt
import structlog

from gatehouse.core.config.settings import Settings
from gatehouse.core.exceptions import ExpiredTokenError, InvalidTokenError, RevokedTokenError
from gatehouse.domain.entities.user import User
from gatehouse.domain.interfaces.clock import IClock
from gatehouse.domain.interfaces.services import IRefreshTokenStore, ITokenRevocationStore, ITokenService
from gatehouse.domain.value_objects.tokens import TokenClaims, TokenId, TokenPair, TokenUse

logger = structlog.get_logger(__name__)

REQUIRED_CLAIMS = ["sub", "jti", "iat", "exp", "token_use"]
REFRESH_TOKEN_BYTES = 48

_WRONG_USE_MESSAGES = {
    TokenUse.ACCESS: "Token is not an access token",
    TokenUse.MFA_PENDING: "Token is not an MFA-pending token",
}


def hash_refresh_token(refresh_token: str) -> str:
    return hashlib.sha256(refresh_token.encode("utf-8")).hexdigest()


class JwtTokenService(ITokenService):
    """Issues, validates, rotates and revokes session tokens.

    Args:
        settings: Token lifetimes, signing keys, issuer and audience.
        clock: Source of ``iat``/``exp`` and of the expiry check.
        refresh_store: Server-side refresh-token records.
        revocation_store: Blacklist of revoked token ids.
    """

    def __init__(
        self,
        settings: Settings,
        clock: IClock,
        refresh_store: IRefreshTokenStore,
        revocation_store: ITokenRevocationStore,
    ):
        self.settings = settings
        self.clock = clock
        self.refresh_store = refresh_store
        self.revocation_store = revocation_store

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    async def create_access_token(self, user: User) -> str:
        token_id = TokenId.generate()
        now = self.clock.now()
        payload = {
            "sub": str(user.id),
            "email": user.email.value if user.email else None,
            "roles": list(user.role_names),
            "token_use": TokenUse.ACCESS.value,
            "iss": self.settings.JWT_ISSUER,
            "aud": self.settings.JWT_AUDIENCE,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES)).timestamp()),
            "jti": str(token_id),
        }
        token = self._encode(payload)
        logger.debug("access_token_created", user_id=str(user.id), jti=token_id.mask_for_logging())
        return token

    async def create_refresh_token(self, user_id: UUID) -> str:
        refresh_token = secrets.token_urlsafe(REFRESH_TOKEN_BYTES)
        expires_at = self.clock.now() + timedelta(days=self.settings.REFRESH_TOKEN_EXPIRE_DAYS)
        await self.refresh_store.save(hash_refresh_token(refresh_token), user_id, expires_at)
        logger.debug("refresh_token_created", user_id=str(user_id))
        return refresh_token

    async def create_token_pair(self, user: User) -> TokenPair:
        access_token = await self.create_access_token(user)
        refresh_token = await self.create_refresh_token(user.id)
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            access_expires_in=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            refresh_expires_in=self.settings.REFRESH_TOKEN_EXPIRE_DAYS * 86400,
        )

    async def create_mfa_pending_token(self, user_id: UUID) -> str:
        token_id = TokenId.generate()
        now = self.clock.now()
        payload = {
            "sub": str(user_id),
            "token_use": TokenUse.MFA_PENDING.value,
            "iss": self.settings.JWT_ISSUER,
            "aud": self.settings.JWT_AUDIENCE,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=self.settings.MFA_TOKEN_EXPIRE_MINUTES)).timestamp()),
            "jti": str(token_id),
        }
        return self._encode(payload)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    async def validate_access_token(self, token: str) -> TokenClaims:
        claims = self._decode(token, TokenUse.ACCESS)
        if claims.is_expired(self.clock.now()):
            raise ExpiredTokenError()
        await self._ensure_not_revoked(claims)
        return claims

    async def validate_mfa_pending_token(self, token: str) -> TokenClaims:
        claims = self._decode(token, TokenUse.MFA_PENDING)
        if claims.is_expired(self.clock.now()):
            raise ExpiredTokenError()
        await self._ensure_not_revoked(claims)
        return claims

    async def get_claims_from_expired_token(self, token: str) -> TokenClaims:
        claims = self._decode(token, TokenUse.ACCESS)
        await self._ensure_not_revoked(claims)
        return claims

    # ------------------------------------------------------------------
    # Rotation and revocation
    # ------------------------------------------------------------------

    async def consume_refresh_token(self, refresh_token: str) -> Optional[UUID]:
        if not refresh_token:
            return None
        return await self.refresh_store.consume(hash_refresh_token(refresh_token))

    async def revoke_token(self, token: str) -> None:
        claims = self._decode(token, expected_use=None)
        if claims.is_expired(self.clock.now()):
            return
        await self.revocation_store.revoke(claims.token_id, claims.expires_at)
        logger.info("token_revoked", user_id=str(claims.user_id), token_use=claims.token_use.value)

    async def revoke_refresh_token(self, refresh_token: str) -> None:
        if not refresh_token:
            return
        await self.refresh_store.delete(hash_refresh_token(refresh_token))

    async def is_revoked(self, token: str) -> bool:
        claims = self._decode(token, expected_use=None)
        return await self.revocation_store.is_revoked(claims.token_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _encode(self, payload: Dict[str, Any]) -> str:
        return jwt.encode(payload, self.settings.jwt_signing_key, algorithm=self.settings.JWT_ALGORITHM)

    def _decode(self, token: str, expected_use: Optional[TokenUse]) -> TokenClaims:
        """Verifies signature, issuer and audience; expiry is left to the caller."""
        if not token:
            raise InvalidTokenError("Token cannot be empty")
        try:
            payload = jwt.decode(
                token,
                self.settings.jwt_verification_key,
                algorithms=[self.settings.JWT_ALGORITHM],
                issuer=self.settings.JWT_ISSUER,
                audience=self.settings.JWT_AUDIENCE,
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": REQUIRED_CLAIMS,
                },
            )
        except jwt.PyJWTError as e:
            logger.warning("jwt_decode_failed", error=str(e))
            raise InvalidTokenError() from e

        claims = self._to_claims(payload)
        if expected_use is not None and claims.token_use is not expected_use:
            logger.warning("token_use_mismatch", expected=expected_use.value, actual=claims.token_use.value)
            raise InvalidTokenError(_WRONG_USE_MESSAGES[expected_use])
        return claims

    @staticmethod
    def _to_claims(payload: Dict[str, Any]) -> TokenClaims:
        try:
            return TokenClaims(
                user_id=UUID(str(payload["sub"])),
                token_id=str(payload["jti"]),
                token_use=TokenUse(payload["token_use"]),
                expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
                issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
                roles=frozenset(payload.get("roles") or ()),
                email=payload.get("email"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidTokenError("Token claims are malformed") from e

    async def _ensure_not_revoked(self, claims: TokenClaims) -> None:
        if await self.revocation_store.is_revoked(claims.token_id):
            logger.warning("revoked_token_presented", user_id=str(claims.user_id))
            raise RevokedTokenError()
