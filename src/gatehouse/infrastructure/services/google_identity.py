"""Google ID-token verification.

ID tokens are verified locally: the signing key is fetched from Google's JWKS
endpoint (cached by ``PyJWKClient``), then signature, expiry, audience and
issuer are checked. Key-set fetches are retried on connection errors; a
persistent network failure propagates unchanged to the caller.
"""

import asyncio
from typing import Any, Optional

import jwt
import structlog
from jwt import PyJWKClient
from jwt.exceptions import PyJWKClientConnectionError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from gatehouse.core.config.auth import GOOGLE_CERTS_URL
from gatehouse.core.exceptions import IdentityVerificationError
from gatehouse.domain.interfaces.services import IGoogleIdentityVerifier
from gatehouse.domain.value_objects.google_identity import GoogleIdentity

logger = structlog.get_logger(__name__)

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")
ID_TOKEN_ALGORITHMS = ["RS256"]


class GoogleIdTokenVerifier(IGoogleIdentityVerifier):
    """Verifies Google ID tokens issued for ``client_id``.

    Args:
        client_id: OAuth client id the tokens must be issued for (``aud``).
        jwks_url: Google key-set endpoint.
        jwks_client: Pre-built key client, mainly for tests.
    """

    def __init__(self, client_id: str, jwks_url: str = GOOGLE_CERTS_URL, jwks_client: Optional[PyJWKClient] = None):
        if not client_id:
            raise ValueError("GOOGLE_CLIENT_ID must be configured for Google sign-in")
        self.client_id = client_id
        self.jwks_client = jwks_client or PyJWKClient(jwks_url, cache_keys=True)

    async def verify(self, id_token: str) -> GoogleIdentity:
        if not id_token:
            raise IdentityVerificationError("Google ID token is required")

        try:
            signing_key = await asyncio.to_thread(self._get_signing_key, id_token)
            claims = jwt.decode(
                id_token,
                signing_key,
                algorithms=ID_TOKEN_ALGORITHMS,
                audience=self.client_id,
                options={"require": ["iss", "aud", "sub", "exp", "iat"]},
            )
        except PyJWKClientConnectionError:
            logger.error("google_jwks_unreachable")
            raise
        except jwt.PyJWTError as e:
            logger.warning("google_id_token_rejected", error=str(e))
            raise IdentityVerificationError() from e

        if claims.get("iss") not in GOOGLE_ISSUERS:
            logger.warning("google_id_token_issuer_invalid", issuer=claims.get("iss"))
            raise IdentityVerificationError("Google ID token has an invalid issuer")

        try:
            identity = GoogleIdentity.from_claims(claims)
        except ValueError as e:
            raise IdentityVerificationError(f"Google ID token claims are invalid: {e}") from e

        logger.debug("google_id_token_verified", email=identity.email.mask_for_logging())
        return identity

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_fixed(0.2),
        retry=retry_if_exception_type(PyJWKClientConnectionError),
        reraise=True,
    )
    def _get_signing_key(self, id_token: str) -> Any:
        return self.jwks_client.get_signing_key_from_jwt(id_token).key


class DisabledGoogleIdentityVerifier(IGoogleIdentityVerifier):
    """Stands in when GOOGLE_CLIENT_ID is not configured; rejects every token."""

    async def verify(self, id_token: str) -> GoogleIdentity:
        raise IdentityVerificationError("Google sign-in is not configured", "google_sign_in_disabled")
