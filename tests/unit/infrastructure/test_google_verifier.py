"""Unit tests for Google ID-token verification."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.exceptions import PyJWKClientConnectionError

from gatehouse.core.exceptions import IdentityVerificationError
from gatehouse.infrastructure.services.google_identity import (
    DisabledGoogleIdentityVerifier,
    GoogleIdTokenVerifier,
)
from tests.factories.google import TEST_GOOGLE_CLIENT_ID, create_fake_google_claims


@pytest.mark.unit
class TestGoogleIdTokenVerifier:
    @pytest.mark.asyncio
    async def test_valid_token(self, google_verifier, google_signer):
        # Arrange
        claims = create_fake_google_claims(email="Gina@Corp.example", sub="1234", hd="corp.example")

        # Act
        identity = await google_verifier.verify(google_signer.sign(claims))

        # Assert
        assert identity.subject == "1234"
        assert identity.email.value == "gina@corp.example"
        assert identity.hosted_domain == "corp.example"
        assert identity.email_verified
        assert identity.is_workspace_account

    @pytest.mark.asyncio
    async def test_short_issuer_form_is_accepted(self, google_verifier, google_signer):
        claims = create_fake_google_claims(issuer="accounts.google.com")
        assert (await google_verifier.verify(google_signer.sign(claims))).subject == claims["sub"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [
            {"audience": "another-client"},
            {"issuer": "https://evil.example.com"},
            {"expires_in": timedelta(minutes=-5)},
        ],
    )
    async def test_rejected_claims(self, google_verifier, google_signer, overrides):
        token = google_signer.sign(create_fake_google_claims(**overrides))
        with pytest.raises(IdentityVerificationError):
            await google_verifier.verify(token)

    @pytest.mark.asyncio
    async def test_wrong_signing_key(self, google_verifier, google_signer):
        other_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        token = google_signer.sign(create_fake_google_claims(), private_key=other_key)

        with pytest.raises(IdentityVerificationError):
            await google_verifier.verify(token)

    @pytest.mark.asyncio
    async def test_missing_email_is_rejected(self, google_verifier, google_signer):
        claims = create_fake_google_claims()
        del claims["email"]

        with pytest.raises(IdentityVerificationError, match="claims are invalid"):
            await google_verifier.verify(google_signer.sign(claims))

    @pytest.mark.asyncio
    async def test_empty_token(self, google_verifier):
        with pytest.raises(IdentityVerificationError):
            await google_verifier.verify("")

    @pytest.mark.asyncio
    async def test_key_fetch_is_retried(self, google_signer):
        jwks_client = MagicMock()
        jwks_client.get_signing_key_from_jwt.side_effect = [
            PyJWKClientConnectionError("down"),
            MagicMock(key=google_signer.public_key),
        ]
        verifier = GoogleIdTokenVerifier(TEST_GOOGLE_CLIENT_ID, jwks_client=jwks_client)

        identity = await verifier.verify(google_signer.sign(create_fake_google_claims(sub="42")))

        assert identity.subject == "42"
        assert jwks_client.get_signing_key_from_jwt.call_count == 2

    @pytest.mark.asyncio
    async def test_persistent_network_failure_propagates(self, google_signer):
        jwks_client = MagicMock()
        jwks_client.get_signing_key_from_jwt.side_effect = PyJWKClientConnectionError("down")
        verifier = GoogleIdTokenVerifier(TEST_GOOGLE_CLIENT_ID, jwks_client=jwks_client)

        with pytest.raises(PyJWKClientConnectionError):
            await verifier.verify(google_signer.sign(create_fake_google_claims()))
        assert jwks_client.get_signing_key_from_jwt.call_count == 3

    def test_requires_client_id(self):
        with pytest.raises(ValueError):
            GoogleIdTokenVerifier("")


@pytest.mark.unit
class TestDisabledGoogleIdentityVerifier:
    @pytest.mark.asyncio
    async def test_rejects_everything(self):
        with pytest.raises(IdentityVerificationError) as exc_info:
            await DisabledGoogleIdentityVerifier().verify("token")
        assert exc_info.value.code == "google_sign_in_disabled"
