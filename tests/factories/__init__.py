from __future__ import annotations

"""Re-export factory functions for generating fake test data."""

# flake8: noqa: F401 – re-export

from .google import GoogleTokenSigner, create_fake_google_claims
from .user import create_fake_google_user, create_fake_local_user, fake_strong_password

__all__ = [
    "GoogleTokenSigner",
    "create_fake_google_claims",
    "create_fake_google_user",
    "create_fake_local_user",
    "fake_strong_password",
]
