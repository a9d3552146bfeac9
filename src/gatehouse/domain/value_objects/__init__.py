"""Domain value objects."""

from .email import Email
from .google_identity import GoogleIdentity
from .password import Password
from .request_context import AuthenticationProvider, RequestContext
from .tokens import TokenClaims, TokenId, TokenPair, TokenUse

__all__ = [
    "AuthenticationProvider",
    "Email",
    "GoogleIdentity",
    "Password",
    "RequestContext",
    "TokenClaims",
    "TokenId",
    "TokenPair",
    "TokenUse",
]
