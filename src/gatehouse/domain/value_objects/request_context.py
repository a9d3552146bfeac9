"""Request Context Value Objects.

Audit information about who is authenticating and how. The workflows thread
a ``RequestContext`` through to the ``User`` aggregate so that login and
logout events record the client address and user agent.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

MAX_USER_AGENT_LENGTH = 512


class AuthenticationProvider(str, Enum):
    """How a successful login proved the user's identity.

    Attributes:
        LOCAL: Email and password.
        GOOGLE: Verified Google ID token.
        MFA: TOTP code completing a login that required MFA.
    """

    LOCAL = "local"
    GOOGLE = "google"
    MFA = "mfa"


def _clean(value: Optional[str], limit: Optional[int] = None) -> Optional[str]:
    if value is None or not value.strip():
        return None
    value = value.strip()
    return value[:limit] if limit else value


@dataclass(frozen=True)
class RequestContext:
    """Client information attached to authentication events.

    Blank values are normalized to ``None`` and overlong user agents are
    truncated, so arbitrary header values can be passed straight in.

    Attributes:
        ip_address: Client IP address, if known
        user_agent: Client user agent, if known
    """

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "ip_address", _clean(self.ip_address))
        object.__setattr__(self, "user_agent", _clean(self.user_agent, MAX_USER_AGENT_LENGTH))


EMPTY_REQUEST_CONTEXT = RequestContext()
