"""
TOTP adapter.

Uses pyotp for authenticator-app codes (RFC 6238, 30 second steps, 6 digits).
"""

from typing import Optional

import pyotp
import structlog

from gatehouse.domain.interfaces.clock import IClock
from gatehouse.domain.interfaces.services import IMfaService

logger = structlog.get_logger(__name__)

CODE_LENGTH = 6
# 32 base32 characters carry 160 bits.
SECRET_LENGTH = 32


class TOTPService(IMfaService):
    """
    TOTP implementation using pyotp.

    Codes are checked against the injected clock; ``valid_window`` adjacent
    steps on either side are accepted to tolerate clock drift.
    """

    def __init__(self, clock: IClock, issuer_name: str = "Gatehouse", valid_window: int = 1):
        self.clock = clock
        self.issuer_name = issuer_name
        self.valid_window = valid_window

    def generate_secret(self) -> str:
        return pyotp.random_base32(length=SECRET_LENGTH)

    async def validate_code(self, secret: str, code: str) -> bool:
        """Validate a TOTP code from the user's authenticator app."""
        if not secret or not code:
            return False
        if len(code) != CODE_LENGTH or not code.isascii() or not code.isdigit():
            return False

        try:
            totp = pyotp.TOTP(secret)
            return totp.verify(code, for_time=self.clock.now(), valid_window=self.valid_window)
        except ValueError as e:
            logger.warning("totp_secret_invalid", error=str(e))
            return False

    def get_enrollment_uri(self, email: str, secret: str, issuer: Optional[str] = None) -> str:
        totp = pyotp.TOTP(secret)
        return totp.provisioning_uri(name=email, issuer_name=issuer or self.issuer_name)
