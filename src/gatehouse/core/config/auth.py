"""Authentication, token, MFA and lockout settings.
"""

import logging
from pathlib import Path

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_JWT_SECRET = "dev-only-secret-change-me-0123456789abcdef"
GOOGLE_CERTS_URL = "https://www.googleapis.com/oauth2/v3/certs"


class AuthSettings(BaseSettings):
    """Defines settings for token signing, Google sign-in, MFA and brute-force lockout.

    HMAC algorithms (``HS256`` and friends) sign with JWT_SECRET_KEY. Asymmetric
    algorithms (``RS*``, ``ES*``, ``PS*``) need a key pair, loaded from
    ``private.pem``/``public.pem`` when present, otherwise from the environment.

    Security Note:
        - JWT keys must be stored securely and rotated regularly to prevent token
          forgery (OWASP A02:2021 - Cryptographic Failures).
        - The default JWT_SECRET_KEY is for development only and is refused in
          production by ``Settings.validate_required_fields``.
        - Ensure PEM files are readable only by the application user (chmod 600).
    """

    # JWT settings
    JWT_ALGORITHM: str = "HS256"
    JWT_SECRET_KEY: SecretStr = Field(default=SecretStr(DEFAULT_JWT_SECRET))
    JWT_PRIVATE_KEY: SecretStr = SecretStr("")
    JWT_PUBLIC_KEY: str = ""
    JWT_ISSUER: str = "gatehouse"
    JWT_AUDIENCE: str = "gatehouse:api"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(ge=1, default=60)
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(ge=1, default=30)
    MFA_TOKEN_EXPIRE_MINUTES: int = Field(ge=1, default=5)

    # Brute-force lockout
    MAX_FAILED_LOGIN_ATTEMPTS: int = Field(ge=1, default=5)
    LOCKOUT_DURATION_MINUTES: int = Field(ge=1, default=30)

    # MFA
    MFA_ISSUER: str = "Gatehouse"
    TOTP_VALID_WINDOW: int = Field(ge=0, le=2, default=1)

    # Password hashing
    BCRYPT_WORK_FACTOR: int = Field(ge=4, le=31, default=12)

    # Google sign-in
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_JWKS_URL: str = GOOGLE_CERTS_URL

    @property
    def uses_asymmetric_keys(self) -> bool:
        return not self.JWT_ALGORITHM.upper().startswith("HS")

    @property
    def jwt_signing_key(self) -> str:
        if self.uses_asymmetric_keys:
            return self.JWT_PRIVATE_KEY.get_secret_value()
        return self.JWT_SECRET_KEY.get_secret_value()

    @property
    def jwt_verification_key(self) -> str:
        if self.uses_asymmetric_keys:
            return self.JWT_PUBLIC_KEY
        return self.JWT_SECRET_KEY.get_secret_value()

    @model_validator(mode="after")
    def _load_and_validate_jwt_keys(self) -> "AuthSettings":
        """Validates the signing material for the configured algorithm.

        For asymmetric algorithms the keys are loaded from PEM files first; a
        missing key pair is a configuration error. For HMAC algorithms the
        secret must be at least 32 characters long.

        Returns:
            Self instance with loaded keys.
        """
        if not self.uses_asymmetric_keys:
            if len(self.JWT_SECRET_KEY.get_secret_value()) < 32:
                raise ValueError("JWT_SECRET_KEY must be at least 32 characters long.")
            return self

        self._load_keys_from_pem_files()

        if not self.JWT_PRIVATE_KEY.get_secret_value() or not self.JWT_PUBLIC_KEY:
            error_msg = (
                f"JWT keys not found for {self.JWT_ALGORITHM}. Please provide JWT_PRIVATE_KEY "
                "and JWT_PUBLIC_KEY either via .env variables or through private.pem/public.pem files."
            )
            logger.error(error_msg)
            raise ValueError(error_msg)

        logger.info("JWT keys validated successfully.")
        return self

    def _load_keys_from_pem_files(self) -> None:
        """Loads JWT keys from private.pem and public.pem if they exist.

        These files override any existing environment variables.
        """
        private_key_path = Path("private.pem").resolve()
        public_key_path = Path("public.pem").resolve()

        if private_key_path.is_file():
            private_key = private_key_path.read_text().strip()
            if private_key:
                self.JWT_PRIVATE_KEY = SecretStr(private_key)
                logger.info("Loaded JWT private key from private.pem, overriding env var if set.")

        if public_key_path.is_file():
            public_key = public_key_path.read_text().strip()
            if public_key:
                self.JWT_PUBLIC_KEY = public_key
                logger.info("Loaded JWT public key from public.pem, overriding env var if set.")
