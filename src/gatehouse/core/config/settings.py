"""Main application settings and configuration management.

This module composes all the settings from the different modules (app,
database, redis, auth) into a single, accessible `Settings` class.

It loads settings from environment variables and .env files, validates them,
and provides a single `settings` object for use throughout the application.
Components never read the module-level object implicitly in their hot path;
they receive a `Settings` instance from the composition root, which keeps tests
independent from the process environment.

Environment Support:
- Development: Uses .env, the default JWT secret is tolerated
- Test: Uses .env.test
- Staging/Production: Uses .env.staging / .env.production, the default JWT
  secret and a missing Google client id are configuration errors
"""

import logging
import os
from pathlib import Path

from pydantic_settings import SettingsConfigDict

from .app import AppSettings
from .auth import DEFAULT_JWT_SECRET, AuthSettings
from .database import DatabaseSettings
from .redis import RedisSettings

logger = logging.getLogger(__name__)
logging.getLogger("passlib").setLevel(logging.ERROR)

STRICT_ENVIRONMENTS = ("staging", "production")


class Settings(AppSettings, DatabaseSettings, RedisSettings, AuthSettings):
    """The main settings class that aggregates all application configurations.

    It inherits from all the specialized settings classes, providing a unified
    interface to all configuration parameters.

    Security Note:
        - Ensure all sensitive fields (JWT keys, Redis and database passwords)
          are stored securely and never logged.
        - Call ``validate_required_fields`` at start-up so that a production
          deployment cannot silently run with development secrets.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    @property
    def is_strict_environment(self) -> bool:
        return self.APP_ENV in STRICT_ENVIRONMENTS

    def validate_required_fields(self) -> None:
        """Validates settings that must be explicitly configured outside development.

        Raises:
            ValueError: If a required field is missing or still holds its
                development default in a strict environment.
        """
        problems = []
        if not self.uses_asymmetric_keys and self.JWT_SECRET_KEY.get_secret_value() == DEFAULT_JWT_SECRET:
            problems.append("JWT_SECRET_KEY")
        if not self.GOOGLE_CLIENT_ID:
            problems.append("GOOGLE_CLIENT_ID")

        if not problems:
            logger.info("All required environment variables are set.")
            return

        error_msg = f"Missing or default values for required settings: {', '.join(problems)}"
        if self.is_strict_environment:
            logger.error(error_msg)
            raise ValueError(error_msg)
        logger.warning(f"{self.APP_ENV} mode: {error_msg}")


def create_settings() -> Settings:
    """Create settings instance with environment-specific configuration.

    Returns:
        Settings: Configured settings instance
    """
    env = os.getenv("APP_ENV", "development")

    env_files = {
        "development": ".env",
        "test": ".env.test",
        "staging": ".env.staging",
        "production": ".env.production",
    }

    env_file = env_files.get(env, ".env")

    if env != "development" and Path(env_file).exists():
        logger.info(f"Loading environment configuration from {env_file}")
        return Settings(_env_file=env_file)
    if Path(".env").exists():
        logger.info(f"Loading environment configuration from .env (environment: {env})")
    else:
        logger.debug(f"No .env file found, using environment variables only (environment: {env})")
    return Settings()


# Singleton instance used by the composition root when no explicit settings are given.
settings = create_settings()
