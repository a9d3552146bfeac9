"""
Redis settings for token revocation and refresh-token storage.
"""
import logging

from pydantic import Field, SecretStr, ValidationInfo, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class RedisSettings(BaseSettings):
    """
    Defines settings for the Redis connection backing the token stores.

    When neither REDIS_URL nor REDIS_HOST is set, the in-memory token stores are
    used instead. That is only safe for a single process.

    Security Note:
        - REDIS_PASSWORD must be set in production to prevent unauthorized access
          to revoked-token and refresh-token records.
        - Prefer rediss:// (REDIS_SSL=True) outside of a private network.
    """
    REDIS_HOST: str = ""
    REDIS_PORT: int = Field(ge=1, le=65535, default=6379)
    REDIS_PASSWORD: SecretStr = SecretStr("")
    REDIS_SSL: bool = False
    REDIS_DB: int = Field(ge=0, default=0)
    REDIS_KEY_PREFIX: str = "gatehouse"
    REDIS_URL: str = Field(default="", validate_default=True)

    @field_validator("REDIS_URL", mode="before")
    @classmethod
    def assemble_redis_url(cls, v: str | None, info: ValidationInfo) -> str:
        """
        Assembles the Redis connection URL if not provided explicitly.

        Args:
            v: Explicitly provided URL or None.
            info: Validation context with other field values.

        Returns:
            Assembled or provided Redis URL, or an empty string when Redis is
            not configured at all.
        """
        if v:
            return v

        values = info.data
        host = values.get("REDIS_HOST")
        if not host:
            return ""

        protocol = "rediss" if values.get("REDIS_SSL") else "redis"
        password = values.get("REDIS_PASSWORD")
        secret = password.get_secret_value() if password else ""
        auth = f":{secret}@" if secret else ""
        url = f"{protocol}://{auth}{host}:{values.get('REDIS_PORT')}/{values.get('REDIS_DB')}"
        logger.debug("Assembled REDIS_URL (password masked for security).")
        return url

    @property
    def uses_redis(self) -> bool:
        return bool(self.REDIS_URL)
