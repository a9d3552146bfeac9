"""
Database connection settings.
"""
import logging

from pydantic import Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class DatabaseSettings(BaseSettings):
    """
    Defines settings for the durable user event store.

    An empty DATABASE_URL selects the in-memory repository, which is what the
    test suite and local development use.

    Security Note:
        - Never log DATABASE_URL; it usually embeds the database password.
        - Use an SSL-enabled URL when the database is reached over an
          untrusted network.
    Performance Note:
        - Tune DATABASE_POOL_SIZE and DATABASE_MAX_OVERFLOW to the expected
          login concurrency; every use case holds a connection only for the
          duration of a load or an append.
    """
    DATABASE_URL: str = ""
    DATABASE_ECHO: bool = False
    DATABASE_POOL_SIZE: int = Field(ge=1, default=10)
    DATABASE_MAX_OVERFLOW: int = Field(ge=0, default=20)

    @property
    def uses_database(self) -> bool:
        return bool(self.DATABASE_URL)
