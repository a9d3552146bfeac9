"""
Application-specific settings.
"""
from pydantic import Field
from pydantic_settings import BaseSettings


class AppSettings(BaseSettings):
    """
    Defines application-wide settings like project name, environment and logging.

    Performance Note:
        - USE_CASE_TIMEOUT_SECONDS bounds every authentication use case, including
          the time spent waiting on the repository, Redis and the Google key set.
          Keep it well below any upstream request timeout.
    """
    PROJECT_NAME: str = "gatehouse"
    VERSION: str = "0.1.0"
    APP_ENV: str = "development"
    DEBUG: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    USE_CASE_TIMEOUT_SECONDS: float = Field(gt=0, default=10.0)
