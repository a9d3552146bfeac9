"""
Logging configuration module for structured logging.

This module configures the application's logging system using structlog.
It provides JSON output for production and human-readable console output
for development.

The logging configuration includes:
- Context variables merged into every event (correlation ids)
- Timestamp formatting
- Log level inclusion
- JSON/Console output based on settings
"""

import logging
from typing import Optional

import structlog


def configure_logging(log_level: str = "INFO", json_logs: Optional[bool] = None) -> None:
    """
    Configures the application's logging system.

    This function sets up structlog with:
    1. Context variables merged from ``structlog.contextvars``
    2. ISO format timestamps
    3. Log level inclusion
    4. JSON formatting for production (when ``json_logs`` is true)
    5. Console formatting for development
    6. Standard library logger factory

    Args:
        log_level: Minimum level passed to the standard library root logger.
        json_logs: Render JSON when true; defaults to ``settings.LOG_JSON``.
    """
    if json_logs is None:
        from gatehouse.core.config.settings import settings

        json_logs = settings.LOG_JSON

    logging.basicConfig(format="%(message)s", level=log_level.upper())

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_log_level,
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger()
