"""
Structured logging configuration using structlog.

Provides JSON-formatted logs for production (searchable/aggregatable)
and human-readable colored output for development.

Usage:
    from weblog.core.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("feed generated", web_log_id="abc", items=10)

Output in production (JSON):
    {"event": "feed generated", "web_log_id": "abc", "items": 10,
     "timestamp": "2024-01-01T12:00:00Z", "level": "info", "request_id": "req_..."}

Output in development (colored):
    2024-01-01 12:00:00 [info     ] feed generated    web_log_id=abc items=10
"""

import logging
import sys
from typing import Any

import structlog

from weblog.core.config import settings

IS_PRODUCTION = settings.ENVIRONMENT == "production"
IS_TEST = "pytest" in sys.modules


def configure_logging() -> None:
    """Configure structlog with appropriate processors for the environment."""
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    # Shared processors for all environments
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if IS_PRODUCTION:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=not IS_TEST),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Standard library loggers (uvicorn, sqlalchemy) share the same stream
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)
    """
    return structlog.get_logger(name)


# Configure on import
configure_logging()
