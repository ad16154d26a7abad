"""Structured logging configuration using structlog.

Application code logs through ``structlog.get_logger()``; low-level helpers
use stdlib ``logging.getLogger(__name__)``. Both end up on the same stdlib
handler so levels and output format are controlled in one place.

Never log passwords, password hashes, tokens or secrets.
"""

import logging
import sys

import structlog

from weather_auth.core.config import settings


def configure_logging() -> None:
    """Configure stdlib logging and structlog from settings.

    Production renders JSON lines; every other environment uses the
    human-readable console renderer.
    """
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    renderer: structlog.types.Processor
    if settings.environment == "production":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
