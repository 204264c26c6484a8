"""Structured logging for sharegate.

Thin wrapper over structlog so every module logs the same way:

    from sharegate.core.logging import get_logger

    logger = get_logger(__name__)
    logger.warning("identifier_collision", domain="short_id", attempt=2)

Never pass credentials, owner tokens, master secrets or plaintext content
as event fields.
"""

import logging
import sys
from typing import Any

import structlog


def configure_logging(*, json_output: bool = False, level: str = "INFO") -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        json_output: Render one JSON object per line (for log shipping)
            instead of the human-readable console renderer
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR)
    """
    log_level = logging.getLevelName(level.upper())

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
    )

    renderer: Any
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None, **initial_values: Any) -> Any:
    """Get a bound structlog logger.

    Args:
        name: Logger name, usually __name__, bound as the logger_name field
        **initial_values: Context bound to every event from this logger
    """
    if name is not None:
        initial_values.setdefault("logger_name", name)
    return structlog.get_logger(**initial_values)
