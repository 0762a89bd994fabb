"""
structlog setup for the dispatcher.

LOG_JSON=true emits one JSON object per line for log shipping; otherwise the
console renderer prints aligned key=value output.

Usage:
    from app.core.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("Message sent", message_id="0b1c...", external_id="67f2...")

Output with LOG_JSON=true:
    {"event": "Message sent", "message_id": "0b1c...", "external_id": "67f2...",
     "timestamp": "2024-01-01T12:00:00Z", "level": "info", "logger": "app.services.message_processor"}

Output in development (colored):
    2024-01-01 12:00:00 [info     ] Message sent    message_id=0b1c... external_id=67f2...

Core components accept a logger at construction so tests can inject a mock;
get_logger() is only the default.
"""

import logging
import os
import sys
from typing import Any, Optional

import structlog

IS_TEST = "pytest" in sys.modules

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def configure_logging(level: Optional[str] = None, json_output: Optional[bool] = None) -> None:
    """(Re)configure structlog. Arguments default to LOG_LEVEL / LOG_JSON from the environment."""
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if json_output is None:
        json_output = os.getenv("LOG_JSON", "false").lower() in ("1", "true", "yes")

    log_level = _LEVELS.get(level.upper(), logging.INFO)

    # Shared processors for all environments
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if json_output:
        # Machine-readable, one object per line
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        # No colors under pytest so captured output stays plain
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=not IS_TEST),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )

    # Also configure standard logging so third-party libraries share the stream
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    # Reduce noise from chatty libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> Any:
    """Bound structlog logger; pass __name__."""
    return structlog.get_logger(name)


# Usable defaults before the app or worker calls configure_logging()
configure_logging()
