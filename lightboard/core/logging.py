"""
Structured logging via structlog.

Every entry carries timestamp, level, event, logger name and any bound
context (request_id, operator_id).

Usage:
    logger = get_logger(__name__)
    logger.info("jobs.approved", job_id=job.id, operator_id=user.sub)
    logger.warning("analytics.window_inverted", start=..., end=...)
    logger.error("analytics.fetch_failed", error=str(e))
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, WrappedLogger

from lightboard.core.config import settings

_HANDLER_NAME = "lightboard"

_SEVERITY = {
    "debug": "DEBUG",
    "info": "INFO",
    "warning": "WARNING",
    "error": "ERROR",
    "critical": "CRITICAL",
}


def add_severity_field(
    logger: WrappedLogger, method: str, event_dict: EventDict
) -> EventDict:
    """Map structlog method names to log-shipper severity strings."""
    event_dict["severity"] = _SEVERITY.get(method, "INFO")
    return event_dict


def setup_logging() -> None:
    """Configure structlog for JSON (production) or console (dev) output."""
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        add_severity_field,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.ExceptionRenderer(),
    ]

    if settings.LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    level = logging.getLevelName(settings.LOG_LEVEL.upper())

    # add_logger_name reads .name off the stdlib logger
    root = logging.getLogger()
    if not any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
    root.setLevel(level)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "aiosqlite"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)
