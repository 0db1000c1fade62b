"""
Logging Configuration

structlog over the standard library logger. Search requests bind their
request id and location text once with bind_search_context, and every
entry logged while the request runs (worker threads included) carries them.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from config.settings import settings

SERVICE_NAME = "mls_search"

_configured = False


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp the service name and deployment environment on an entry."""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("environment", settings.environment)
    return event_dict


def context_processors() -> list[Processor]:
    """Processors applied to every entry before rendering."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_app_context,
    ]


def render_processors(log_format: str) -> list[Processor]:
    """
    Exception handling and the final renderer for a log format.

    "json" produces one JSON object per line; anything else gets the
    colored console renderer used for local runs.
    """
    if log_format == "json":
        return [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ]
    return [
        structlog.processors.StackInfoRenderer(),
        structlog.dev.ConsoleRenderer(),
    ]


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    force: bool = False,
) -> structlog.BoundLogger:
    """
    Configure structlog and the root logger.

    Runs once per process; later calls return a logger without touching the
    configuration unless force is set.

    Args:
        log_level: Level name, defaults to settings.log_level
        log_format: "json" or "console", defaults to settings.log_format
        force: Reconfigure even if logging was already set up

    Returns:
        Logger for the application
    """
    global _configured
    if _configured and not force:
        return structlog.get_logger()

    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=force)

    structlog.configure(
        processors=context_processors() + render_processors(log_format or settings.log_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True
    return structlog.get_logger()


def bind_search_context(**values: Any) -> None:
    """Replace the bound log context with values for the current search."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """Logger for a module, typically get_logger(__name__)."""
    return structlog.get_logger(name) if name else structlog.get_logger()
