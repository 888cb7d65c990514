"""Structured logging for TableBase.

Log entries are structlog event dicts rendered as JSON lines in production
and as coloured console lines in development. Every entry carries the
request's correlation id, bound by the HTTP middleware through contextvars.
"""

import logging
import sys
import uuid
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from tablebase.core.config import Settings, get_settings

DEFAULT_LOGGER_NAME = "tablebase"

# Standard-library loggers whose level follows the application's
THIRD_PARTY_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error")


def add_correlation_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Ensure the entry has a correlation id.

    Entries logged outside a request (CLI, startup) get a one-off id.
    """
    event_dict.setdefault("correlation_id", f"cid_{uuid.uuid4().hex[:12]}")
    return event_dict


def add_logger_name(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["logger"] = getattr(logger, "name", DEFAULT_LOGGER_NAME)
    return event_dict


def drop_empty_fields(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Remove keyword fields logged as None (e.g. an anonymous row author)."""
    for key in [key for key, value in event_dict.items() if value is None]:
        del event_dict[key]
    return event_dict


def rename_message_field(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Store the event text under 'message'."""
    if "event" in event_dict:
        event_dict["message"] = event_dict.pop("event")
    return event_dict


def build_processors(renderer: Processor) -> list[Processor]:
    """Assemble the processor chain ending in ``renderer``."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_correlation_id,
        drop_empty_fields,
        rename_message_field,
        renderer,
    ]


def _uses_console(settings: Settings) -> bool:
    return settings.is_development or settings.log_format == "console"


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog and the standard-library loggers.

    Args:
        settings: Settings to read the level and format from; loaded from
            the environment when omitted.
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level)
    console = _uses_console(settings)

    if console:
        renderer: Processor = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=build_processors(renderer),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        # Development reconfigures on reload
        cache_logger_on_first_use=not console,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
        force=True,
    )
    for logger_name in THIRD_PARTY_LOGGERS:
        logging.getLogger(logger_name).setLevel(level)
    # SQL echo is controlled by db_echo on the engine, not by the log level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if settings.db_echo else logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, named after the calling module by convention."""
    return structlog.get_logger(name or DEFAULT_LOGGER_NAME)


def bind_correlation_id(correlation_id: str) -> None:
    """Bind the request's correlation id to the current logging context."""
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_context() -> None:
    """Drop everything bound to the current logging context."""
    structlog.contextvars.clear_contextvars()
