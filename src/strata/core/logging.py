"""
Strata Logging - structured logging for the storage lifecycle.

Manifesto:
    Startup, model loading and migrations are the moments operators read
    logs most closely.  Every event is structured (``migration.applied``,
    ``models.load_failed``) so a log pipeline can alert on it, and
    human-readable in a terminal during development.

Architecture:
    ::

        configure_logging(level="INFO", json_format=None, service="strata")
            ↓
        structlog processor chain:
          1. TimeStamper (ISO)
          2. merge_contextvars
          3. add_log_level (logger name bound by get_logger)
          4. service metadata
          5. elasticsearch_compatible (JSON only)
          6. JSONRenderer  |  ConsoleRenderer

Examples:
    >>> from strata.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", service="strata")
    >>> logger = get_logger(__name__)
    >>> logger.info("bootstrap.connected", adapter="relational")

Tags:
    logging, structlog, observability, strata

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "strata"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _elasticsearch_compatible(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Make field names Elasticsearch/ECS compatible."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "strata",
    add_timestamp: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Configure structured logging for the process.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
        stream: Where rendered lines go (default: ``sys.stderr``)
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    out = stream or sys.stderr
    if json_format is None:
        json_format = not sys.stdout.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        shared_processors.append(_elasticsearch_compatible)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(out),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=out,
        level=getattr(logging, level.upper()),
    )


def is_logging_configured() -> bool:
    """Whether ``configure_logging`` (or ``structlog.configure``) already ran."""
    return structlog.is_configured()


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``).

    The name is bound lazily as the ``logger`` key.
    """
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(logger=name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


class LogContext:
    """Context manager for scoped logging context.

    Example:
        with LogContext(migration="001_users"):
            logger.info("migration.applying")
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args: Any) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "configure_logging",
    "is_logging_configured",
    "get_logger",
    "bind_context",
    "unbind_context",
    "LogContext",
]
