"""
LifeLine logging - structured logging for the data-access layer.

The adapters and the migration manager never format output themselves.
They receive a logger *capability* with a single method,
``log(level, message, fields)``, and emit short event names with
structured fields.  ``get_logger()`` returns the default capability,
a thin wrapper over structlog.

Architecture:
    ::

        configure_logging(level="INFO", json_format=True, service="lifeline-db")
            ↓
        structlog processor chain:
          1. TimeStamper(iso)
          2. add_log_level / add_logger_name
          3. _add_service_metadata
          4. _elasticsearch_compatible   (JSON only)
          5. JSONRenderer | ConsoleRenderer

        logger = get_logger(__name__)
        logger.log("warning", "db.query.slow", {"duration_ms": 1450})

Examples:
    >>> from lifeline.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> get_logger(__name__).log("info", "db.connected", {"backend": "sqlite"})

Tags:
    logging, structlog, observability, lifeline-core
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Protocol, runtime_checkable

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "lifeline-db"

LEVELS = ("debug", "info", "warning", "error", "critical")


@runtime_checkable
class Logger(Protocol):
    """The logging capability injected into adapters and the migration manager."""

    def log(self, level: str, message: str, fields: dict[str, Any] | None = None) -> None: ...


class StructLogger:
    """``Logger`` implementation backed by a structlog bound logger."""

    def __init__(self, name: str | None = None):
        self._logger = structlog.get_logger(name)

    def log(self, level: str, message: str, fields: dict[str, Any] | None = None) -> None:
        level = level.lower()
        if level not in LEVELS:
            level = "info"
        getattr(self._logger, level)(message, **(fields or {}))


class NullLogger:
    """Discards everything."""

    def log(self, level: str, message: str, fields: dict[str, Any] | None = None) -> None:
        return None


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
    service: str = "lifeline-db",
) -> None:
    """Configure structured logging for the process.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    if json_format is None:
        json_format = not sys.stdout.isatty()

    shared_processors: list[Processor] = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

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
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper()),
    )


def get_logger(name: str | None = None) -> StructLogger:
    """Get the default logging capability."""
    return StructLogger(name)


__all__ = [
    "Logger",
    "StructLogger",
    "NullLogger",
    "configure_logging",
    "get_logger",
]
