"""
Structured logging for lesson-spine.

Every component logs through structlog with snake_case event names and
key/value context, so a coordinator tick produces one machine-readable
summary record::

    {
      "@timestamp": "2026-10-18T10:00:00Z",
      "log.level": "info",
      "service.name": "lesson-spine",
      "event": "publish_tick_complete",
      "tick_id": "5f0c1a9e2b7d",
      "started_at": "2026-10-18T10:00:00+00:00",
      "due_count": 3,
      "published_count": 2
    }

Usage:
    >>> from lesson_spine.core.logging import configure_logging, get_logger
    >>> configure_logging(level="INFO", json_format=True)
    >>> logger = get_logger(__name__)
    >>> logger.info("lesson_scheduled", lesson_id="l-1")

Configuration happens once at process start (CLI / worker). Library code
only calls :func:`get_logger`.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from enum import Enum
from typing import Any, TextIO

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from lesson_spine.core.timestamps import ensure_utc

DEFAULT_SERVICE = "lesson-spine"

# Loggers that are chatty at INFO; only let them through when debugging.
_NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


def _plain_values(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Render statuses as their wire value and datetimes as UTC ISO 8601."""
    for key, value in event_dict.items():
        if isinstance(value, Enum):
            event_dict[key] = value.value
        elif isinstance(value, datetime):
            event_dict[key] = ensure_utc(value).isoformat()
    return event_dict


def _ecs_fields(service: str) -> Processor:
    """Stamp ``service.name`` and rename timestamp/level to ECS field names."""

    def processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service.name", service)
        if "timestamp" in event_dict:
            event_dict["@timestamp"] = event_dict.pop("timestamp")
        if "level" in event_dict:
            event_dict["log.level"] = event_dict.pop("level")
        return event_dict

    return processor


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = DEFAULT_SERVICE,
    stream: TextIO | None = None,
) -> None:
    """Configure structured logging for the process.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON lines, False for the console renderer,
            None to pick JSON whenever the stream is not a TTY (workers)
        service: Value of ``service.name`` on every JSON record
        stream: Output stream, stdout by default
    """
    numeric_level = getattr(logging, level.upper())
    stream = stream or sys.stdout
    if json_format is None:
        json_format = not stream.isatty()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.dev.set_exc_info,
        _plain_values,
    ]
    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            _ecs_fields(service),
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=stream.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=stream, level=numeric_level, force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(
            numeric_level if numeric_level <= logging.DEBUG else logging.WARNING
        )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


class LogContext:
    """Bind keys for the duration of a block, restoring prior values on exit.

    The coordinator wraps each tick in one so every record it emits carries
    the same ``tick_id``:

        with LogContext(tick_id="5f0c1a9e2b7d"):
            logger.info("publish_tick_complete", due_count=3)
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> LogContext:
        self._tokens = structlog.contextvars.bind_contextvars(**self._context)
        return self

    def __exit__(self, *args: Any) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)


__all__ = ["DEFAULT_SERVICE", "LogContext", "configure_logging", "get_logger"]
