"""
Structured logging for bizframe, plus the default logging service.

Two things live here:

- the structlog configuration used by the registry itself
  (``configure_logging`` / ``get_logger`` / ``LogContext``), and
- :class:`LogService`, the implementation registered under the well-known
  logging service name so application code can call
  ``registry.log(priority, subject, message)``.

Architecture:
    ::

        configure_logging(level="INFO", json_format=True)
            │
            ▼
        structlog processor chain:
          1. TimeStamper(fmt="iso")
          2. merge_contextvars        (session_id bound per request)
          3. add_log_level / add_logger_name
          4. _add_service_metadata
          5. JSONRenderer | ConsoleRenderer

        registry.log(LogPriority.ERR, "Orders", "insert failed")
            │
            ▼
        getService("logService") → LogService.log(...)
            │
            ▼
        structlog  {"event": "insert failed", "subject": "Orders",
                    "priority": 4, "log.level": "error", ...}

Priorities:
    The logging contract uses a small ordinal scale. Several standard
    names share an ordinal on purpose::

        EMERG = ALERT = CRIT = 1
        ERR                  = 4
        WARNING              = 5
        NOTICE = INFO = DEBUG = 6

Tags:
    logging, structlog, observability, log-service, bizframe

Doc-Types:
    - API Reference
    - Observability Guide
"""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from enum import IntEnum
from pathlib import Path
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Store service name for metadata
_SERVICE_NAME = "bizframe"


class LogPriority(IntEnum):
    """Ordinal priorities accepted by the logging service."""

    EMERG = 1
    ALERT = 1
    CRIT = 1
    ERR = 4
    WARNING = 5
    NOTICE = 6
    INFO = 6
    DEBUG = 6


_PRIORITY_LEVELS = {
    LogPriority.EMERG: "critical",
    LogPriority.ERR: "error",
    LogPriority.WARNING: "warning",
    LogPriority.NOTICE: "info",
}


def priority_level(priority: int) -> str:
    """Map an ordinal priority to a structlog method name.

    Unknown ordinals are bucketed: anything below ``ERR`` is critical,
    anything above ``WARNING`` is informational.
    """
    try:
        return _PRIORITY_LEVELS[LogPriority(priority)]
    except ValueError:
        if priority < LogPriority.ERR:
            return "critical"
        if priority > LogPriority.WARNING:
            return "info"
        return "error"


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
    service: str = "bizframe",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    if json_format is None:
        json_format = not sys.stdout.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
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
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context."""
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Context manager for scoped logging context.

    Example:
        with LogContext(session_id="abc123"):
            logger.info("view_rendered")
        # Context cleared here
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args) -> None:
        unbind_context(*self._context.keys())


class LogService:
    """Default implementation of the logging service contract.

    ``log`` forwards to structlog. ``log_error`` also appends a plain text
    line to ``<log_dir>/<file_name>`` when a file override is given.
    """

    def __init__(self, log_dir: Path | str):
        self._log_dir = Path(log_dir)
        self._logger = get_logger("bizframe.service.log")

    def log(self, priority: int, subject: str, message: str) -> None:
        method = getattr(self._logger, priority_level(priority))
        method(message, subject=subject, priority=int(priority))

    def log_error(
        self,
        priority: int,
        subject: str,
        message: str,
        file_name: str | None = None,
    ) -> None:
        self.log(priority, subject, message)
        if not file_name:
            return

        # Only the base name is honoured; the file always lands in log_dir.
        target = self._log_dir / Path(file_name).name
        target.parent.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(UTC).isoformat(timespec="seconds")
        level = priority_level(priority).upper()
        with target.open("a", encoding="utf-8") as handle:
            handle.write(f"{stamp} [{level}] {subject}: {message}\n")


__all__ = [
    "LogPriority",
    "priority_level",
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
    "LogService",
]
