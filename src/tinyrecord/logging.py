"""
Structured logging for tinyrecord.

Every module obtains its logger through :func:`get_logger` and emits
events as ``logger.debug("statement_executed", sql=sql)``.  Applications
call :func:`configure_logging` once at startup; libraries embedding
tinyrecord can skip it and inherit whatever structlog configuration the
host application installs.

Architecture:
    ::

        configure_logging(level="INFO", json_format=True, max_sql_length=500)
            │
            ▼
        structlog processor chain:
          1. TimeStamper (ISO)
          2. merge_contextvars      ← LogContext(connection=..., table=...)
          3. add_log_level / add_logger_name
          4. service metadata
          5. SQLShortener           ← one-line, length-capped ``sql`` field
          6. JSONRenderer (or ConsoleRenderer)

    Model writes run inside ``LogContext(connection=..., table=...)`` so
    the ``statement_*`` events they cause carry both fields.

Examples:
    >>> from tinyrecord.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> logger = get_logger(__name__)
    >>> logger.debug("statement_executed", sql="SELECT *\\nFROM `contact`")

Guardrails:
    ❌ DON'T: Log bound parameter values (they may hold personal data)
    ✅ DO: Log parameter names only

Tags:
    logging, structlog, observability, tinyrecord
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Any, TextIO

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "tinyrecord"
_WHITESPACE_RE = re.compile(r"\s+")


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict.setdefault("service", _SERVICE_NAME)
    return event_dict


class SQLShortener:
    """Processor folding the ``sql`` field onto one line and capping its length.

    >>> SQLShortener(20)(None, "debug", {"sql": "SELECT *\\nFROM `contact`\\nWHERE id = 1"})
    {'sql': 'SELECT * FROM `conta…'}
    """

    def __init__(self, max_length: int = 500, key: str = "sql") -> None:
        self.max_length = max_length
        self.key = key

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        sql = event_dict.get(self.key)
        if isinstance(sql, str):
            sql = _WHITESPACE_RE.sub(" ", sql).strip()
            if self.max_length and len(sql) > self.max_length:
                sql = sql[: self.max_length] + "…"
            event_dict[self.key] = sql
        return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "tinyrecord",
    add_timestamp: bool = True,
    stream: TextIO | None = None,
    max_sql_length: int = 500,
) -> None:
    """Configure structured logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for JSON unless the stream is a tty
        service: Service name added to every event
        add_timestamp: Include ISO timestamp
        stream: Output stream (default: stdout)
        max_sql_length: Cap for the ``sql`` field, 0 for no cap
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    stream = stream or sys.stdout
    is_tty = hasattr(stream, "isatty") and stream.isatty()
    if json_format is None:
        json_format = not is_tty
    numeric_level = getattr(logging, level.upper())

    processors: list[Processor] = []
    if add_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors += [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _add_service_metadata,
        SQLShortener(max_sql_length),
    ]

    if json_format:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=is_tty))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=stream, level=numeric_level)


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind fields to every later event in this context (thread / task)."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Scoped log fields; leaving the block restores the outer values.

    Example:
        with LogContext(connection="reporting", table="contact"):
            contact.save()
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> LogContext:
        self._tokens = dict(structlog.contextvars.bind_contextvars(**self._context))
        return self

    def __exit__(self, *args) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)
        self._tokens = {}


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
    "SQLShortener",
]
