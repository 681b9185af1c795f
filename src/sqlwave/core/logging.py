"""
Structured logging for sqlwave.

All modules log through structlog with dotted event names and keyword
fields (``logger.info("migration.done", migration=..., elapsed_ms=...)``).
``configure_logging`` is called once by the CLI; library callers may
configure structlog themselves and the loggers pick that up.

Architecture:
    ::

        configure_logging(level="INFO", json_format=None)
            │
            ▼
        structlog processor chain:
          1. filter_by_level
          2. TimeStamper (iso)
          3. merge_contextvars      (run_id, table, wave bound by LogContext)
          4. add_log_level / add_logger_name
          5. tag_tool               (tool=sqlwave)
          6. clip_sql               (long migration bodies shortened)
          7. JSONRenderer (non-tty) or ConsoleRenderer (tty)
            │
            ▼
        stdlib logging → stderr

Examples:
    >>> from sqlwave.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG")
    >>> logger = get_logger(__name__)
    >>> logger.info("scheduler.waves", wave_count=3)

Tags:
    logging, structlog, observability, sqlwave
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

SQL_PREVIEW_CHARS = 500


def _tag_tool(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("tool", "sqlwave")
    return event_dict


def _clip_sql(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Shorten ``sql`` fields; a seed file can be megabytes of INSERTs."""
    sql = event_dict.get("sql")
    if isinstance(sql, str) and len(sql) > SQL_PREVIEW_CHARS:
        event_dict["sql"] = sql[:SQL_PREVIEW_CHARS] + f"... [{len(sql)} chars]"
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    *,
    add_timestamp: bool = True,
) -> None:
    """Configure structlog and stdlib logging for a sqlwave process.

    Args:
        level: DEBUG logs every migration body, INFO one line per migration
        json_format: True for JSON lines, False for the console renderer,
            None to pick JSON whenever stderr is not a terminal
        add_timestamp: Prefix each event with an ISO timestamp
    """
    log_level = getattr(logging, level.upper())
    if json_format is None:
        json_format = not sys.stderr.isatty()

    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _tag_tool,
        _clip_sql,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]
    if add_timestamp:
        processors.insert(1, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # stdout is reserved for command output (tables, --json payloads)
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level)
    logging.getLogger("sqlwave").setLevel(log_level)


def get_logger(name: str | None = None) -> Any:
    """Return a structlog logger, usually ``get_logger(__name__)``."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach fields to every event logged from this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


class LogContext:
    """Bind fields for the duration of a ``with`` block.

    Example:
        with LogContext(run_id="3f2a9c01b7de", table="migrations"):
            logger.info("runner.finished", applied=4)
    """

    def __init__(self, **fields: Any):
        self.fields = fields

    def __enter__(self) -> LogContext:
        bind_context(**self.fields)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        unbind_context(*self.fields)


__all__ = [
    "SQL_PREVIEW_CHARS",
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "LogContext",
]
