"""
Structured logging for recordspine.

All modules log through :func:`get_logger`, which returns a structlog bound
logger. Applications call :func:`configure_logging` once at startup to pick
the level and the renderer; without it structlog's defaults apply.

Architecture:
    ::

        configure_logging(level="INFO", json_format=True, service="billing")
            ↓
        structlog processor chain:
          1. filter_by_level
          2. TimeStamper (ISO)
          3. merge_contextvars / add_log_level / add_logger_name
          4. add_service_metadata
          5. JSONRenderer (or ConsoleRenderer for dev)
            ↓
        stdlib logging handler on stderr

        logger = get_logger(__name__)
        logger.warning("unknown_field", field="nmae", record_type="User")

Examples:
    >>> from recordspine.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> logger = get_logger(__name__)
    >>> logger.debug("record_updated", table="users", fields=["name"])

Tags:
    logging, structlog, observability, recordspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import logging
import sys
from contextlib import AbstractContextManager
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "recordspine"


def _add_service_metadata(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _processors(json_format: bool, add_timestamp: bool) -> list[Processor]:
    """Level filter, enrichment, then exactly one renderer last."""
    chain: list[Processor] = [structlog.stdlib.filter_by_level]
    if add_timestamp:
        chain.append(structlog.processors.TimeStamper(fmt="iso"))
    chain += [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]
    if json_format:
        chain.append(structlog.processors.JSONRenderer())
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=True))
    return chain


def configure_logging(
    level: str | None = None,
    json_format: bool | None = None,
    service: str = "recordspine",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: DEBUG, INFO, WARNING or ERROR. ``None`` reads
            ``RECORDSPINE_LOG_LEVEL``.
        json_format: ``None`` reads ``RECORDSPINE_LOG_JSON``; when that is
            unset too, JSON is used unless stdout is a terminal.
        service: Value of the ``service.name`` key on every event.
        add_timestamp: Prefix events with an ISO timestamp.
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    from recordspine.settings import get_settings

    settings = get_settings()
    level = (level or settings.log_level).upper()
    if json_format is None:
        json_format = settings.log_json
    if json_format is None:
        json_format = not sys.stdout.isatty()

    structlog.configure(
        processors=_processors(json_format, add_timestamp),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    # stdlib logging carries the rendered line
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=getattr(logging, level), force=True)


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Add keys to every event logged from this context on.

    Example:
        bind_context(request_id="abc123")
        logger.info("record_updated")  # carries request_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind keys for the duration of a ``with`` block.

    Keys that were already bound get their previous values back on exit.

    Example:
        with LogContext(table="users", request_id="abc123"):
            record.save()
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs
        self._scope: AbstractContextManager[None] | None = None

    def __enter__(self) -> LogContext:
        self._scope = structlog.contextvars.bound_contextvars(**self._context)
        self._scope.__enter__()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self._scope is not None:
            self._scope.__exit__(*exc_info)
            self._scope = None


__all__ = [
    "LogContext",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "unbind_context",
]
