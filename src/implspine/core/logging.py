"""
Implspine Logging - structured logging for fragment loading and rendering.

Manifesto:
    Fragments arrive in no particular order and are consumed later by a
    registry. When an implementor goes missing from a rendered page, the
    only way to find out why is the log trail. Every module logs through
    structlog so that trail is uniform:

    - **Structured:** snake_case events with key/value fields
    - **Flexible:** JSON for CI and pipelines, colored console on a TTY
    - **Tagged:** every line carries the service name

Examples:
    >>> from implspine.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", service="implspine")
    >>> logger = get_logger(__name__)
    >>> logger.info("fragment_queued", crate="futures", pending=1)

Tags:
    logging, structlog, observability, implspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Store service name for metadata
_SERVICE_NAME = "implspine"


def _add_service_metadata(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _ecs_field_names(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Rename timestamp and level to ECS field names."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    return event_dict


def _stderr_logger_factory(*args: Any) -> structlog.PrintLogger:
    """Resolve sys.stderr per logger so redirected streams are honored.

    The first positional argument (the name given to ``get_logger``) is kept
    as ``name`` for ``add_logger_name``.
    """
    printer = structlog.PrintLogger(file=sys.stderr)
    printer.name = args[0] if args and args[0] else _SERVICE_NAME
    return printer


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "implspine",
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
        json_format = not sys.stderr.isatty()

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
        shared_processors.append(_ecs_field_names)
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    # Rendered output goes to stderr so command output on stdout stays clean.
    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper())),
        context_class=dict,
        logger_factory=_stderr_logger_factory,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Lazy structlog logger; ``name`` is rendered as the ``logger`` field
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs.

    Example:
        bind_context(docs_root="target/doc")
        logger.info("fragments_discovered")  # Includes docs_root
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


class LogContext:
    """Context manager for scoped logging context.

    Example:
        with LogContext(trait="core::ops::Drop"):
            logger.info("render_started")
        # Context cleared here
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "LogContext",
]
