"""
Structured logging for the SportsOne api and seed processes.

structlog renders through a stdlib ProcessorFormatter, so uvicorn and httpx
records come out in the same console (dev) or JSON shape as ours. Each
process binds its service name once; the API binds the request id per
request (see RequestIDMiddleware), so sync, feed and interest events carry
it without passing it down. Event names are snake_case with keyword fields,
e.g. ``catalog_sync_completed sport_id=... status=partial``.
"""
from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from shared.config import Environment, Settings, get_settings

_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "asyncio")


def setup_logging(
    service_name: str,
    extra_context: dict[str, Any] | None = None,
    settings: Settings | None = None,
) -> None:
    """
    Configure structured logging for a process.

    Args:
        service_name: Identifier bound to every entry ("api" or "seed").
        extra_context: Additional static fields bound to every entry.
        settings: Overrides the cached settings (level, environment).
    """
    settings = settings or get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.environment == Environment.DEV:
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer(colors=True)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)

    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    structlog.contextvars.clear_contextvars()
    bound: dict[str, Any] = {"service": service_name}
    if settings.instance_id:
        bound["instance_id"] = settings.instance_id
    if extra_context:
        bound.update(extra_context)
    structlog.contextvars.bind_contextvars(**bound)


def bind_request_context(**fields: Any) -> None:
    """Bind per-request fields (request id, user id) for the current task."""
    structlog.contextvars.bind_contextvars(**fields)


def clear_request_context(*keys: str) -> None:
    """Drop per-request fields bound by bind_request_context."""
    structlog.contextvars.unbind_contextvars(*keys)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a named structured logger."""
    return structlog.get_logger(name)
