"""
Structured logging for the kittens application.

All modules log through structlog on top of the stdlib ``logging`` handlers.
Events are snake_case names with keyword context. While a Flask request is
being handled every event also carries that request's id, so service-level
events can be correlated with the handler that triggered them.
"""

import logging
import os
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from flask import g, has_request_context

REQUEST_ID_KEY = "request_id"


def get_log_level() -> int:
    """Resolve LOG_LEVEL to a logging constant, INFO when unset or unknown."""
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    return logging.getLevelNamesMapping().get(level_name, logging.INFO)


def add_request_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor copying the current request id into the event."""
    if has_request_context():
        request_id = g.get(REQUEST_ID_KEY)
        if request_id:
            event_dict.setdefault(REQUEST_ID_KEY, request_id)
    return event_dict


def configure_structured_logging() -> None:
    """
    Configure structlog and the stdlib root logger.

    Development renders human-readable console lines; every other
    environment emits one JSON document per line on stderr.
    """
    log_level = get_log_level()
    is_dev = os.getenv("ENVIRONMENT", "development").lower() in ("development", "dev", "local")

    logging.basicConfig(level=log_level, format="%(message)s", stream=sys.stderr)
    logging.getLogger().setLevel(log_level)

    renderer: Any = (
        structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()) if is_dev else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            add_request_context,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    structlog.get_logger("kittens.logging").info(
        "logging_configured",
        log_level=logging.getLevelName(log_level),
        renderer="console" if is_dev else "json",
    )


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)


@contextmanager
def log_performance(operation: str, **context: Any) -> Iterator[dict[str, Any]]:
    """
    Time a block and log a ``performance_metric`` event when it completes.

    The yielded dict is merged into the event, so the block can attach
    results (counts, sizes) it only learns while running. Nothing is logged
    when the block raises.
    """
    start = time.perf_counter()
    yield context
    get_logger("kittens.performance").info(
        "performance_metric",
        operation=operation,
        duration_seconds=round(time.perf_counter() - start, 4),
        **context,
    )


def log_error(error: Exception, context: dict[str, Any] | None = None, cause: BaseException | None = None) -> None:
    """
    Log an error event.

    Args:
        error: Exception being reported
        context: Additional key/value context
        cause: Underlying exception; its traceback is rendered with the event
    """
    event: dict[str, Any] = {"error_type": type(error).__name__, "error_message": str(error), **(context or {})}
    if cause is not None:
        event["exc_info"] = cause

    get_logger("kittens.errors").error("error_occurred", **event)
