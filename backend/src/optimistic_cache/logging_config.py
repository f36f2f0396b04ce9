"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging.config
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional

import structlog

from optimistic_cache.config import get_settings

_CONFIGURED = False
_LOGGER_NAME = "optimistic_cache"


def get_correlation_id() -> Optional[str]:
    """Correlation id bound in the current context, if any."""
    return structlog.contextvars.get_contextvars().get("correlation_id")


def set_correlation_id(correlation_id: Optional[str]) -> None:
    """Tie the following updates to a caller-chosen id (e.g. the request id)."""
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_correlation_id() -> None:
    structlog.contextvars.unbind_contextvars("correlation_id")


@contextmanager
def mutation_context(table: str, record_id: Any) -> Iterator[str]:
    """Bind table, record_id and a correlation id to every log line inside the block.

    Reuses the caller's correlation id when one is bound, otherwise mints one
    for this mutation. Yields the id in effect. Bindings live in contextvars,
    so concurrent asyncio tasks keep their own and everything is restored on exit.
    """
    correlation_id = get_correlation_id() or uuid.uuid4().hex
    with structlog.contextvars.bound_contextvars(
        table=table, record_id=str(record_id), correlation_id=correlation_id
    ):
        yield correlation_id


def _shared_processors() -> list[Any]:
    # used both for structlog events and for foreign stdlib records
    return [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.dict_tracebacks,
    ]


def configure_logging(log_level: str | None = None, *, json_output: bool = True) -> None:
    """
    Route structlog through the stdlib root handler. Idempotent.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL; defaults to Settings.log_level
        json_output: JSON lines when True, the coloured console renderer otherwise
    """
    global _CONFIGURED

    if _CONFIGURED:
        return

    level = (log_level or get_settings().log_level).upper()
    renderer: Any = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )
    handler = {
        "class": "logging.StreamHandler",
        "formatter": "structured",
        "stream": "ext://sys.stdout",
    }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structured": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "processor": renderer,
                    "foreign_pre_chain": _shared_processors(),
                },
            },
            "handlers": {"console": handler},
            "root": {"level": level, "handlers": ["console"]},
            "loggers": {
                _LOGGER_NAME: {"level": level, "propagate": False, "handlers": ["console"]},
            },
        }
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    _CONFIGURED = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance."""
    return structlog.get_logger(name)  # type: ignore[no-any-return]
