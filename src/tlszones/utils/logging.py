"""Structured logging configuration using structlog.

Provides correlation IDs for tracing a batch across many images and
configurable output formats (JSON for pipelines, colored console for dev).
"""

import logging
import sys
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, cast

import structlog
from structlog.types import Processor

from tlszones.config import settings

# Context variables for correlation IDs
_run_id: ContextVar[str | None] = ContextVar("run_id", default=None)
_image_id: ContextVar[str | None] = ContextVar("image_id", default=None)


def set_correlation_context(
    run_id: str | None = None,
    image_id: str | None = None,
) -> None:
    """Set correlation IDs for the current context.

    Args:
        run_id: Unique identifier for the batch run
        image_id: Identifier of the image being zoned (e.g., file stem)
    """
    if run_id is not None:
        _run_id.set(run_id)
    if image_id is not None:
        _image_id.set(image_id)


def clear_correlation_context() -> None:
    """Clear all correlation context variables."""
    _run_id.set(None)
    _image_id.set(None)


@contextmanager
def image_context(image_id: str | None) -> Iterator[None]:
    """Scope the image correlation ID to a block.

    The previous value is restored on exit. With image_id None the
    surrounding context is left as it is.
    """
    if image_id is None:
        yield
        return
    token = _image_id.set(image_id)
    try:
        yield
    finally:
        _image_id.reset(token)


def _add_correlation_ids(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Structlog processor to add correlation IDs to log events."""
    _ = logger, method_name  # Required by structlog processor signature
    run_id = _run_id.get()
    image_id = _image_id.get()

    if run_id is not None:
        event_dict["run_id"] = run_id
    if image_id is not None:
        event_dict["image_id"] = image_id

    return event_dict


def configure_logging(
    level: str | None = None,
    log_format: str | None = None,
) -> None:
    """Configure structlog with the specified settings.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to settings.LOG_LEVEL.
        log_format: Output format ("console" or "json").
                    Defaults to settings.LOG_FORMAT.
    """
    level = level or settings.LOG_LEVEL
    log_format = log_format or settings.LOG_FORMAT

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _add_correlation_ids,
    ]

    if log_format == "json":
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Configure stdlib logging to match
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Logger name. If None, uses the calling module's name.

    Returns:
        A bound structlog logger instance.
    """
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
