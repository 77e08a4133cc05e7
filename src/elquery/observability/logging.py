"""Structured logging for the elquery CLI.

Library modules log through ``logging.getLogger(__name__)``. ``setup_logging``
attaches one handler to the ``elquery`` logger that renders those records,
and structlog events from ``get_logger``, as JSON or console lines.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any, TextIO

import structlog

if TYPE_CHECKING:
    from elquery.config.settings import ObservabilitySettings

HANDLER_NAME = "elquery"


def _renderer(log_format: str) -> Any:
    if log_format == "console":
        return structlog.dev.ConsoleRenderer(colors=False)
    return structlog.processors.JSONRenderer()


def setup_logging(settings: ObservabilitySettings | None = None, stream: TextIO | None = None) -> logging.Handler:
    """Route elquery log records to *stream* (stdout by default).

    Calling this again replaces the previously installed handler.

    Returns:
        The installed handler.
    """
    level = getattr(logging, (settings.log_level if settings else "info").upper(), logging.INFO)
    log_format = settings.log_format if settings else "json"

    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_format),
            ],
        )
    )

    package_logger = logging.getLogger("elquery")
    for old in [h for h in package_logger.handlers if h.get_name() == HANDLER_NAME]:
        package_logger.removeHandler(old)
    package_logger.addHandler(handler)
    package_logger.setLevel(level)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)
    return handler


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to *name*."""
    return structlog.get_logger(name)
