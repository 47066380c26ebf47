"""Structured logging setup using structlog.

Diagnostics always log to stderr. When ``logging.file`` is set, a JSON copy
is also written to a file that rotates at UTC midnight and keeps
``retention_days`` old files (0 keeps them all).
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

import structlog

from src.core.config import LoggingConfig, get_settings

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
]


def _formatter(renderer: structlog.types.Processor) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )


def _file_handler(config: LoggingConfig) -> logging.Handler:
    path = Path(config.file)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        path,
        when="midnight",
        backupCount=max(config.retention_days, 0),
        utc=True,
        encoding="utf-8",
    )
    handler.setFormatter(_formatter(structlog.processors.JSONRenderer()))
    return handler


def setup_logging(
    level: str | None = None,
    fmt: str | None = None,
    enabled: bool | None = None,
) -> None:
    """Configure structlog with JSON or console renderer.

    Args:
        level: Log level override (e.g. "DEBUG"). Uses config if None.
        fmt: Renderer format override ("json" or "console"). Uses config if None.
        enabled: Turn diagnostics logging on/off. Uses config if None.
    """
    config = get_settings().logging
    log_level = getattr(logging, (level or config.level).upper(), logging.INFO)
    log_format = fmt or config.format
    if enabled is None:
        enabled = config.enabled
    if not enabled:
        log_level = logging.CRITICAL + 10

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    handlers[0].setFormatter(_formatter(renderer))
    if enabled and config.file:
        handlers.append(_file_handler(config))

    root_logger = logging.getLogger()
    for old in root_logger.handlers:
        old.close()
    root_logger.handlers = handlers
    root_logger.setLevel(log_level)
