"""Structured logging configuration."""

import logging
import sys
from typing import TextIO

import structlog


def parse_log_level(level: str | int) -> int:
    """Resolve a log level name or number to a logging level.

    Args:
        level: Level name (e.g. "debug", "INFO") or numeric level.

    Returns:
        Numeric logging level. Unknown names fall back to INFO.
    """
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    level: str | int = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = True,
) -> None:
    """Configure structured logging for the mirror.

    Sets up structlog with timestamps, log levels, contextvars binding
    and either JSON or console rendering.

    Args:
        level: Logging level name or number (default: INFO).
        output: Output stream (default: stderr).
        json_format: Whether to use JSON format (default: True).
    """
    numeric_level = parse_log_level(level)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=output.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )

    # Route stdlib loggers (httpx, etc.) to the same stream
    logging.basicConfig(
        format="%(message)s",
        stream=output,
        level=numeric_level,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a bound logger instance.

    Args:
        name: Optional logger name.

    Returns:
        Bound logger instance.
    """
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


def bind_sync_context(sync_id: str) -> None:
    """Bind a sync correlation id to all subsequent log messages.

    Args:
        sync_id: Unique identifier for the current sync pass.
    """
    structlog.contextvars.bind_contextvars(sync_id=sync_id)


def clear_sync_context() -> None:
    """Clear the sync correlation id from log messages."""
    structlog.contextvars.unbind_contextvars("sync_id")
