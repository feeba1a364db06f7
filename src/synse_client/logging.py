"""Structured logging configuration for the Synse client.

The library only emits events through ``structlog.get_logger(__name__)``;
applications opt in to rendering by calling configure_logging().
"""

from __future__ import annotations

import logging
import sys
from typing import IO, List, Literal, Optional

import structlog


def configure_logging(
    log_format: Literal["json", "text"] = "json",
    log_level: str = "INFO",
    stream: Optional[IO[str]] = None,
) -> None:
    """Configure structlog for an application using the client.

    Args:
        log_format: Output format - "json" for production, "text" for development.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        stream: Where log lines go. Defaults to stderr so command output
            on stdout stays machine-readable.
    """
    stream = stream if stream is not None else sys.stderr
    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: List[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_format == "json":
        processors: List[structlog.typing.Processor] = [
            *shared_processors,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=stream.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )

    # tenacity reports retries through the stdlib logger
    logging.basicConfig(
        format="%(levelname)s %(name)s: %(message)s",
        stream=stream,
        level=level,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a configured structlog logger instance."""
    return structlog.get_logger(name)
