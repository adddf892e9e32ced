"""Structured logging configuration.

This module initializes structlog with a stable JSON event format.
Pipeline stages log snake_case events with keyword context fields.
"""

from __future__ import annotations

import sys
from typing import Any

import structlog


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger writing JSON events to stderr.
    """
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=_stderr_logger_factory,
        cache_logger_on_first_use=False,
    )
    return structlog.get_logger(name)


def _stderr_logger_factory(*_args: Any) -> structlog.PrintLogger:
    """Build a print logger bound to the current stderr stream.

    stdout is reserved for command output such as NDJSON records.
    """
    return structlog.PrintLogger(file=sys.stderr)
