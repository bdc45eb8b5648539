"""
Structured logging configuration for Variantly.

The library only emits structlog events; hosts and the CLI decide where they go.
"""

from __future__ import annotations

import logging
import sys

import structlog
from structlog.types import Processor

from variantly.core.config import get_settings


def setup_logging(level: str | None = None, json_format: bool | None = None) -> None:
    """
    Send Variantly's log events to stderr.

    Library code never calls this; hosts opt in once at startup. Loggers are
    not cached, so ``structlog.testing.capture_logs`` keeps working afterwards.

    Args:
        level: Minimum level (DEBUG, INFO, WARNING, ERROR, CRITICAL); defaults
            to ``VARIANTLY_LOG_LEVEL``
        json_format: One JSON object per line; defaults to ``VARIANTLY_LOG_FORMAT``
    """
    settings = get_settings().logging
    min_level = logging.getLevelName((level or settings.level).upper())
    if json_format is None:
        json_format = settings.format == "json"

    processors: list[Processor] = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_format:
        # Registry failures are logged with exc_info
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
