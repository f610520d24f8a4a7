"""structlog setup for the command line."""

import logging
import sys
from typing import Any

import structlog


def _stderr_logger_factory(*args: Any) -> structlog.PrintLogger:
    # Looked up per logger so a swapped sys.stderr (tests, redirection) is honoured
    return structlog.PrintLogger(file=sys.stderr)


def configure_default_logging() -> None:
    """Send warnings and above to stderr unless structlog is already configured.

    Runs on package import so library use never writes log lines to stdout.
    """
    if not structlog.is_configured():
        configure_logging()


def configure_logging(level: str = "WARNING", fmt: str = "console") -> None:
    """Configure structlog to write to stderr.

    Args:
        level: Minimum log level name (DEBUG, INFO, WARNING, ...)
        fmt: ``console`` for human readable output, ``json`` for JSON lines
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level}")

    renderer = structlog.processors.JSONRenderer() if fmt == "json" else structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=_stderr_logger_factory,
        cache_logger_on_first_use=False,
    )
