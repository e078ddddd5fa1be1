"""Logging utilities for boxinit.

This module provides a standalone structlog logger factory for supervisor
diagnostics. The logger writes to stderr and, optionally, appends to a log
file, in either JSON or text format. It does not modify global structlog
configuration.
"""

import itertools
import logging
import sys
from os import getenv
from pathlib import Path
from typing import TYPE_CHECKING, Literal, TextIO, cast

import structlog

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

LogFormatType = Literal["json", "text"]

DEBUG_ENV_VAR = "BOXINIT_DEBUG"

_logger_ids = itertools.count()


def _log_level_from_string(level: str, *, respect_env: bool = True) -> int:
    """Convert a log level string to a logging level integer.

    Args:
        level: Log level string (debug, info, warning, error).
        respect_env: If True, BOXINIT_DEBUG overrides to DEBUG level.

    Returns:
        The logging level as an integer.
    """
    if respect_env and getenv(DEBUG_ENV_VAR, None):
        return logging.DEBUG

    log_levels = logging.getLevelNamesMapping()
    return log_levels.get(level.upper(), logging.INFO)


def create_supervisor_logger(
    level: str = "info",
    log_format: LogFormatType = "text",
    log_file: str | Path | None = None,
    *,
    stream: TextIO | None = None,
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create the logger for supervisor diagnostics.

    The log level is determined by (in order of precedence):
    1. BOXINIT_DEBUG environment variable (if set, enables DEBUG level)
    2. The ``level`` parameter

    Args:
        level: Log level string (debug, info, warning, error).
        log_format: Output format, either "json" or "text".
        log_file: File to append log lines to, in addition to the stream.
            Empty or None disables file logging.
        stream: Stream to write to. Defaults to stderr.

    Returns:
        A FilteringBoundLogger instance.
    """
    effective_level = _log_level_from_string(level)

    # A fresh stdlib logger per call so repeated calls do not stack handlers
    stdlib_logger = logging.getLogger(f"boxinit.supervisor.{next(_logger_ids)}")
    stdlib_logger.handlers.clear()
    stdlib_logger.propagate = False
    stdlib_logger.setLevel(effective_level)

    handlers: list[logging.Handler] = [
        logging.StreamHandler(stream if stream is not None else sys.stderr)
    ]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, mode="a", encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(effective_level)
        # structlog renders the line; the handler only writes it
        handler.setFormatter(logging.Formatter("%(message)s"))
        stdlib_logger.addHandler(handler)

    processors: list[structlog.typing.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_format == "json":
        processors.append(structlog.processors.dict_tracebacks)
        processors.append(structlog.processors.JSONRenderer())
    else:
        # Text format: "timestamp [level] event key=value ..."
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            stdlib_logger,
            processors=processors,
            wrapper_class=structlog.make_filtering_bound_logger(effective_level),
            context_class=dict,
        ),
    )
