"""Shared logging configuration for all functions.

Every function module logs through the standard library logger hierarchy;
this module only decides the root handler, format and level once per
process (CLI entry point or deployment wrapper).
"""

from __future__ import annotations
import logging
import os
import sys
from typing import Iterable, Optional

_DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_COMPACT_FORMAT = "[%(levelname)s] %(name)s: %(message)s"

# The Gemini SDK logs every request at INFO through httpx.
_NOISY_LOGGERS = ("urllib3", "httpx", "httpcore", "google_genai", "google.auth")


def setup_logging(
    level: Optional[str] = None,
    format_string: Optional[str] = None,
    include_timestamp: bool = True,
    quiet_loggers: Iterable[str] = _NOISY_LOGGERS,
) -> None:
    """Configure root logger with a stdout handler.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               If None, reads from LOG_LEVEL env var or defaults to INFO.
        format_string: Custom format string. If None, uses default format.
        include_timestamp: Whether to include timestamp in log messages.
        quiet_loggers: Third-party logger names pinned to WARNING.

    Example:
        >>> setup_logging(level="DEBUG")
        >>> logger = get_logger(__name__)
        >>> logger.debug("Debug message")
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    level = level.upper()

    if format_string is None:
        format_string = _DEFAULT_FORMAT if include_timestamp else _COMPACT_FORMAT

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=format_string,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )

    for logger_name in quiet_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Return a named logger, optionally overriding its level."""
    logger = logging.getLogger(name)

    if level:
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    return logger
