"""Centralized logging configuration for utiltools.

Sets up standard Python logging with the configured level, format and
handlers (console, optional file).
"""

import logging
import sys
from typing import Optional, Union

from utiltools.infrastructure.config.settings import DEFAULT_LOG_FORMAT

DEFAULT_LOG_LEVEL = logging.INFO


def resolve_log_level(level: Union[int, str]) -> int:
    """Accepts logging.DEBUG or names like 'debug'; unknown names fall back to INFO."""
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), DEFAULT_LOG_LEVEL)


def setup_logging(
    log_level: Union[int, str] = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = None,
    stream=None,
) -> None:
    """Configures the root logger for the application.

    Args:
        log_level: The minimum logging level (e.g., logging.DEBUG or 'DEBUG').
        log_format: The format string for log messages.
        log_file: Optional path to a file for logging output.
        stream: Console stream; stderr by default so stdout carries only results.
    """
    level = resolve_log_level(log_level)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
            logging.info(f"Logging to file: {log_file}")
        except OSError as e:
            logging.error(f"Failed to set up file logging to {log_file}: {e}", exc_info=True)

    logging.debug(f"Logging configured. Level={logging.getLevelName(level)}")
