"""
Logging configuration utilities for the Citadel client.

Log output goes to stderr so that command results printed on stdout stay
clean.
"""

import logging
import sys
from typing import Optional, TextIO


CLIENT_LOGGERS = ('src.citadel', 'src.tui')


def setup_logger(
    name: str,
    level: int = logging.INFO,
    format_string: Optional[str] = None,
    include_timestamp: bool = True,
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """
    Set up a logger with consistent formatting.

    Args:
        name: Logger name
        level: Logging level
        format_string: Custom format string
        include_timestamp: Whether to include timestamp in logs
        stream: Output stream, stderr by default

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Already configured, keep its level and handlers
    if logger.handlers:
        return logger

    logger.setLevel(level)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)

    if format_string is None:
        if include_timestamp:
            format_string = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        else:
            format_string = '%(name)s - %(levelname)s - %(message)s'

    handler.setFormatter(logging.Formatter(format_string))
    logger.addHandler(handler)

    return logger


def set_global_log_level(level: int) -> None:
    """
    Set the logging level for the root logger and the client loggers.

    Args:
        level: Logging level (e.g., logging.DEBUG, logging.INFO)
    """
    logging.getLogger().setLevel(level)

    for logger_name in CLIENT_LOGGERS:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)

    # Session loggers are children of the client loggers
    for name, logger in logging.Logger.manager.loggerDict.items():
        if isinstance(logger, logging.Logger) and name.startswith(CLIENT_LOGGERS):
            logger.setLevel(level)
            for handler in logger.handlers:
                handler.setLevel(level)


def configure_debug_logging() -> None:
    """Configure debug-level logging, including every protocol line."""
    set_global_log_level(logging.DEBUG)

    debug_format = logging.Formatter('%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s')

    for name, logger in logging.Logger.manager.loggerDict.items():
        if isinstance(logger, logging.Logger) and name.startswith(CLIENT_LOGGERS):
            for handler in logger.handlers:
                handler.setFormatter(debug_format)


def silence_external_loggers() -> None:
    """Silence noisy external library loggers."""
    logging.getLogger('rich').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)
