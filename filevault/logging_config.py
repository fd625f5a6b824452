"""
Library logging configuration.

This module provides the shared logger used by every storage provider.
Operations log what they touched (paths, object keys) so failures can be
traced without the caller having to know which backend was in use.
"""
import logging
import sys

from filevault.config import settings


def setup_logging() -> logging.Logger:
    """
    Configure and return the library logger.

    The logger outputs to stdout with a structured format including:
    - Timestamp
    - Logger name
    - Log level
    - Message

    The level comes from the LOG_LEVEL setting (INFO by default).

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger("filevault")
    logger.setLevel(settings.LOG_LEVEL.upper())

    # Prevent duplicate handlers if called multiple times
    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(settings.LOG_LEVEL.upper())

        # Structured log format
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger
