"""
Logging configuration for hostop.

The Textual dashboard owns the terminal, so console output is only enabled for
the JSON renderer; the dashboard logs to a file when one is given.
"""

import logging
import sys
from pathlib import Path

LOGGER_NAME = "hostop"


def setup_logger(
    level: int = logging.WARNING,
    log_file: Path | None = None,
    console: bool = False,
) -> logging.Logger:
    """
    Configure and return the package logger.

    Args:
        level: Logging level (default: WARNING)
        log_file: Optional file path for log output
        console: Also log to stderr

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(fmt="[%(levelname)s] %(message)s"))
        logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    # Prevent propagation to root logger
    logger.propagate = False

    return logger
