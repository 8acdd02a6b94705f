"""Logging utilities for OpenWith."""

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(
    name: str, log_file: Path | None = None, level: int = logging.INFO
) -> logging.Logger:
    """Set up a logger with a console handler and an optional file handler.

    The console handler writes to stderr because stdout is reserved for the
    MCP stdio transport.

    Args:
        name: Logger name
        log_file: Optional file path for file logging
        level: Logging level

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid adding duplicate handlers
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def set_package_level(level: int) -> None:
    """Apply a logging level to every logger created under the package.

    Args:
        level: Logging level
    """
    for name, existing in logging.Logger.manager.loggerDict.items():
        if not isinstance(existing, logging.Logger):
            continue
        if name == "openwith" or name.startswith("openwith."):
            existing.setLevel(level)
            for handler in existing.handlers:
                handler.setLevel(level)
