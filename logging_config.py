"""
Centralized logging configuration for Thai Election 69 ballot forensics.

Usage:
    from logging_config import setup_logging, get_logger

    # Setup logging at application start
    setup_logging(level="INFO")

    # Get a logger in any module
    logger = get_logger(__name__)
    logger.info("Matching constituency boundaries...")
"""

import logging
import os
import sys
import time
from typing import Optional


# Log format with timestamp, level, module, and message
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty third-party loggers kept at WARNING
NOISY_LOGGERS = ("urllib3", "requests", "tenacity")


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to env var LOG_LEVEL or INFO.
        log_file: Optional path to log file. If provided, logs will also be written to file.
    """
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO")

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers = []

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    # Logs go to stderr so JSON written to stdout stays clean
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


class LogContext:
    """
    Context manager for timing pipeline stages.

    Usage:
        with LogContext(logger, "Building election lookups"):
            ...
    """

    def __init__(self, logger: logging.Logger, operation: str):
        self.logger = logger
        self.operation = operation
        self.start_time: Optional[float] = None
        self.elapsed: float = 0.0

    def __enter__(self) -> "LogContext":
        self.start_time = time.monotonic()
        self.logger.debug(f"Starting: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed = time.monotonic() - self.start_time
        if exc_type is None:
            self.logger.info(f"Completed: {self.operation} ({self.elapsed:.2f}s)")
        else:
            self.logger.error(f"Failed: {self.operation} ({self.elapsed:.2f}s) - {exc_val}")
        return False  # Don't suppress exceptions
