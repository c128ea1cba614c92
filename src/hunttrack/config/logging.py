"""Logging configuration for HuntTrack."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from hunttrack.config.paths import get_data_dir

LOGGER_NAME = "hunttrack"
LOG_FILENAME = "hunttrack.log"
MAX_BYTES = 5 * 1024 * 1024  # 5MB
BACKUP_COUNT = 3
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_log_path(portable: bool = False) -> Path:
    return get_data_dir(portable=portable) / LOG_FILENAME


def setup_logging(
    portable: bool = False,
    console: bool = True,
    level: int = logging.INFO,
) -> logging.Logger:
    """
    Attach handlers to the application logger.

    Calling it again replaces the previous handlers, so the CLI can
    configure logging once its arguments are known.

    Args:
        portable: Write the log file to the portable data directory
        console: Also log to stdout
        level: Minimum level for both handlers

    Returns:
        The application logger
    """
    logger = get_logger()
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    log_path = get_log_path(portable=portable)
    try:
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=MAX_BYTES,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
    except OSError as e:
        print(f"Warning: Could not create log file at {log_path}: {e}")
    else:
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def get_logger() -> logging.Logger:
    """Get the application logger. Handlers are attached by setup_logging()."""
    return logging.getLogger(LOGGER_NAME)
