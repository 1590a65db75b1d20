"""
Logging for monitor-sync.

Everything logs under the ``monitor_sync`` namespace. The console handler
carries the sync transitions a user watches for; the optional rotating file
keeps full DEBUG detail for a long-running daemon.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

ROOT_LOGGER = "monitor_sync"

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 3

FILE_FORMAT = logging.Formatter(
    "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
CONSOLE_FORMAT = logging.Formatter("%(levelname)s: %(message)s")


def _level(name: str) -> int:
    """Map a level name to its value, INFO for anything unrecognised."""
    return getattr(logging, name.upper(), logging.INFO)


def setup_logging(
    log_file: Path | None = None,
    level: str = "INFO",
    log_to_file: bool = True,
    console_level: str = "INFO",
) -> logging.Logger:
    """
    Configure the monitor_sync logger, replacing any earlier setup.

    Args:
        log_file: Rotating log file, or None for console only
        level: Level of the monitor_sync logger itself
        log_to_file: Whether ``log_file`` is used at all
        console_level: Minimum level echoed to stderr

    Returns:
        The monitor_sync logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(_level(level))
    logger.handlers.clear()
    logger.propagate = False

    if log_to_file and log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(FILE_FORMAT)
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(_level(console_level))
    console_handler.setFormatter(CONSOLE_FORMAT)
    logger.addHandler(console_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for one module, e.g. ``get_logger("server")``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
