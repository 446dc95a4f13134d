"""Logging configuration for the Hobby Clubs notifier."""

import logging
import sys
from datetime import datetime

from config import LOG_DIR, LOG_LEVEL

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Library loggers that log every request or job run at INFO
QUIET_LOGGERS = ["httpx", "apscheduler", "discord"]


def _level() -> int:
    level = logging.getLevelName(LOG_LEVEL.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging() -> logging.Logger:
    """Configure the "hobbyclubs" logger: dated file under LOG_DIR, console on a tty."""
    level = _level()
    logger = logging.getLogger("hobbyclubs")
    logger.setLevel(level)
    logger.handlers.clear()

    log_file = LOG_DIR / f"{datetime.now().strftime('%Y-%m-%d')}.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(file_handler)

    if sys.stdout is not None and sys.stdout.isatty():
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(message)s",
            datefmt="%H:%M:%S"
        ))
        logger.addHandler(console_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return logger


# Global logger instance
logger = setup_logging()
