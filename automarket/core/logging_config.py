"""
Logging setup for AutoMarket.

Everything logs under the "automarket" logger tree. setup_logging attaches a
coloured console handler and, unless disabled, a rotating run log plus an
errors-only log next to it. Status events published during a run go to
"automarket.status" so they land in the same files.
"""

import os
import sys
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

STATUS_LOGGER = "automarket.status"


class ColoredFormatter(logging.Formatter):
    """Console formatter that colours the level name."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        # Other handlers see the same record object
        colored = logging.makeLogRecord(record.__dict__)
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


def default_log_dir() -> Path:
    return Path(os.getenv("LOG_DIR", Path.cwd() / "logs"))


def _rotating_handler(path: Path, level: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(
    name: str = "automarket",
    debug: bool = False,
    log_dir: Optional[Path] = None,
    to_file: bool = True,
) -> logging.Logger:
    """
    Configure and return the logger `name`.

    Args:
        name: Logger to configure; also the log file stem
        debug: Use DEBUG instead of LOG_LEVEL
        log_dir: Where log files go (default: LOG_DIR or ./logs)
        to_file: Also write {name}.log and {name}_errors.log

    Calling it again only updates the level.
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG if debug else getattr(logging, LOG_LEVEL, logging.INFO))

    if logger.handlers:
        return logger

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.DEBUG)
    console.setFormatter(ColoredFormatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(console)

    if to_file:
        directory = Path(log_dir) if log_dir else default_log_dir()
        directory.mkdir(parents=True, exist_ok=True)
        logger.addHandler(_rotating_handler(directory / f"{name}.log", logging.DEBUG))
        logger.addHandler(_rotating_handler(directory / f"{name}_errors.log", logging.ERROR))

    logger.debug(f"Logging configured for {name} (debug={debug}, to_file={to_file})")
    return logger


def log_status(message: str):
    """Record a run status event."""
    logging.getLogger(STATUS_LOGGER).info(message)
