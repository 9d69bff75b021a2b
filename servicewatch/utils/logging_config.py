"""
ServiceWatch - Logging Configuration

Console plus rotating-file logging for the command line and any embedding
application. Log lines go to stderr so that `--list` output on stdout stays
pipeable.
"""

import logging
import logging.handlers
import sys
from pathlib import Path

PACKAGE_LOGGER = "servicewatch"
DEFAULT_LOG_FILE = "servicewatch.log"

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that flood DEBUG output during a preload fan-out
QUIET_LOGGERS = ("aiohttp", "aiohttp.access", "aiohttp.client", "asyncio")


def _file_handler(log_path: Path) -> logging.Handler:
    """Rotating handler that always records DEBUG detail."""
    handler = logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8"
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(
    verbose: bool = False,
    log_dir: Path = Path("data/logs"),
    log_file: str = DEFAULT_LOG_FILE
) -> logging.Logger:
    """
    Configure the root logger for a ServiceWatch run.

    Args:
        verbose: Show DEBUG lines (per-fetch cache hits and misses) on the console
        log_dir: Directory for the rotating log file, created if missing
        log_file: Log file name inside log_dir

    Returns:
        The package logger
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    console_level = logging.DEBUG if verbose else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(console_handler)
    root_logger.addHandler(_file_handler(log_dir / log_file))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(logging.DEBUG)
    return package_logger
