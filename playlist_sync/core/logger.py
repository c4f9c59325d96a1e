"""
Logging configuration for playlist-sync.

This module sets up the logging system with up to three outputs:
    - Console: colored level names (colorama), compact format
    - sync_full.log: complete log of all events (DEBUG and above), rotated
    - sync_errors.log: only ERROR and CRITICAL level messages

Log File Locations:
    Log files are written to the directory given to setup_logging()
    (logging.log_directory in config.yaml). Without a directory only the
    console handler is installed.

Usage:
    from playlist_sync.core.logger import setup_logging, get_logger

    setup_logging("INFO", log_directory)  # Call once at startup
    logger = get_logger(__name__)        # Get logger for each module

    logger.info("Pulled remote snapshot")
"""

import functools
import logging
import logging.handlers
import sys
import time
from pathlib import Path

import colorama
from colorama import Fore, Style


# Initialize colorama for Windows compatibility
colorama.init()


LOG_FULL_FILENAME = "sync_full.log"
LOG_ERRORS_FILENAME = "sync_errors.log"

# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Log format for console output
CONSOLE_LOG_FORMAT = "%(levelname)s: %(message)s"

LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 3

# Third-party loggers that are too chatty at DEBUG
QUIET_LOGGERS = ("aiohttp.access", "asyncio")


class ColoredFormatter(logging.Formatter):
    """
    Formatter that colors the level name on the console.

    Colors:
        - DEBUG: Cyan
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bright Red
    """

    COLORS = {
        "DEBUG": Fore.CYAN,
        "INFO": Fore.GREEN,
        "WARNING": Fore.YELLOW,
        "ERROR": Fore.RED,
        "CRITICAL": Fore.RED + Style.BRIGHT,
    }

    def __init__(self, fmt: str | None = None, use_colors: bool = True) -> None:
        super().__init__(fmt or CONSOLE_LOG_FORMAT)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with a colored level name."""
        if not self.use_colors or record.levelname not in self.COLORS:
            return super().format(record)

        # Copy so file handlers still see the plain level name
        record_copy = logging.makeLogRecord(record.__dict__)
        record_copy.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{Style.RESET_ALL}"
        return super().format(record_copy)


class ErrorOnlyFilter(logging.Filter):
    """
    Filter that only allows ERROR and CRITICAL level records.

    Used by the error log file handler to exclude DEBUG, INFO, and WARNING.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(
    level: str = "INFO",
    log_directory: Path | None = None,
    colored: bool = True,
) -> None:
    """
    Configure the root logger for the application.

    Args:
        level: Console logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_directory: Directory for the full and error log files.
                       Created if missing. None disables file logging.
        colored: Whether console level names are colored.

    Behavior:
        1. Clear existing root handlers (safe to call more than once)
        2. Install console handler at the requested level
        3. If log_directory is given, install rotating full log (DEBUG)
           and error-only log
        4. Quiet noisy third-party loggers
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture everything, filter at handler level

    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(ColoredFormatter(use_colors=colored))
    root_logger.addHandler(console_handler)

    if log_directory is not None:
        log_directory = Path(log_directory).expanduser()
        log_directory.mkdir(parents=True, exist_ok=True)
        file_formatter = logging.Formatter(FILE_LOG_FORMAT, datefmt=FILE_DATE_FORMAT)

        full_handler = logging.handlers.RotatingFileHandler(
            log_directory / LOG_FULL_FILENAME,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        full_handler.setLevel(logging.DEBUG)
        full_handler.setFormatter(file_formatter)
        root_logger.addHandler(full_handler)

        error_handler = logging.FileHandler(
            log_directory / LOG_ERRORS_FILENAME, mode="a", encoding="utf-8"
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.addFilter(ErrorOnlyFilter())
        error_handler.setFormatter(file_formatter)
        root_logger.addHandler(error_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("playlist_sync").debug(
        f"Logging initialized - Level: {level}, Directory: {log_directory}"
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Usually __name__ of the calling module.

    Returns:
        Standard library logger; handlers are inherited from the root logger.
    """
    return logging.getLogger(name)


def shutdown_logging() -> None:
    """
    Flush, close and remove every root handler.

    Called at CLI exit. After calling this function, logging output is
    discarded until setup_logging() runs again.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except (OSError, ValueError):
            pass
        root_logger.removeHandler(handler)


def log_performance(func):
    """Decorator to log function duration at DEBUG level."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = get_logger(func.__module__)
        start_time = time.perf_counter()

        try:
            result = func(*args, **kwargs)
            duration = time.perf_counter() - start_time
            logger.debug(f"{func.__name__} completed in {duration:.3f}s")
            return result
        except Exception as e:
            duration = time.perf_counter() - start_time
            logger.debug(f"{func.__name__} failed after {duration:.3f}s: {e}")
            raise

    return wrapper
