"""
Centralized Logging Module for stringpool.

Provides consistent logging across all modules with output to:
- Console (always, level configurable)
- File (optional, for keeping a record of extract/update runs)
"""
import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(funcName)s() | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER_NAME = "stringpool"


def get_logger(name: str) -> logging.Logger:
    """
    Returns a named logger under the stringpool hierarchy.

    Handlers live on the package root logger (see configure_logging), so module
    loggers only need a name.

    Args:
        name: Usually __name__ of the calling module.
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Attaches console (and optionally file) handlers to the package root logger.

    Calling it again replaces the previous handlers instead of stacking them.

    Args:
        level: Minimum level for the console handler, e.g. "DEBUG" or "WARNING".
        log_file: Optional path of a UTF-8 log file that captures DEBUG and above.

    Returns:
        The configured package root logger.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    root.setLevel(logging.DEBUG)
    root.propagate = False

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    root.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        root.addHandler(file_handler)

    return root


def setup_exception_hook():
    """
    Installs a global exception hook to log uncaught exceptions before exit.
    Call this once at CLI startup.
    """
    crash_logger = get_logger("crash")

    def exception_hook(exc_type, exc_value, exc_tb):
        if issubclass(exc_type, KeyboardInterrupt):
            # Allow Ctrl+C to exit without logging
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return
        crash_logger.critical("Uncaught exception!", exc_info=(exc_type, exc_value, exc_tb))
        sys.__excepthook__(exc_type, exc_value, exc_tb)

    sys.excepthook = exception_hook
