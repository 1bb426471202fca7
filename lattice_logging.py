"""
Centralised logging for the fractal lattice tools.

Library modules only call get_logger(); handlers are installed once by
setup_logging(), normally from the command line entry point.
"""

import logging
import sys
import time
from typing import Optional


LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class UTCFormatter(logging.Formatter):
    """Formatter that stamps records in UTC."""
    converter = time.gmtime


def setup_logging(
    debug_mode: bool = False,
    level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure the root logger.

    Args:
        debug_mode: Log at DEBUG with logger names (overrides level)
        level: Level name ("DEBUG", "INFO", ...); INFO when not given
        log_file: Optional file that receives the same records
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if debug_mode:
        log_level = logging.DEBUG
    elif level:
        log_level = _LEVELS.get(level.upper(), logging.INFO)
    else:
        log_level = logging.INFO
    root_logger.setLevel(log_level)

    formatter = UTCFormatter(DEBUG_LOG_FORMAT if debug_mode else LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a module logger (the package logger when name is None)."""
    return logging.getLogger(name or "fractal_lattice")


def log_performance(operation: str, duration: float, **kwargs) -> None:
    """Log how long an operation took, with optional key=value details."""
    details = ", ".join(f"{key}={value}" for key, value in kwargs.items())
    message = f"{operation} took {duration:.3f}s"
    if details:
        message += f" ({details})"
    get_logger("fractal_lattice.performance").info(message)
