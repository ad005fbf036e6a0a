"""
Logging configuration and utilities.

Every lagscript module logs through a child of the ``lagscript``
logger. Output of Lag ``print`` calls goes to
``lagscript.scripts.<module>``.
"""

import logging
import os
from typing import Optional

ROOT_LOGGER = "lagscript"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure logging for the lagscript package.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Defaults to $LAGSCRIPT_LOG_LEVEL, then INFO.
        log_file: Optional file path for log output

    Returns:
        The configured package logger
    """
    if level is None:
        level = os.environ.get("LAGSCRIPT_LOG_LEVEL", "INFO")

    log_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(log_level)

    # Remove existing handlers so repeated setup does not duplicate output
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a lagscript module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance under the ``lagscript`` hierarchy
    """
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def script_logger(module_name: str) -> logging.Logger:
    """The logger a transpiled Lag module writes its ``print`` output to."""
    return logging.getLogger(f"{ROOT_LOGGER}.scripts.{module_name}")
