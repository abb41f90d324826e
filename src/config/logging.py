"""Logging setup for the service process."""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO", logger_name: str = "src") -> logging.Logger:
    """
    Attach a single stdout handler to the application logger.

    Module loggers are created with logging.getLogger(__name__), so they all
    live under the "src" namespace and inherit this handler. Calling this
    twice replaces the handler instead of duplicating output.
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(level.upper())

    if logger.handlers:
        logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    return logger
