"""
Logging configuration

Modules log through ``logging.getLogger(__name__)``; every such logger lives
under the ``opsboard`` namespace, so configuring that one parent logger at
startup routes all application records to stdout.
"""
import logging
import sys
from opsboard.config import get_settings

settings = get_settings()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
ROOT_LOGGER = "opsboard"


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Get a configured logger instance"""
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
    return logger


def setup_logging() -> logging.Logger:
    """Attach the stdout handler to the package logger (idempotent)"""
    logger = get_logger(ROOT_LOGGER)
    # uvicorn installs its own root handlers; avoid printing records twice
    logger.propagate = False
    return logger
