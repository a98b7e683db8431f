"""Logging setup for the Second Light service."""

import logging
import sys

from app.config import settings

LOGGER_NAME = "second_light"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging() -> logging.Logger:
    """Configure the service logger once and return it."""
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    service_logger = logging.getLogger(LOGGER_NAME)
    service_logger.setLevel(level)

    # Re-imports must not attach a second handler
    if not service_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        service_logger.addHandler(handler)

    return service_logger


def get_logger(name: str) -> logging.Logger:
    """Child logger for a component, e.g. ``get_logger("client")``."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


logger = setup_logging()
