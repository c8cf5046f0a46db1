"""
Logging helpers for Vector Analytics.

Modules obtain their logger with ``get_logger(__name__)``. Nothing is
configured at import time; applications (or notebooks) call
``setup_logging()`` once to attach a console handler.

Usage:
    from vector_analytics.utils.logging_config import get_logger, setup_logging

    setup_logging("DEBUG")
    logger = get_logger(__name__)
    logger.info("Running k-means with k=%d", k)
"""

import logging
from typing import Optional, Union

PACKAGE_LOGGER_NAME = "vector_analytics"
DEFAULT_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger inside the package namespace.

    Args:
        name: Usually ``__name__`` of the calling module

    Returns:
        Logger whose records propagate to the package logger
    """
    if name != PACKAGE_LOGGER_NAME and not name.startswith(PACKAGE_LOGGER_NAME + "."):
        name = f"{PACKAGE_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def setup_logging(
    level: Union[int, str] = logging.INFO,
    fmt: str = DEFAULT_FORMAT,
    handler: Optional[logging.Handler] = None,
) -> logging.Logger:
    """
    Attach a handler to the package logger.

    Calling this more than once replaces the handler installed previously
    instead of stacking duplicates.

    Args:
        level: Logging level name or number
        fmt: Format string for the handler
        handler: Handler to install (default: a StreamHandler on stderr)

    Returns:
        The configured package logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown logging level: {level}")

    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    for existing in list(logger.handlers):
        if getattr(existing, "_vector_analytics_handler", False):
            logger.removeHandler(existing)

    handler = handler or logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt))
    handler._vector_analytics_handler = True
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger
