"""
Tests for logging helpers.
"""

import io
import logging

from vector_analytics.utils.logging_config import get_logger, setup_logging


def test_get_logger_uses_package_namespace():
    assert get_logger("vector_analytics.algorithms.metrics").name == "vector_analytics.algorithms.metrics"
    assert get_logger("scratch").name == "vector_analytics.scratch"


def test_setup_logging_replaces_previous_handler():
    """Calling setup twice leaves a single installed handler."""
    package_logger = logging.getLogger("vector_analytics")
    first = logging.StreamHandler(io.StringIO())
    stream = io.StringIO()
    second = logging.StreamHandler(stream)
    try:
        setup_logging("DEBUG", handler=first)
        setup_logging("INFO", fmt="%(levelname)s %(message)s", handler=second)

        assert first not in package_logger.handlers
        assert second in package_logger.handlers
        assert package_logger.level == logging.INFO

        get_logger("tests").info("hello %d", 1)
        assert stream.getvalue().strip() == "INFO hello 1"
    finally:
        package_logger.removeHandler(first)
        package_logger.removeHandler(second)
        package_logger.setLevel(logging.NOTSET)
