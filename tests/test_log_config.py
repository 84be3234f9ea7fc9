import sys
from io import StringIO

import pytest
from loguru import logger

from zotloom.log_config import configure_logging


def test_configure_logging_default_level_and_sink():
    """Test configure_logging with default INFO level and stderr sink."""
    logger.remove()  # Ensure clean state

    configure_logging()  # Defaults to INFO and sys.stderr

    assert len(logger._core.handlers) == 1
    handler_id = list(logger._core.handlers.keys())[-1]
    handler = logger._core.handlers[handler_id]
    assert handler._levelno == logger.level("INFO").no


@pytest.mark.parametrize("level", ["DEBUG", "warning", "TRACE"])
def test_configure_logging_custom_level(level):
    """Test configure_logging accepts levels case-insensitively."""
    logger.remove()
    configure_logging(level=level)
    handler_id = list(logger._core.handlers.keys())[-1]
    handler = logger._core.handlers[handler_id]
    assert handler._levelno == logger.level(level.upper()).no


def test_configure_logging_removes_existing_handlers():
    """Test that configure_logging removes pre-existing handlers."""
    logger.remove()
    dummy_sink = lambda _: None
    logger.add(dummy_sink, level="ERROR")
    assert len(logger._core.handlers) == 1

    configure_logging(level="INFO")  # This should remove the dummy handler

    assert len(logger._core.handlers) == 1


def test_configure_logging_custom_sink_filters_by_level():
    """Test messages reach a custom sink, formatted and filtered by level."""
    stream = StringIO()
    configure_logging(level="WARNING", sink=stream)

    logger.info("quiet message")
    logger.warning("loud message")

    output = stream.getvalue()
    assert "quiet message" not in output
    assert "loud message" in output
    assert "| WARNING  |" in output
    # No colour codes outside stderr.
    assert "\x1b[" not in output


@pytest.fixture(autouse=True)
def reset_logger_after_test():
    """Fixture to reset Loguru to a default state after each test in this module."""
    yield
    logger.remove()
    logger.add(sys.stderr, level="INFO")  # Restore a basic default handler
