# zotloom/log_config.py
"""Logging configuration for the zotloom library using Loguru.

The library logs through the shared Loguru ``logger``. Applications embedding
zotloom call :func:`configure_logging` once (``ZoteroSession`` does so from
its settings) to pick a level and a sink.
"""

import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def configure_logging(level: str = "INFO", sink=sys.stderr):
    """
    Configures the Loguru logger for zotloom.

    Removes existing handlers and adds a single handler with the given level
    and sink. Colours are only used when writing to stderr, since the process
    may be speaking a protocol over stdout.

    Args:
        level: The minimum logging level (e.g., "DEBUG", "INFO", "WARNING").
        sink: The output sink (e.g., sys.stderr, a file path, a stream).
    """
    logger.remove()
    logger.add(
        sink,
        level=level.upper(),
        format=LOG_FORMAT,
        colorize=sink is sys.stderr,
        backtrace=True,
        diagnose=False,
    )
    logger.debug(f"zotloom logging configured with level={level.upper()}")


__all__ = ["LOG_FORMAT", "configure_logging", "logger"]
