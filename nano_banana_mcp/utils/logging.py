from __future__ import annotations

import sys

from loguru import logger


def configure_logging(level: str = "INFO") -> None:
    """Route loguru to a single stderr sink.

    stdout carries the stdio transport, so nothing may be logged there.
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="{time:YYYY-MM-DD HH:mm:ss} {level} [{name}] {message}",
        backtrace=False,
        diagnose=False,
    )


__all__ = ["configure_logging"]
