"""Logging helpers shared by every backend module."""

from __future__ import annotations

import logging

from ..config import Settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

__all__ = ["configure_logging", "get_logger"]


def configure_logging(settings: Settings) -> None:
    """Install the root handler once at application startup."""

    level = logging.getLevelName(settings.log_level)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        force=True,
    )
    # The SDK logs every request at INFO; keep our own events readable.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    logging.getLogger("google_genai").setLevel(max(level, logging.WARNING))
    get_logger(__name__).info(
        "logging_configured",
        extra={"level": logging.getLevelName(level), "environment": settings.environment},
    )


def get_logger(name: str) -> logging.Logger:
    """Return a module logger; structured fields travel through ``extra``."""

    return logging.getLogger(name)
