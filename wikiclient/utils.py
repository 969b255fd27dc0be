"""Logging helpers"""

import logging
from pathlib import Path

from .config import WikiClientSettings


def setup_logging(settings: WikiClientSettings | None = None, level: str | None = None):
    """Setup logging configuration"""
    settings = settings or WikiClientSettings()
    log_level = (level or settings.log_level).upper()

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        # Create logs directory
        Path(settings.log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.log_file))

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format=settings.log_format,
        handlers=handlers,
        force=True,
    )

    return logging.getLogger("wikiclient")


def get_logger(name: str) -> logging.Logger:
    """Get logger for module"""
    return logging.getLogger(f"wikiclient.{name}")
