"""Logging handler setup used by the CLI."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from assetroute.config.models import LoggingSettings

_FILE_FORMAT = "%(asctime)s [%(name)s] %(levelname)s %(funcName)s:%(lineno)d - %(message)s"


def configure_logging(settings: LoggingSettings, *, verbose: bool = False) -> logging.Logger:
    """Install console and optional rotating file handlers on the package logger.

    Args:
        settings: Logging section of the active configuration.
        verbose: Force DEBUG level regardless of ``settings.level``.

    Returns:
        logging.Logger: The configured ``assetroute`` logger.
    """
    logger = logging.getLogger("assetroute")
    level = logging.DEBUG if verbose else logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if settings.file:
        log_path = Path(settings.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=settings.max_size_mb * 1024 * 1024,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


__all__ = ["configure_logging"]
