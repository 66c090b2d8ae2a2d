"""Logging setup for the command line."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

from cain.config import LoggingSettings


def configure_logging(settings: LoggingSettings, *, verbose: bool = False) -> None:
    """Route ``cain`` loggers to stderr through a rich handler.

    Args:
        settings: Logging section of the effective configuration.
        verbose: Force DEBUG regardless of the configured level.
    """
    level = logging.DEBUG if verbose else logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.WARNING

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=settings.timestamps,
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger = logging.getLogger("cain")
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
