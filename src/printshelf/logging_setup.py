"""Logging configuration shared by the CLI and long-running services."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from printshelf.config.models import LoggingSettings

_HANDLER_MARKER = "_printshelf_handler"


def configure_logging(settings: LoggingSettings, *, console: Console | None = None) -> None:
    """Install console and rotating-file handlers on the ``printshelf`` logger.

    Calling this again replaces the handlers it installed earlier, so the CLI can
    reconfigure after loading overrides.

    Args:
        settings: Level, rotation size, backup count, and file location.
        console: Optional rich console used for stderr output.
    """
    logger = logging.getLogger("printshelf")
    level = logging.getLevelName(settings.level.upper())
    logger.setLevel(level if isinstance(level, int) else logging.WARNING)

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            logger.removeHandler(handler)
            handler.close()

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    setattr(rich_handler, _HANDLER_MARKER, True)
    logger.addHandler(rich_handler)

    if settings.file:
        log_path = Path(settings.file).expanduser()
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_path,
                maxBytes=max(1, settings.max_size_mb) * 1024 * 1024,
                backupCount=max(0, settings.backup_count),
                encoding="utf-8",
            )
        except OSError as exc:
            logger.warning("File logging disabled; cannot open %s: %s", log_path, exc)
        else:
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
            )
            setattr(file_handler, _HANDLER_MARKER, True)
            logger.addHandler(file_handler)


__all__ = ["configure_logging"]
