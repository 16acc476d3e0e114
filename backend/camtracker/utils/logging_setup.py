# backend/camtracker/utils/logging_setup.py
"""
Loguru sink configuration.

Called once from the application lifespan. Everything else in the codebase
simply does ``from loguru import logger``.
"""

import sys
from pathlib import Path

from loguru import logger

from ..config import Settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time} | {level} | {name}:{function}:{line} - {message}"


def configure_logging(settings: Settings) -> None:
    """Replace loguru's default handler with console (and optional file) sinks."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level.value,
        format=CONSOLE_FORMAT,
        backtrace=False,
        diagnose=settings.environment == "development",
    )

    if settings.log_file:
        log_path = Path(settings.log_file)
        if not log_path.is_absolute():
            log_path = settings.logs_directory / log_path
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_path),
            level=settings.log_level.value,
            format=FILE_FORMAT,
            rotation="10 MB",
            retention="7 days",
            compression="gz",
            enqueue=True,
        )

    logger.info(f"📝 Logging configured (level={settings.log_level.value})")
