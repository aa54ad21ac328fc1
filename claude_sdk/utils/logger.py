import sys
from pathlib import Path
from loguru import logger

from claude_sdk.core.config import settings


def configure_logger(level: str | None = None):
    """Enable claude_sdk logging with console and optional file output."""
    level = (level or settings.log_level).upper()

    logger.remove()
    logger.enable("claude_sdk")

    logger.add(
        sys.stdout,
        level=level,
        colorize=True,
    )

    if settings.log_to_file:
        log_file = Path(settings.log_file_path)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            settings.log_file_path,
            level=level,
            rotation=settings.log_file_rotation,
            retention=settings.log_file_retention,
            compression=settings.log_file_compression,
            enqueue=True,
            encoding="utf-8",
        )
