"""Logger configuration for the broker."""

import sys

from loguru import logger

from .settings import LoggingConfig


def setup_logging(settings: LoggingConfig) -> None:
    """Configure loguru logger for console and optional file output.

    Sets up structured logging with:
    - Console output on stderr with colored output
    - File output with rotation and retention when a file path is configured
    - Configurable log level
    """

    # Remove default loguru handler
    logger.remove()

    if settings.to_console:
        logger.add(
            sink=sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
            level=settings.level,
            colorize=True,
        )

    # Add file handler if enabled
    if settings.file_path is not None:
        logger.add(
            sink=str(settings.file_path),
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            level=settings.level,
            rotation=settings.rotation,
            retention=settings.retention,
            compression="gz",  # Compress rotated logs
            enqueue=True,  # Thread-safe logging
        )

        logger.info(f"File logging enabled: {settings.file_path}")
        logger.info(f"Log level: {settings.level}")
