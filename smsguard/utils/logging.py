"""
Logging utilities for SMSGuard.

Author: Yobie Benjamin
Date: 2026-10-19
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def configure_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    format: Optional[str] = None,
) -> None:
    """
    Configure the process-wide loguru sinks.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Path to log file
        rotation: Log rotation size/time
        retention: Log retention period
        format: Log format string
    """
    # Remove default handler
    logger.remove()

    format = format or DEFAULT_FORMAT

    logger.add(
        sys.stderr,
        format=format,
        level=level,
        colorize=True,
    )

    if log_file:
        logger.add(
            log_file,
            format=format,
            level=level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            enqueue=True,
        )


def configure_from_settings(settings) -> None:
    """Configure logging from `SMSGuardSettings.observability`."""
    obs = settings.observability
    configure_logging(
        level=obs.log_level,
        log_file=obs.log_file,
        rotation=obs.log_rotation,
        retention=obs.log_retention,
    )


def preview(text: Optional[str], limit: int = 100) -> str:
    """Shorten text for log output."""
    if text is None:
        return ""
    if len(text) > limit:
        return text[:limit] + "..."
    return text
