"""
Logging configuration using Loguru.

Features:
- Environment variable support (LOG_LEVEL, LOG_DIR)
- Colorized console output
- File logging with automatic rotation and retention
- Queued file sink: decodes and model loads log from executor threads while
  the event loop logs request handling; `enqueue=True` hands records to one
  writer thread so lines never interleave and rotation never races a write

Environment Variables:
- LOG_LEVEL: Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
  Example: export LOG_LEVEL=DEBUG && uvicorn speech_orchestrator.main:app
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, cast

from loguru import logger


LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LOG_LEVELS: tuple[LogLevel, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _normalize_level(raw_level: str, default: LogLevel) -> LogLevel:
    normalized = raw_level.upper()
    if normalized in LOG_LEVELS:
        return cast(LogLevel, normalized)
    return default


@dataclass
class LoggingSettings:
    """Logging configuration."""

    level: LogLevel = "INFO"
    console_format: str = (
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
        "<level>{message}</level>"
    )
    file_format: str = (
        "{time:YYYY-MM-DD HH:mm:ss} | "
        "{level: <8} | "
        "{name}:{function}:{line} - {message}"
    )
    log_dir: str = "logs"
    file_retention: str = "5 days"
    file_rotation: str = "10 MB"
    colorize: bool = True

    @classmethod
    def from_env(cls) -> "LoggingSettings":
        """
        Load logging settings from environment variables.

        Environment Variables:
            LOG_LEVEL: Logging level (default: INFO)
            LOG_DIR: Directory for the rotating log file (default: logs)

        Returns:
            LoggingSettings instance with values from environment
        """
        return cls(
            level=_normalize_level(os.getenv("LOG_LEVEL", "INFO"), "INFO"),
            log_dir=os.getenv("LOG_DIR", "logs"),
        )


def setup_logging(settings: LoggingSettings | None = None) -> None:
    """
    Configure loguru with console and file sinks.

    Args:
        settings: LoggingSettings instance. If None, loads from environment.

    Notes:
        - Removes default loguru handler to avoid duplicates
        - Adds colorized console output (stderr, stdout carries CLI output)
        - Adds file output with automatic rotation and retention
    """
    if settings is None:
        settings = LoggingSettings.from_env()

    # Remove default handler
    logger.remove()

    # Console sink - colorized, human-readable
    logger.add(
        sys.stderr,
        level=settings.level,
        format=settings.console_format,
        colorize=settings.colorize,
        backtrace=True,
        diagnose=False,
    )

    # File sink - detailed, with rotation and retention
    log_path = Path(settings.log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    logger.add(
        log_path / "speech_orchestrator.log",
        level=settings.level,
        format=settings.file_format,
        rotation=settings.file_rotation,
        retention=settings.file_retention,
        backtrace=True,
        diagnose=False,
        compression="zip",  # Compress rotated logs
        enqueue=True,  # executor threads and the event loop share this sink
    )

    logger.info(f"Logging initialized at level: {settings.level}")
    logger.debug(f"Log directory: {log_path.resolve()}")


# Initialize logging on import
setup_logging()

# Export logger for use throughout application
__all__ = ["logger", "setup_logging", "LoggingSettings"]
