"""
Centralized logging configuration for the exam grading service.

Provides structured JSON logging with correlation ID support for production observability.
"""

import sys
from pathlib import Path
from typing import Optional
from loguru import logger


def setup_structured_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    serialize: bool = True
) -> None:
    """
    Configure structured JSON logging with Loguru.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file (for local development)
        serialize: Emit JSON records on stdout (disable for human-readable output)
    """
    # Remove default handler
    logger.remove()

    # serialize=True outputs full JSON with all extra fields in "record.extra"
    logger.add(
        sys.stdout,
        serialize=serialize,
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {name} | {message}",
        level=level.upper(),
        enqueue=True,
        backtrace=True,
        diagnose=False  # never dump local variables (student answers) into logs
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_path,
            serialize=True,
            level="DEBUG",
            rotation="10 MB",
            retention="30 days",
            compression="zip"
        )

    # Suppress noisy third-party loggers
    logger.disable("httpx")
    logger.disable("httpcore")
    logger.disable("openai")
