"""Logging configuration."""

import logging
import sys
import os
from logging.handlers import RotatingFileHandler

from .config import settings


def setup_logging() -> None:
    """Configure logging for the application."""

    # Root logger - INFO by default to capture startup events
    # Use DEBUG=true in settings to enable verbose logging
    root_logger = logging.getLogger()

    # Avoid duplicate handlers (from Uvicorn reloader)
    if root_logger.handlers:
        root_logger.handlers.clear()

    root_logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)

    formatter = logging.Formatter(
        fmt='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if settings.debug else logging.INFO)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if settings.log_to_file:
        try:
            os.makedirs(settings.log_dir, exist_ok=True)

            log_file = os.path.join(settings.log_dir, "app.log")
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=10_000_000,  # 10MB
                backupCount=5
            )
            file_handler.setLevel(logging.INFO)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            # Console logging still works, so keep starting up
            root_logger.error(f"Failed to setup file logging in {settings.log_dir}: {e}")

    # Silence third-party libraries
    logging.getLogger("httpx").setLevel(logging.ERROR)
    logging.getLogger("asyncio").setLevel(logging.ERROR)
    logging.getLogger("google").setLevel(logging.WARNING)

    # Control verbose libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("fastapi").setLevel(logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """Get logger instance."""
    return logging.getLogger(name)
