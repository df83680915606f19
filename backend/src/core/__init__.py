"""Core module for configuration, logging and errors."""

from .config import settings
from .logger import setup_logging, get_logger

__all__ = ["settings", "setup_logging", "get_logger"]
