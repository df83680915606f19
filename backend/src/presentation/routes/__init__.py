"""Presentation routes package."""

from .stream_routes import router as stream_router
from .media_routes import router as media_router
from .camera_routes import router as camera_router


__all__ = ['stream_router', 'media_router', 'camera_router']
