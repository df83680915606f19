"""Domain Entities - Enterprise Business Rules"""
from .camera import CameraConnection, CameraType
from .stream_session import SessionState, StreamSession

__all__ = ["CameraConnection", "CameraType", "SessionState", "StreamSession"]
