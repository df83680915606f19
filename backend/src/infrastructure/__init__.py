"""Infrastructure Layer - External interfaces and implementations."""

from .encoder import FFmpegSupervisor
from .memory import SessionRegistry
from .rtsp import ConnectivityProber
from .storage import SegmentPublisher

__all__ = [
    "FFmpegSupervisor",
    "SessionRegistry",
    "ConnectivityProber",
    "SegmentPublisher",
]
