"""Use Cases - Application Business Rules"""
from .camera_use_cases import (
    GetCameraUseCase,
    ListCamerasUseCase,
)
from .stream_use_cases import (
    GetOrStartStreamUseCase,
    GetStreamStatusUseCase,
    ListStreamsUseCase,
    StopAllStreamsUseCase,
    StopStreamUseCase,
    StreamStartResult,
    TestStreamConnectionUseCase,
)

__all__ = [
    "GetCameraUseCase",
    "ListCamerasUseCase",
    "GetOrStartStreamUseCase",
    "GetStreamStatusUseCase",
    "ListStreamsUseCase",
    "StopAllStreamsUseCase",
    "StopStreamUseCase",
    "StreamStartResult",
    "TestStreamConnectionUseCase",
]
