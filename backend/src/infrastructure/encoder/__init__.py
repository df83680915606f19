"""Encoder process supervision."""

from .ffmpeg_supervisor import FFmpegSupervisor

__all__ = ["FFmpegSupervisor"]
