"""Repository Interfaces - Abstract data access contracts"""
from .camera_repository import ICameraRepository

__all__ = ["ICameraRepository"]
