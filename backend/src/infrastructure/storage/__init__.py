"""Storage infrastructure: published segment layout and camera directory."""

from .segment_publisher import SegmentPublisher, MANIFEST_NAME, SEGMENT_TEMPLATE
from .camera_directory import InMemoryCameraRepository, FirestoreCameraRepository

__all__ = [
    "SegmentPublisher",
    "MANIFEST_NAME",
    "SEGMENT_TEMPLATE",
    "InMemoryCameraRepository",
    "FirestoreCameraRepository",
]
