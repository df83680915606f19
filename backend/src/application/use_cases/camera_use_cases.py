"""Camera Use Cases - Read access to the camera directory"""
import logging
from typing import List

from ...core.exceptions import CameraNotFoundError, ResolutionError
from ...domain.entities import CameraConnection
from ...domain.repositories import ICameraRepository

logger = logging.getLogger(__name__)


async def find_camera(camera_repository: ICameraRepository, camera_id: str) -> CameraConnection:
    """
    Look up one camera record.

    Raises:
        CameraNotFoundError: id unknown to the directory
        ResolutionError: record exists but its connection attributes are malformed
    """
    try:
        camera = await camera_repository.get_by_id(camera_id)
    except (TypeError, ValueError) as e:
        logger.warning(f"[{camera_id}] Malformed camera record: {e}")
        raise ResolutionError(f"Malformed connection attributes for camera {camera_id}: {e}", camera_id) from e
    if camera is None:
        raise CameraNotFoundError(camera_id)
    return camera


class GetCameraUseCase:
    """Use case for getting a camera by ID"""

    def __init__(self, camera_repository: ICameraRepository):
        self.camera_repository = camera_repository

    async def execute(self, camera_id: str) -> CameraConnection:
        """Execute get camera use case"""
        return await find_camera(self.camera_repository, camera_id)


class ListCamerasUseCase:
    """Use case for listing all cameras"""

    def __init__(self, camera_repository: ICameraRepository):
        self.camera_repository = camera_repository

    async def execute(self, skip: int = 0, limit: int = 100) -> List[CameraConnection]:
        """Execute list cameras use case"""
        return await self.camera_repository.get_all(skip, limit)
