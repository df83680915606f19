"""Camera Repository Interface"""
from abc import ABC, abstractmethod
from typing import List, Optional
from ..entities import CameraConnection


class ICameraRepository(ABC):
    """
    Camera Repository Interface

    Read-only contract for the camera directory. The stream core never
    writes camera status back; that belongs to the metadata store.
    """

    @abstractmethod
    async def get_by_id(self, camera_id: str) -> Optional[CameraConnection]:
        """Get camera by ID"""
        pass

    @abstractmethod
    async def get_all(self, skip: int = 0, limit: int = 100) -> List[CameraConnection]:
        """Get all cameras with pagination"""
        pass
