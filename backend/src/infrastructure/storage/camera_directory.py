"""Camera directory adapters (read side of the camera metadata store)."""

import asyncio
import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
from firebase_admin import firestore

from ...core.exceptions import CameraDirectoryError
from ...domain.entities import CameraConnection
from ...domain.repositories import ICameraRepository

logger = logging.getLogger(__name__)


class InMemoryCameraRepository(ICameraRepository):
    """
    Camera directory held in process memory.

    Seeded from a JSON file (list of records with an ``id`` / ``_id`` field,
    or an object keyed by camera id) or from code.
    """

    def __init__(self, cameras: Optional[Iterable[CameraConnection]] = None):
        self._cameras: Dict[str, CameraConnection] = {}
        self._lock = threading.RLock()
        for camera in cameras or []:
            self.put(camera)

    @classmethod
    def from_file(cls, path: str) -> "InMemoryCameraRepository":
        """Load records from ``path``. A missing file yields an empty directory."""
        file_path = Path(path)
        if not file_path.is_file():
            logger.warning(f"Camera directory file not found: {file_path.resolve()}")
            return cls()

        data = json.loads(file_path.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            records = [{"id": key, **value} for key, value in data.items()]
        else:
            records = list(data)

        cameras = []
        for record in records:
            camera_id = record.get("id") or record.get("_id")
            if not camera_id:
                logger.warning(f"Skipping camera record without id: {record.get('name')}")
                continue
            try:
                cameras.append(CameraConnection.from_record(str(camera_id), record))
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed camera record {camera_id}: {e}")

        logger.info(f"Loaded {len(cameras)} cameras from {file_path}")
        return cls(cameras)

    def put(self, camera: CameraConnection) -> None:
        with self._lock:
            self._cameras[camera.camera_id] = camera

    async def get_by_id(self, camera_id: str) -> Optional[CameraConnection]:
        with self._lock:
            return self._cameras.get(camera_id)

    async def get_all(self, skip: int = 0, limit: int = 100) -> List[CameraConnection]:
        with self._lock:
            cameras = sorted(self._cameras.values(), key=lambda c: c.camera_id)
        return cameras[skip:skip + limit]


class FirestoreCameraRepository(ICameraRepository):
    """
    Camera directory backed by Firestore.

    Structure: {collection}/{camera_id}. The Firestore client is blocking,
    so every call runs in a worker thread.
    """

    def __init__(self, collection: str = "cameras", db: Any = None):
        self.collection = collection
        if db is not None:
            self.db = db
            return
        try:
            self.db = firestore.client()
        except Exception as e:
            logger.error(f"Failed to initialize Firestore client: {e}")
            self.db = None

    def _require_db(self) -> Any:
        if self.db is None:
            raise CameraDirectoryError("Camera directory is not initialized")
        return self.db

    def _fetch_one(self, camera_id: str) -> Optional[Dict[str, Any]]:
        doc = self._require_db().collection(self.collection).document(camera_id).get()
        return doc.to_dict() if doc.exists else None

    def _fetch_page(self, skip: int, limit: int) -> List[tuple]:
        query = self._require_db().collection(self.collection).offset(skip).limit(limit)
        return [(doc.id, doc.to_dict() or {}) for doc in query.stream()]

    async def get_by_id(self, camera_id: str) -> Optional[CameraConnection]:
        try:
            record = await asyncio.to_thread(self._fetch_one, camera_id)
        except CameraDirectoryError:
            raise
        except Exception as e:
            logger.error(f"Error getting camera {camera_id} from Firestore: {e}")
            raise CameraDirectoryError(f"Camera directory lookup failed: {e}", camera_id) from e

        if record is None:
            return None
        return CameraConnection.from_record(camera_id, record)

    async def get_all(self, skip: int = 0, limit: int = 100) -> List[CameraConnection]:
        try:
            rows = await asyncio.to_thread(self._fetch_page, skip, limit)
        except CameraDirectoryError:
            raise
        except Exception as e:
            logger.error(f"Error listing cameras from Firestore: {e}")
            raise CameraDirectoryError(f"Camera directory listing failed: {e}") from e

        cameras = []
        for camera_id, record in rows:
            try:
                cameras.append(CameraConnection.from_record(camera_id, record))
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed camera record {camera_id}: {e}")
        return cameras
