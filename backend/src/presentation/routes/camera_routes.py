"""Read-only camera directory routes."""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...application.services import StreamServices
from ...core.exceptions import StreamError
from .stream_routes import get_services, stream_http_error

logger = logging.getLogger(__name__)

# Define the router instance
router = APIRouter(
    prefix="/api",
    tags=["Cameras"],
)


@router.get("/cameras", status_code=status.HTTP_200_OK)
async def get_camera_list(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    services: StreamServices = Depends(get_services),
) -> List[Dict[str, Any]]:
    """Cameras known to the directory, credentials redacted."""
    try:
        cameras = await services.list_cameras.execute(skip, limit)
    except StreamError as e:
        raise stream_http_error(e)
    except Exception as e:
        logger.error(f"Failed to list cameras: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to retrieve cameras")
    return [camera.to_public_dict() for camera in cameras]


@router.get("/cameras/{camera_id}", status_code=status.HTTP_200_OK)
async def get_camera(camera_id: str, services: StreamServices = Depends(get_services)) -> Dict[str, Any]:
    try:
        camera = await services.get_camera.execute(camera_id)
    except StreamError as e:
        raise stream_http_error(e)
    return camera.to_public_dict()
