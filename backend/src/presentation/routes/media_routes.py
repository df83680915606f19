"""Published HLS artifacts."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse, Response

from ...application.services import StreamServices
from ...infrastructure.storage import MANIFEST_NAME
from .stream_routes import get_services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["media"])

NO_CACHE = {"Cache-Control": "no-cache, no-store, must-revalidate"}


@router.get("/api/media/live/{camera_id}/{filename}")
async def get_media(camera_id: str, filename: str, services: StreamServices = Depends(get_services)):
    """Manifest (filtered to segments present on disk) or a media segment."""
    publisher = services.publisher
    try:
        if filename == MANIFEST_NAME:
            manifest = publisher.read_manifest(camera_id)
            if manifest is None:
                raise HTTPException(status_code=404, detail="Manifest not found")
            return Response(
                content=manifest,
                media_type="application/vnd.apple.mpegurl",
                headers=NO_CACHE,
            )

        segment = publisher.segment_path(camera_id, filename)
    except ValueError:
        raise HTTPException(status_code=404, detail="Not found")

    if segment is None:
        raise HTTPException(status_code=404, detail="Segment not found")
    return FileResponse(segment, media_type="video/mp2t")
