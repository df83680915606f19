"""Live stream routes: get-or-start, stop, status, connection test."""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from ...application.services import StreamServices
from ...core.exceptions import StreamError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stream", tags=["stream"])


# ============ Pydantic Models ============

class StreamResponse(BaseModel):
    """Get-or-start response."""
    cameraId: str
    status: str
    publishPath: str


class StopResponse(BaseModel):
    message: str
    stopped: bool


class ConnectionTestRequest(BaseModel):
    url: str = Field(..., min_length=1)


# ============ Helpers ============

def get_services(request: Request) -> StreamServices:
    """Service container created in the application lifespan."""
    return request.app.state.services


def stream_http_error(exc: StreamError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.to_dict())


# ============ Endpoints ============

@router.get("", response_model=List[Dict[str, Any]])
async def list_streams(services: StreamServices = Depends(get_services)):
    """List every registered session."""
    return await services.list_streams.execute()


@router.post("/test")
async def test_stream_connection(
    body: ConnectionTestRequest,
    services: StreamServices = Depends(get_services),
) -> Dict[str, Any]:
    """
    Test a source address without starting a session.

    The probe is advisory, so an unreachable source still answers 200 with
    ``reachable: false``.
    """
    return await services.test_connection.execute(body.url)


@router.get("/{camera_id}", response_model=StreamResponse)
async def get_stream(camera_id: str, services: StreamServices = Depends(get_services)):
    """Return the live stream of a camera, starting it if needed."""
    try:
        result = await services.get_or_start_stream.execute(camera_id)
        return result.to_dict()
    except StreamError as e:
        logger.warning(f"[{camera_id}] Stream request failed: {e.message}")
        raise stream_http_error(e)
    except Exception as e:
        logger.error(f"[{camera_id}] Error getting stream: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail={"error": "Failed to get stream", "code": "internal_error"})


@router.get("/{camera_id}/status")
async def get_stream_status(camera_id: str, services: StreamServices = Depends(get_services)) -> Dict[str, Any]:
    """Session state of a camera (``idle`` when none)."""
    return await services.stream_status.execute(camera_id)


@router.delete("/{camera_id}", response_model=StopResponse)
async def stop_stream(camera_id: str, services: StreamServices = Depends(get_services)):
    """Stop the stream of a camera. Always succeeds."""
    try:
        stopped = await services.stop_stream.execute(camera_id)
    except Exception as e:
        logger.error(f"[{camera_id}] Error stopping stream: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail={"error": "Failed to stop stream", "code": "internal_error"})
    return {"message": "Stream stopped successfully", "stopped": stopped}
