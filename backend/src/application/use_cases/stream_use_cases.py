"""Stream Use Cases - Live session lifecycle"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from ...core.exceptions import (
    ProcessCrashedError,
    ResolutionError,
)
from ...domain.entities import CameraConnection, SessionState, StreamSession
from ...domain.repositories import ICameraRepository
from ...infrastructure.encoder import FFmpegSupervisor
from ...infrastructure.memory import SessionRegistry
from ...infrastructure.rtsp import ConnectivityProber, normalize_stream_url, resolve_stream_url
from ...infrastructure.storage import SegmentPublisher
from .camera_use_cases import find_camera

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "active"
STATUS_STARTING = "starting"
STATUS_IDLE = "idle"


@dataclass(frozen=True)
class StreamStartResult:
    """Answer to a playback request"""
    camera_id: str
    status: str
    publish_path: str
    created: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cameraId": self.camera_id,
            "status": self.status,
            "publishPath": self.publish_path,
        }


def _status_of(session: StreamSession) -> str:
    return STATUS_ACTIVE if session.state == SessionState.ACTIVE else STATUS_STARTING


class GetOrStartStreamUseCase:
    """Use case for getting the live stream of a camera, starting it if needed"""

    def __init__(
        self,
        camera_repository: ICameraRepository,
        registry: SessionRegistry,
        supervisor: FFmpegSupervisor,
        prober: ConnectivityProber,
        publisher: SegmentPublisher,
        settle_seconds: float = 2.0,
        diagnostic_lines: int = 50,
    ):
        self.camera_repository = camera_repository
        self.registry = registry
        self.supervisor = supervisor
        self.prober = prober
        self.publisher = publisher
        self.settle_seconds = settle_seconds
        self.diagnostic_lines = diagnostic_lines

    async def execute(self, camera_id: str) -> StreamStartResult:
        """Execute get-or-start stream use case"""
        existing = self.registry.get(camera_id)
        if existing is not None:
            logger.debug(f"[{camera_id}] Returning existing stream ({existing.state.value})")
            return StreamStartResult(camera_id, _status_of(existing), existing.publish_path)

        camera = await find_camera(self.camera_repository, camera_id)

        await self.supervisor.ensure_tool_available()

        try:
            source_url = resolve_stream_url(camera)
            self.publisher.camera_dir(camera_id)
            publish_path = self.publisher.publish_path(camera_id)
        except (TypeError, ValueError) as e:
            raise ResolutionError(f"Cannot resolve stream for camera {camera_id}: {e}", camera_id) from e

        session, created = await self.registry.create_if_absent(
            camera_id,
            lambda: self._launch(camera, source_url, publish_path),
        )
        if not created:
            return StreamStartResult(camera_id, _status_of(session), session.publish_path)

        # Give the encoder a moment; a bad source usually fails right away
        if await session.wait_terminated(timeout=self.settle_seconds):
            if session.stop_requested:
                # Stopped by a concurrent request, not a failure
                logger.info(f"[{camera_id}] Stream stopped before it settled")
                return StreamStartResult(camera_id, STATUS_IDLE, session.publish_path, created=True)
            raise ProcessCrashedError(camera_id, session.exit_code, session.diagnostic_tail())

        return StreamStartResult(camera_id, STATUS_STARTING, session.publish_path, created=True)

    async def _launch(self, camera: CameraConnection, source_url: str, publish_path: str) -> StreamSession:
        session = StreamSession(
            camera_id=camera.camera_id,
            publish_path=publish_path,
            diagnostic_lines=self.diagnostic_lines,
        )

        # Advisory only: the outcome is logged, the start goes ahead regardless
        await self.prober.probe(source_url, camera.camera_id)

        session.mark_starting()
        await self.supervisor.start(session, source_url)
        return session


class StopStreamUseCase:
    """Use case for stopping a camera stream"""

    def __init__(self, registry: SessionRegistry, supervisor: FFmpegSupervisor):
        self.registry = registry
        self.supervisor = supervisor

    async def execute(self, camera_id: str) -> bool:
        """
        Execute stop stream use case.

        Idempotent: returns False when there was nothing to stop.
        """
        async with self.registry.lock(camera_id):
            session = self.registry.get(camera_id)
            if session is None:
                return False
            await self.supervisor.stop(session)
            self.registry.remove(camera_id)
        logger.info(f"[{camera_id}] Stream stopped")
        return True


class StopAllStreamsUseCase:
    """Use case for stopping every session at shutdown"""

    def __init__(self, registry: SessionRegistry, supervisor: FFmpegSupervisor):
        self.registry = registry
        self.supervisor = supervisor

    async def execute(self) -> int:
        stop = StopStreamUseCase(self.registry, self.supervisor)
        stopped = 0
        for session in self.registry.list_sessions():
            if await stop.execute(session.camera_id):
                stopped += 1
        # Anything still supervised but no longer registered
        await self.supervisor.stop_all()
        return stopped


class GetStreamStatusUseCase:
    """Use case for getting stream status"""

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    async def execute(self, camera_id: str) -> Dict[str, Any]:
        """Execute get stream status use case"""
        session = self.registry.get(camera_id)
        if session is not None:
            return session.to_dict()

        status: Dict[str, Any] = {"cameraId": camera_id, "state": SessionState.IDLE.value}
        last = self.registry.last_terminated(camera_id)
        if last is not None:
            status["lastExitCode"] = last.exit_code
            status["terminatedAt"] = last.terminated_at.isoformat() if last.terminated_at else None
            if last.crashed:
                status["diagnostics"] = last.diagnostic_tail()
        return status


class ListStreamsUseCase:
    """Use case for listing registered sessions"""

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    async def execute(self) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in self.registry.list_sessions()]


class TestStreamConnectionUseCase:
    """Use case for checking a user supplied source address"""

    __test__ = False  # not a pytest class

    def __init__(self, prober: ConnectivityProber):
        self.prober = prober

    async def execute(self, url: str) -> Dict[str, Any]:
        source_url = normalize_stream_url(url)
        result = await self.prober.probe(source_url)
        message = (
            "Camera connection successful"
            if result.reachable
            else f"Camera did not answer the test read ({result.detail})"
        )
        return {
            "success": True,
            "reachable": result.reachable,
            "url": source_url,
            "message": message,
            "elapsedSeconds": result.elapsed_seconds,
        }
