"""Service container - built once per application lifespan."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..core.config import Settings
from ..domain.repositories import ICameraRepository
from ..infrastructure.encoder import FFmpegSupervisor
from ..infrastructure.memory import SessionRegistry
from ..infrastructure.rtsp import ConnectivityProber
from ..infrastructure.storage import (
    FirestoreCameraRepository,
    InMemoryCameraRepository,
    SegmentPublisher,
)
from .use_cases import (
    GetCameraUseCase,
    GetOrStartStreamUseCase,
    GetStreamStatusUseCase,
    ListCamerasUseCase,
    ListStreamsUseCase,
    StopAllStreamsUseCase,
    StopStreamUseCase,
    TestStreamConnectionUseCase,
)

logger = logging.getLogger(__name__)


@dataclass
class StreamServices:
    """Long-lived collaborators and the use cases wired on top of them."""
    camera_repository: ICameraRepository
    registry: SessionRegistry
    supervisor: FFmpegSupervisor
    prober: ConnectivityProber
    publisher: SegmentPublisher
    settle_seconds: float = 2.0
    diagnostic_lines: int = 50

    get_or_start_stream: GetOrStartStreamUseCase = field(init=False)
    stop_stream: StopStreamUseCase = field(init=False)
    stop_all_streams: StopAllStreamsUseCase = field(init=False)
    stream_status: GetStreamStatusUseCase = field(init=False)
    list_streams: ListStreamsUseCase = field(init=False)
    test_connection: TestStreamConnectionUseCase = field(init=False)
    get_camera: GetCameraUseCase = field(init=False)
    list_cameras: ListCamerasUseCase = field(init=False)

    def __post_init__(self):
        # Process exit is reported straight back to the registry
        self.supervisor.set_exit_callback(self.registry.mark_terminated)

        self.get_or_start_stream = GetOrStartStreamUseCase(
            camera_repository=self.camera_repository,
            registry=self.registry,
            supervisor=self.supervisor,
            prober=self.prober,
            publisher=self.publisher,
            settle_seconds=self.settle_seconds,
            diagnostic_lines=self.diagnostic_lines,
        )
        self.stop_stream = StopStreamUseCase(self.registry, self.supervisor)
        self.stop_all_streams = StopAllStreamsUseCase(self.registry, self.supervisor)
        self.stream_status = GetStreamStatusUseCase(self.registry)
        self.list_streams = ListStreamsUseCase(self.registry)
        self.test_connection = TestStreamConnectionUseCase(self.prober)
        self.get_camera = GetCameraUseCase(self.camera_repository)
        self.list_cameras = ListCamerasUseCase(self.camera_repository)

    async def startup(self) -> None:
        """Run the encoder preflight before the first session can start."""
        await self.supervisor.check_tool()

    async def shutdown(self) -> None:
        stopped = await self.stop_all_streams.execute()
        logger.info(f"Stopped {stopped} streams")


def build_camera_repository(config: Settings) -> ICameraRepository:
    backend = config.camera_directory_backend.lower()
    if backend == "firestore":
        from ..infrastructure.firebase.setup import initialize_firebase

        initialize_firebase()
        return FirestoreCameraRepository(collection=config.firestore_cameras_collection)
    if backend != "memory":
        logger.warning(f"Unknown camera directory backend '{backend}', using memory")
    return InMemoryCameraRepository.from_file(config.camera_directory_file)


def build_services(
    config: Settings,
    camera_repository: Optional[ICameraRepository] = None,
) -> StreamServices:
    """Construct every stream component from settings."""
    publisher = SegmentPublisher(
        base_dir=config.hls_output_dir,
        url_prefix=config.hls_url_prefix,
        window_size=config.hls_list_size,
    )
    supervisor = FFmpegSupervisor(
        publisher=publisher,
        ffmpeg_path=config.ffmpeg_path,
        segment_seconds=config.hls_segment_seconds,
        video_codec=config.ffmpeg_video_codec,
        preset=config.ffmpeg_preset,
        audio_codec=config.ffmpeg_audio_codec,
        gop_size=config.ffmpeg_gop_size,
        reconnect_delay_max=config.ffmpeg_reconnect_delay_max,
        rtsp_transport=config.rtsp_transport,
        stop_grace_seconds=config.stream_stop_grace_seconds,
        preflight_timeout=config.ffmpeg_preflight_timeout,
        janitor_interval=config.stream_janitor_interval,
        cleanup_on_stop=config.hls_cleanup_on_stop,
    )
    return StreamServices(
        camera_repository=camera_repository or build_camera_repository(config),
        registry=SessionRegistry(replace_wait_timeout=config.stream_stop_grace_seconds * 2),
        supervisor=supervisor,
        prober=ConnectivityProber(timeout=config.probe_timeout_seconds),
        publisher=publisher,
        settle_seconds=config.stream_settle_seconds,
        diagnostic_lines=config.stream_diagnostic_lines,
    )
