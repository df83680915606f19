"""ffmpeg process supervision for live HLS sessions."""

import asyncio
import logging
import shutil
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from ...core.exceptions import SpawnFailureError, ToolUnavailableError
from ...domain.entities import SessionState, StreamSession
from ..rtsp.url_resolver import redact_url
from ..storage.segment_publisher import SegmentPublisher

logger = logging.getLogger(__name__)

ExitCallback = Callable[[StreamSession], None]

_READ_CHUNK = 4096
_DRAIN_TIMEOUT = 5.0


@dataclass(eq=False)
class _Supervision:
    """Tasks owned by one running encoder process."""
    process: asyncio.subprocess.Process
    readers: List[asyncio.Task] = field(default_factory=list)
    janitor: Optional[asyncio.Task] = None
    watcher: Optional[asyncio.Task] = None


class FFmpegSupervisor:
    """
    Owns one ffmpeg process per stream session.

    Responsibilities:
    - Verify once that ffmpeg is installed; fail fast afterwards if not
    - Spawn ffmpeg reading the source and writing an HLS sliding window
    - Drain stdout / stderr continuously, keeping a diagnostic tail
    - Promote STARTING -> ACTIVE once the manifest appears, prune segments
    - Detect exit, record the exit code and notify the registry
    - Stop: SIGTERM, then SIGKILL after a grace period
    """

    def __init__(
        self,
        publisher: SegmentPublisher,
        ffmpeg_path: str = "ffmpeg",
        segment_seconds: int = 2,
        video_codec: str = "libx264",
        preset: str = "veryfast",
        audio_codec: str = "aac",
        gop_size: int = 30,
        reconnect_delay_max: int = 5,
        rtsp_transport: str = "tcp",
        io_timeout_seconds: float = 10.0,
        stop_grace_seconds: float = 5.0,
        preflight_timeout: float = 5.0,
        janitor_interval: float = 2.0,
        cleanup_on_stop: bool = True,
        on_exit: Optional[ExitCallback] = None,
    ):
        self.publisher = publisher
        self.ffmpeg_path = ffmpeg_path
        self.segment_seconds = segment_seconds
        self.video_codec = video_codec
        self.preset = preset
        self.audio_codec = audio_codec
        self.gop_size = gop_size
        self.reconnect_delay_max = reconnect_delay_max
        self.rtsp_transport = rtsp_transport
        self.io_timeout_seconds = io_timeout_seconds
        self.stop_grace_seconds = stop_grace_seconds
        self.preflight_timeout = preflight_timeout
        self.janitor_interval = janitor_interval
        self.cleanup_on_stop = cleanup_on_stop
        self._on_exit = on_exit

        self._tool_available: Optional[bool] = None
        self._tool_lock = asyncio.Lock()
        self._supervised: Dict[StreamSession, _Supervision] = {}

        # Metrics
        self.processes_started = 0
        self.processes_crashed = 0
        self.processes_killed = 0

    def set_exit_callback(self, on_exit: ExitCallback) -> None:
        self._on_exit = on_exit

    # ---- preflight -----------------------------------------------------

    def tool_command(self) -> List[str]:
        return [self.ffmpeg_path, "-hide_banner", "-version"]

    @property
    def tool_available(self) -> Optional[bool]:
        """None until the preflight check ran."""
        return self._tool_available

    async def check_tool(self) -> bool:
        """Run the preflight check once and cache the answer."""
        async with self._tool_lock:
            if self._tool_available is None:
                self._tool_available = await self._run_preflight()
                if self._tool_available:
                    logger.info(f"Encoder available: {self.ffmpeg_path}")
                else:
                    logger.error(f"Encoder not available: {self.ffmpeg_path}. Streams cannot start.")
            return self._tool_available

    async def _run_preflight(self) -> bool:
        command = self.tool_command()
        if shutil.which(command[0]) is None:
            return False
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.error(f"Encoder preflight failed to launch: {e}")
            return False

        try:
            returncode = await asyncio.wait_for(proc.wait(), timeout=self.preflight_timeout)
        except asyncio.TimeoutError:
            logger.error(f"Encoder preflight timed out ({self.preflight_timeout}s)")
            proc.kill()
            await proc.wait()
            return False
        return returncode == 0

    async def ensure_tool_available(self) -> None:
        if not await self.check_tool():
            raise ToolUnavailableError(f"Encoder '{self.ffmpeg_path}' is not available on this host")

    # ---- command -------------------------------------------------------

    def build_command(self, source_url: str, camera_id: str) -> List[str]:
        """ffmpeg argv reading ``source_url`` and publishing HLS for ``camera_id``."""
        command = [self.ffmpeg_path, "-hide_banner", "-nostats", "-loglevel", "warning"]

        scheme = source_url.split("://", 1)[0].lower() if "://" in source_url else ""
        if scheme in ("rtsp", "rtsps"):
            command += [
                "-rtsp_transport", self.rtsp_transport,
                "-timeout", str(int(self.io_timeout_seconds * 1_000_000)),
            ]
        elif scheme in ("http", "https"):
            command += [
                "-reconnect", "1",
                "-reconnect_streamed", "1",
                "-reconnect_delay_max", str(self.reconnect_delay_max),
            ]

        command += ["-i", source_url, "-c:v", self.video_codec]
        if self.video_codec != "copy":
            command += [
                "-preset", self.preset,
                "-tune", "zerolatency",
                "-profile:v", "baseline",
                "-level", "3.0",
                "-pix_fmt", "yuv420p",
                "-g", str(self.gop_size),
                "-keyint_min", str(self.gop_size),
                "-sc_threshold", "0",
            ]

        command += ["-c:a", self.audio_codec]
        if self.audio_codec != "copy":
            command += ["-ar", "44100", "-b:a", "128k"]

        command += [
            "-f", "hls",
            "-hls_time", str(self.segment_seconds),
            "-hls_list_size", str(self.publisher.window_size),
            "-hls_flags", "delete_segments",
            "-hls_delete_threshold", "1",
            "-hls_segment_type", "mpegts",
            "-hls_segment_filename", str(self.publisher.segment_template(camera_id)),
            str(self.publisher.manifest_path(camera_id)),
        ]
        return command

    # ---- lifecycle -----------------------------------------------------

    async def start(self, session: StreamSession, source_url: str) -> None:
        """
        Launch the encoder for ``session``.

        Raises:
            ToolUnavailableError: ffmpeg missing (checked once, then cached)
            SpawnFailureError: process could not be launched
        """
        camera_id = session.camera_id
        await self.ensure_tool_available()

        if session.state == SessionState.PROBING:
            session.mark_starting()

        try:
            output_dir = self.publisher.prepare(camera_id, reset=True)
        except (OSError, ValueError) as e:
            session.mark_terminated(None)
            raise SpawnFailureError(f"Cannot prepare output for camera {camera_id}: {e}", camera_id) from e
        session.output_dir = str(output_dir)

        command = self.build_command(source_url, camera_id)
        logger.debug(f"[{camera_id}] Encoder command: {redact_url(' '.join(command))}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (OSError, ValueError) as e:
            session.add_diagnostic(str(e))
            session.mark_terminated(None)
            logger.error(f"[{camera_id}] Failed to spawn encoder: {e}")
            raise SpawnFailureError(f"Failed to start encoder for camera {camera_id}: {e}", camera_id) from e

        session.process = proc
        session.touch()
        self.processes_started += 1

        supervision = _Supervision(process=proc)
        supervision.readers = [
            asyncio.create_task(self._drain(session, proc.stdout, "stdout")),
            asyncio.create_task(self._drain(session, proc.stderr, "stderr")),
        ]
        supervision.janitor = asyncio.create_task(self._janitor(session))
        supervision.watcher = asyncio.create_task(self._watch(session, supervision))
        self._supervised[session] = supervision

        logger.info(f"[{camera_id}] Encoder started (pid={proc.pid}) -> {session.publish_path}")

    async def _drain(self, session: StreamSession, stream: Optional[asyncio.StreamReader], name: str) -> None:
        """Consume one output stream until it closes."""
        if stream is None:
            return
        pending = b""
        while True:
            chunk = await stream.read(_READ_CHUNK)
            if not chunk:
                break
            pending += chunk.replace(b"\r", b"\n")
            *lines, pending = pending.split(b"\n")
            for raw in lines:
                self._record_line(session, raw, name)
            if len(pending) > _READ_CHUNK:
                self._record_line(session, pending, name)
                pending = b""
        if pending:
            self._record_line(session, pending, name)

    @staticmethod
    def _record_line(session: StreamSession, raw: bytes, name: str) -> None:
        text = raw.decode("utf-8", errors="replace").strip()
        if not text:
            return
        session.add_diagnostic(text)
        session.touch()
        logger.debug(f"[{session.camera_id}] ffmpeg {name}: {text}")

    async def _janitor(self, session: StreamSession) -> None:
        """Promote to ACTIVE once output exists and keep the window bounded."""
        camera_id = session.camera_id
        while True:
            try:
                if self.publisher.has_manifest(camera_id):
                    if session.state == SessionState.STARTING:
                        session.mark_active()
                        logger.info(f"[{camera_id}] Stream active")
                    else:
                        session.touch()
                    self.publisher.prune(camera_id)
            except OSError as e:
                logger.warning(f"[{camera_id}] Segment maintenance failed: {e}")
            await asyncio.sleep(self.janitor_interval)

    async def _watch(self, session: StreamSession, supervision: _Supervision) -> None:
        """Wait for process exit, then settle the session."""
        camera_id = session.camera_id
        exit_code = await supervision.process.wait()

        readers = asyncio.gather(*supervision.readers, return_exceptions=True)
        try:
            await asyncio.wait_for(readers, timeout=_DRAIN_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning(f"[{camera_id}] Output streams still open after exit, abandoning readers")
        if supervision.janitor:
            supervision.janitor.cancel()

        # The registry may already have marked the session terminated
        voluntary = session.stop_requested
        session.exit_code = exit_code
        if exit_code == 0 or voluntary:
            logger.info(f"[{camera_id}] Encoder exited with code {exit_code}")
        else:
            self.processes_crashed += 1
            logger.error(
                f"[{camera_id}] Encoder exited with code {exit_code}\n{session.diagnostic_tail()}"
            )

        session.mark_terminated(exit_code)
        self._supervised.pop(session, None)
        if self._on_exit is not None:
            self._on_exit(session)

    async def stop(self, session: StreamSession) -> None:
        """
        Terminate the encoder of ``session`` and wait for cleanup.

        Safe on sessions that never started or already terminated.
        """
        camera_id = session.camera_id
        supervision = self._supervised.get(session)
        if supervision is None:
            if not session.is_terminated:
                session.mark_terminated(session.exit_code)
            return

        proc = supervision.process
        if proc.returncode is None:
            if session.state in (SessionState.STARTING, SessionState.ACTIVE):
                session.mark_stopping()
            logger.info(f"[{camera_id}] Stopping encoder (pid={proc.pid})")
            try:
                proc.terminate()
            except ProcessLookupError:
                pass
            try:
                await asyncio.wait_for(proc.wait(), timeout=self.stop_grace_seconds)
            except asyncio.TimeoutError:
                logger.warning(
                    f"[{camera_id}] Encoder ignored SIGTERM for {self.stop_grace_seconds}s, killing"
                )
                self.processes_killed += 1
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
                await proc.wait()

        if supervision.watcher is not None:
            await supervision.watcher

        if self.cleanup_on_stop:
            self.publisher.cleanup(camera_id)

    async def stop_all(self) -> None:
        sessions = list(self._supervised)
        if sessions:
            logger.info(f"Stopping {len(sessions)} encoder processes")
            await asyncio.gather(*(self.stop(s) for s in sessions), return_exceptions=True)

    def is_supervising(self, session: StreamSession) -> bool:
        return session in self._supervised

    def get_stats(self) -> dict:
        return {
            "tool_available": self._tool_available,
            "running_processes": len(self._supervised),
            "processes_started": self.processes_started,
            "processes_crashed": self.processes_crashed,
            "processes_killed": self.processes_killed,
        }
