"""
Shared pytest fixtures and configuration

Central location for test doubles and config:
  1. Load config from .env once instead of in each test
  2. Put backend/ on sys.path so tests import ``src.*`` like main.py does
  3. Fakes for the encoder supervisor and prober, so use-case and route
     tests never spawn ffmpeg or touch the network
"""

import asyncio
import itertools
import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import pytest
from dotenv import load_dotenv

# Load .env file
ENV_FILE = Path(__file__).resolve().parent / ".env"
if ENV_FILE.exists():
    load_dotenv(ENV_FILE)

# Tests never write log files
os.environ.setdefault("LOG_TO_FILE", "False")

# Add backend to path for imports
PROJECT_ROOT = Path(__file__).resolve().parent
BACKEND_DIR = PROJECT_ROOT / "backend"

if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from src.application.services import StreamServices  # noqa: E402
from src.core.exceptions import SpawnFailureError, ToolUnavailableError  # noqa: E402
from src.domain.entities import CameraConnection, SessionState, StreamSession  # noqa: E402
from src.infrastructure.memory import SessionRegistry  # noqa: E402
from src.infrastructure.rtsp import ProbeOutcome, ProbeResult  # noqa: E402
from src.infrastructure.storage import InMemoryCameraRepository, SegmentPublisher  # noqa: E402


class FakeProcess:
    """Stand-in for an asyncio subprocess handle."""

    _pids = itertools.count(4000)

    def __init__(self):
        self.pid = next(self._pids)
        self.returncode: Optional[int] = None


class FakeSupervisor:
    """
    Encoder supervisor double.

    Records every start, never spawns anything. ``simulate_exit`` plays
    the part of the process watcher noticing an exit.
    """

    def __init__(self, tool_available: bool = True, start_delay: float = 0.0, fail_spawn: bool = False):
        self._tool_available = tool_available
        self.start_delay = start_delay
        self.fail_spawn = fail_spawn
        self.started: List[Tuple[StreamSession, str]] = []
        self.stopped: List[StreamSession] = []
        self._on_exit = None

    @property
    def tool_available(self) -> bool:
        return self._tool_available

    def set_exit_callback(self, on_exit) -> None:
        self._on_exit = on_exit

    async def check_tool(self) -> bool:
        return self._tool_available

    async def ensure_tool_available(self) -> None:
        if not self._tool_available:
            raise ToolUnavailableError("Encoder 'ffmpeg' is not available on this host")

    async def start(self, session: StreamSession, source_url: str) -> None:
        await self.ensure_tool_available()
        if session.state == SessionState.PROBING:
            session.mark_starting()
        if self.start_delay:
            # Widen the window for concurrent callers
            await asyncio.sleep(self.start_delay)
        if self.fail_spawn:
            session.mark_terminated(None)
            raise SpawnFailureError(f"Failed to start encoder for camera {session.camera_id}", session.camera_id)
        session.process = FakeProcess()
        session.touch()
        self.started.append((session, source_url))

    def simulate_exit(self, session: StreamSession, exit_code: int, diagnostics: str = "") -> None:
        for line in diagnostics.splitlines():
            session.add_diagnostic(line)
        session.process.returncode = exit_code
        session.exit_code = exit_code
        session.mark_terminated(exit_code)
        if self._on_exit is not None:
            self._on_exit(session)

    async def stop(self, session: StreamSession) -> None:
        if session.is_terminated:
            return
        self.stopped.append(session)
        if session.state in (SessionState.STARTING, SessionState.ACTIVE):
            session.mark_stopping()
        self.simulate_exit(session, -15)

    async def stop_all(self) -> None:
        for session, _ in self.started:
            await self.stop(session)

    def get_stats(self) -> dict:
        return {"tool_available": self._tool_available, "processes_started": len(self.started)}


class FakeProber:
    """Connectivity prober double with a fixed outcome."""

    def __init__(self, outcome: ProbeOutcome = ProbeOutcome.REACHABLE):
        self.outcome = outcome
        self.calls: List[str] = []

    async def probe(self, source_url: str, camera_id: Optional[str] = None) -> ProbeResult:
        self.calls.append(source_url)
        detail = "frame received" if self.outcome == ProbeOutcome.REACHABLE else "timeout after 5.0s"
        return ProbeResult(self.outcome, detail, 0.01)

    def get_stats(self) -> dict:
        return {"probes": len(self.calls)}


@pytest.fixture
def cameras():
    """Camera directory content used across tests"""
    return [
        CameraConnection(camera_id="cam1", address="192.168.1.64", camera_type="hikvision",
                         username="admin", password="secret", name="Gate"),
        CameraConnection(camera_id="cam2", address="192.168.1.108", camera_type="dahua"),
        CameraConnection(camera_id="cam3", address="rtsp://already/full", camera_type="dahua"),
    ]


@pytest.fixture
def camera_repository(cameras):
    return InMemoryCameraRepository(cameras)


@pytest.fixture
def publisher(tmp_path):
    return SegmentPublisher(base_dir=str(tmp_path / "live"), url_prefix="/api/media/live", window_size=5)


@pytest.fixture
def registry():
    return SessionRegistry(replace_wait_timeout=1.0)


@pytest.fixture
def fake_supervisor():
    return FakeSupervisor()


@pytest.fixture
def fake_prober():
    return FakeProber()


@pytest.fixture
def services(camera_repository, registry, fake_supervisor, fake_prober, publisher):
    """Stream services wired with fakes, no settle delay"""
    return StreamServices(
        camera_repository=camera_repository,
        registry=registry,
        supervisor=fake_supervisor,
        prober=fake_prober,
        publisher=publisher,
        settle_seconds=0.05,
        diagnostic_lines=20,
    )


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "asyncio: async tests")
    config.addinivalue_line("markers", "unit: unit tests")
    config.addinivalue_line("markers", "integration: integration tests")
    config.addinivalue_line("markers", "rtsp: RTSP-related tests")
    config.addinivalue_line("markers", "encoder: tests that spawn child processes")
