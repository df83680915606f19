"""
StreamSession Entity Unit Tests

Tests:
    - Lifecycle transitions (probing -> starting -> active -> stopping -> terminated)
    - Terminated is final and idempotent
    - Liveness follows the process return code
    - Diagnostic tail is bounded
    - Serialized view exposes exit code and diagnostics only after a crash

Usage:
    pytest backend/tests/domain/test_stream_session.py -v
"""

import asyncio
from types import SimpleNamespace

import pytest

from src.domain.entities import SessionState, StreamSession


def make_session(**kwargs) -> StreamSession:
    return StreamSession(camera_id="cam1", publish_path="/api/media/live/cam1/index.m3u8", **kwargs)


class TestStreamSessionLifecycle:
    """Test state transitions"""

    def test_new_session_is_probing(self):
        session = make_session()
        assert session.state == SessionState.PROBING
        assert session.is_live
        assert not session.is_terminated

    def test_full_lifecycle(self):
        session = make_session()
        session.mark_starting()
        session.mark_active()
        session.mark_stopping()
        session.mark_terminated(-15)

        assert session.state == SessionState.TERMINATED
        assert session.exit_code == -15
        assert session.terminated_at is not None

    def test_mark_active_is_idempotent(self):
        session = make_session()
        session.mark_starting()
        session.mark_active()
        session.mark_active()
        assert session.state == SessionState.ACTIVE
        assert session.last_healthy_at is not None

    def test_cannot_skip_starting(self):
        session = make_session()
        with pytest.raises(ValueError):
            session.mark_active()

    def test_terminated_is_final(self):
        session = make_session()
        session.mark_terminated(1)
        session.mark_terminated(0)

        assert session.exit_code == 1
        with pytest.raises(ValueError):
            session.mark_starting()

    @pytest.mark.asyncio
    async def test_wait_terminated(self):
        session = make_session()
        assert await session.wait_terminated(timeout=0.01) is False

        asyncio.get_running_loop().call_later(0.01, session.mark_terminated, 0)
        assert await session.wait_terminated(timeout=1.0) is True


class TestStreamSessionHealth:
    """Test liveness and diagnostics"""

    def test_exited_process_is_not_live(self):
        session = make_session(process=SimpleNamespace(returncode=None))
        assert session.is_live

        session.process.returncode = 1
        assert not session.is_live

    def test_crashed_only_on_nonzero_exit(self):
        clean = make_session()
        clean.mark_terminated(0)
        crashed = make_session()
        crashed.mark_terminated(1)

        assert not clean.crashed
        assert crashed.crashed

    def test_requested_stop_is_not_a_crash(self):
        session = make_session()
        session.mark_starting()
        session.mark_stopping()
        assert session.stop_requested

        session.mark_terminated(-15)

        assert not session.crashed
        assert "diagnostics" not in session.to_dict()

    def test_diagnostic_tail_is_bounded(self):
        session = make_session(diagnostic_lines=3)
        for i in range(10):
            session.add_diagnostic(f"line {i}")

        assert session.diagnostic_tail() == "line 7\nline 8\nline 9"

    def test_to_dict_running(self):
        session = make_session()
        data = session.to_dict()

        assert data["cameraId"] == "cam1"
        assert data["state"] == "probing"
        assert data["publishPath"] == "/api/media/live/cam1/index.m3u8"
        assert "lastExitCode" not in data

    def test_to_dict_crashed_includes_diagnostics(self):
        session = make_session()
        session.add_diagnostic("Connection refused")
        session.mark_terminated(1)
        data = session.to_dict()

        assert data["lastExitCode"] == 1
        assert data["diagnostics"] == "Connection refused"
