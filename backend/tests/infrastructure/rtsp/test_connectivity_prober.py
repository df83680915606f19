"""
Connectivity Prober Unit Tests

cv2.VideoCapture is patched; no network access.

Tests:
    - Reachable when a frame is read
    - Unreachable when open fails, no frame arrives, or the read hangs
    - Probe never raises and never exceeds its timeout
    - Capture is always released

Usage:
    pytest backend/tests/infrastructure/rtsp/test_connectivity_prober.py -v
"""

import time
from unittest.mock import MagicMock, patch

import pytest

from src.infrastructure.rtsp import ConnectivityProber, ProbeOutcome

CAPTURE = "src.infrastructure.rtsp.connectivity_prober.cv2.VideoCapture"


def fake_capture(opened=True, frame=object(), read_delay=0.0):
    cap = MagicMock()
    cap.isOpened.return_value = opened

    def read():
        if read_delay:
            time.sleep(read_delay)
        return (frame is not None, frame)

    cap.read.side_effect = read
    return cap


@pytest.mark.rtsp
class TestConnectivityProber:
    """Test probe outcomes"""

    @pytest.mark.asyncio
    async def test_reachable(self):
        cap = fake_capture()
        prober = ConnectivityProber(timeout=1.0)
        with patch(CAPTURE, return_value=cap):
            result = await prober.probe("rtsp://10.0.0.5:554/stream", "cam1")

        assert result.outcome == ProbeOutcome.REACHABLE
        assert result.reachable
        cap.release.assert_called_once()

    @pytest.mark.asyncio
    async def test_open_failure_is_unreachable(self):
        cap = fake_capture(opened=False)
        prober = ConnectivityProber(timeout=1.0)
        with patch(CAPTURE, return_value=cap):
            result = await prober.probe("rtsp://10.0.0.5:554/stream")

        assert result.outcome == ProbeOutcome.UNREACHABLE
        assert "could not be opened" in result.detail
        cap.release.assert_called_once()

    @pytest.mark.asyncio
    async def test_no_frame_is_unreachable(self):
        prober = ConnectivityProber(timeout=1.0)
        with patch(CAPTURE, return_value=fake_capture(frame=None)):
            result = await prober.probe("rtsp://10.0.0.5:554/stream")

        assert not result.reachable
        assert result.detail == "No frame received"

    @pytest.mark.asyncio
    async def test_hanging_read_times_out(self):
        prober = ConnectivityProber(timeout=0.1)
        with patch(CAPTURE, return_value=fake_capture(read_delay=1.0)):
            started = time.monotonic()
            result = await prober.probe("rtsp://10.0.0.5:554/stream")
            elapsed = time.monotonic() - started

        assert result.outcome == ProbeOutcome.UNREACHABLE
        assert "timeout" in result.detail
        assert elapsed < 0.9

    @pytest.mark.asyncio
    async def test_unexpected_error_does_not_raise(self):
        prober = ConnectivityProber(timeout=1.0)
        with patch(CAPTURE, side_effect=RuntimeError("backend missing")):
            result = await prober.probe("rtsp://10.0.0.5:554/stream")

        assert not result.reachable
        assert "backend missing" in result.detail

    @pytest.mark.asyncio
    async def test_stats(self):
        prober = ConnectivityProber(timeout=1.0)
        with patch(CAPTURE, return_value=fake_capture(opened=False)):
            await prober.probe("rtsp://a/1")
            await prober.probe("rtsp://a/2")

        stats = prober.get_stats()
        assert stats["probes"] == 2
        assert stats["unreachable"] == 2
