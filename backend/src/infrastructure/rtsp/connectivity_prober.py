"""Connectivity probe for source streams."""

import asyncio
import cv2
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from concurrent.futures import ThreadPoolExecutor

from ...core.exceptions import SourceUnreachableError
from .url_resolver import redact_url

logger = logging.getLogger(__name__)

# Global thread pool for blocking cv2 operations
_thread_pool = ThreadPoolExecutor(max_workers=50, thread_name_prefix="probe_")


class ProbeOutcome(str, Enum):
    REACHABLE = "reachable"
    UNREACHABLE = "unreachable"


@dataclass(frozen=True)
class ProbeResult:
    outcome: ProbeOutcome
    detail: str = ""
    elapsed_seconds: float = 0.0

    @property
    def reachable(self) -> bool:
        return self.outcome == ProbeOutcome.REACHABLE


class ConnectivityProber:
    """
    Short, time-bounded read against a source address.

    The result is advisory only. A session start never waits on or fails
    because of an unreachable outcome: some cameras reject a quick test
    read and still stream once a real session connects. Do not turn this
    into a gate.

    The timeout is enforced around the blocking read from outside. The
    worker thread is left to finish on its own; the caller never waits
    past ``timeout`` seconds.
    """

    def __init__(self, timeout: float = 5.0):
        """
        Initialize prober.

        Args:
            timeout: Hard budget for open + first frame read (seconds)
        """
        self.timeout = timeout

        # Metrics
        self.probes = 0
        self.unreachable = 0

    @staticmethod
    def _read_one_frame(source_url: str) -> None:
        """Open the stream and read a single frame (blocking)."""
        cap = cv2.VideoCapture(source_url, cv2.CAP_FFMPEG)
        try:
            if not cap.isOpened():
                raise SourceUnreachableError("Stream could not be opened")
            ret, frame = cap.read()
            if not ret or frame is None:
                raise SourceUnreachableError("No frame received")
        finally:
            cap.release()

    async def probe(self, source_url: str, camera_id: Optional[str] = None) -> ProbeResult:
        """
        Check whether ``source_url`` appears reachable.

        Never raises and never blocks longer than ``self.timeout``.
        """
        tag = camera_id or "probe"
        self.probes += 1
        loop = asyncio.get_running_loop()
        started = loop.time()

        try:
            await asyncio.wait_for(
                loop.run_in_executor(_thread_pool, self._read_one_frame, source_url),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            result = ProbeResult(ProbeOutcome.UNREACHABLE, f"timeout after {self.timeout}s")
        except SourceUnreachableError as e:
            result = ProbeResult(ProbeOutcome.UNREACHABLE, e.message)
        except Exception as e:
            result = ProbeResult(ProbeOutcome.UNREACHABLE, f"probe error: {e}")
        else:
            result = ProbeResult(ProbeOutcome.REACHABLE, "frame received")

        result = ProbeResult(result.outcome, result.detail, round(loop.time() - started, 3))

        if result.reachable:
            logger.info(f"[{tag}] Probe reachable: {redact_url(source_url)} ({result.elapsed_seconds}s)")
        else:
            self.unreachable += 1
            logger.warning(
                f"[{tag}] Probe unreachable: {redact_url(source_url)} ({result.detail}), continuing anyway"
            )
        return result

    def get_stats(self) -> dict:
        return {
            "probes": self.probes,
            "unreachable": self.unreachable,
            "timeout_seconds": self.timeout,
        }
