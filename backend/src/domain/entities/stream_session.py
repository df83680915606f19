"""StreamSession Entity - Streaming session business logic"""
import asyncio
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, Optional
from enum import Enum


class SessionState(str, Enum):
    """Stream session lifecycle state"""
    IDLE = "idle"
    PROBING = "probing"
    STARTING = "starting"
    ACTIVE = "active"
    STOPPING = "stopping"
    TERMINATED = "terminated"


# Allowed forward transitions. TERMINATED is reachable from every live state.
_TRANSITIONS = {
    SessionState.PROBING: {SessionState.STARTING, SessionState.TERMINATED},
    SessionState.STARTING: {SessionState.ACTIVE, SessionState.STOPPING, SessionState.TERMINATED},
    SessionState.ACTIVE: {SessionState.STOPPING, SessionState.TERMINATED},
    SessionState.STOPPING: {SessionState.TERMINATED},
    SessionState.TERMINATED: set(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(eq=False)
class StreamSession:
    """
    StreamSession Entity - One supervised transcode-and-publish attempt

    Owned by the session registry. The encoder supervisor mutates the
    process fields and drives the state transitions.
    """
    camera_id: str
    publish_path: str
    output_dir: str = ""
    state: SessionState = SessionState.PROBING
    created_at: datetime = field(default_factory=_utcnow)
    last_healthy_at: Optional[datetime] = None
    terminated_at: Optional[datetime] = None
    process: Any = None
    exit_code: Optional[int] = None
    diagnostic_lines: int = 50
    stop_requested: bool = False
    diagnostics: Deque[str] = field(init=False)
    _terminated: asyncio.Event = field(init=False, repr=False)

    def __post_init__(self):
        self.diagnostics = deque(maxlen=self.diagnostic_lines)
        self._terminated = asyncio.Event()

    # ---- lifecycle -----------------------------------------------------

    def _transition(self, new_state: SessionState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise ValueError(
                f"Invalid session transition for {self.camera_id}: "
                f"{self.state.value} -> {new_state.value}"
            )
        self.state = new_state

    def mark_starting(self) -> None:
        """Probe finished, process is being launched"""
        self._transition(SessionState.STARTING)

    def mark_active(self) -> None:
        """Output is being published"""
        if self.state == SessionState.ACTIVE:
            return
        self._transition(SessionState.ACTIVE)
        self.touch()

    def mark_stopping(self) -> None:
        """Stop was requested. The flag outlives the STOPPING state."""
        self._transition(SessionState.STOPPING)
        self.stop_requested = True

    def mark_terminated(self, exit_code: Optional[int] = None) -> None:
        """Process is gone. Idempotent."""
        if self.state == SessionState.TERMINATED:
            return
        self._transition(SessionState.TERMINATED)
        self.exit_code = exit_code
        self.terminated_at = _utcnow()
        self._terminated.set()

    async def wait_terminated(self, timeout: Optional[float] = None) -> bool:
        """Wait until the session terminates. Returns False on timeout."""
        try:
            await asyncio.wait_for(self._terminated.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False

    # ---- health --------------------------------------------------------

    @property
    def is_terminated(self) -> bool:
        return self.state == SessionState.TERMINATED

    @property
    def is_live(self) -> bool:
        """Registered and its process (if any) has not exited yet"""
        if self.is_terminated:
            return False
        returncode = getattr(self.process, "returncode", None)
        return returncode is None

    @property
    def crashed(self) -> bool:
        """Ended on its own with a failure code"""
        return self.is_terminated and not self.stop_requested and self.exit_code not in (None, 0)

    def touch(self) -> None:
        """Record that the session was seen healthy"""
        self.last_healthy_at = _utcnow()

    def add_diagnostic(self, line: str) -> None:
        self.diagnostics.append(line)

    def diagnostic_tail(self) -> str:
        return "\n".join(self.diagnostics)

    def get_duration(self) -> float:
        """Get session duration in seconds"""
        end_time = self.terminated_at or _utcnow()
        return (end_time - self.created_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "cameraId": self.camera_id,
            "state": self.state.value,
            "publishPath": self.publish_path,
            "createdAt": self.created_at.isoformat(),
            "lastHealthyAt": self.last_healthy_at.isoformat() if self.last_healthy_at else None,
            "durationSeconds": round(self.get_duration(), 2),
        }
        if self.is_terminated:
            data["lastExitCode"] = self.exit_code
            if self.crashed:
                data["diagnostics"] = self.diagnostic_tail()
        return data
