"""In-memory registry of stream sessions."""

import asyncio
import logging
import threading
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple

from ...domain.entities import SessionState, StreamSession

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Awaitable[StreamSession]]


class SessionRegistry:
    """
    Registry of stream sessions keyed by camera id.

    Single source of truth for "is a session running for this camera".
    At most one non-terminated session exists per camera.

    Locking:
    - a thread lock guards the maps, so ``get`` / ``remove`` never wait on
      a start in progress
    - one asyncio lock per camera serializes start / stop for that camera
      only; unrelated cameras never contend
    """

    def __init__(self, replace_wait_timeout: float = 10.0):
        """
        Args:
            replace_wait_timeout: Max seconds to wait for a stopping session
                to terminate before a new one may replace it
        """
        self.replace_wait_timeout = replace_wait_timeout
        self._sessions: Dict[str, StreamSession] = {}
        self._last_terminated: Dict[str, StreamSession] = {}
        self._camera_locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}
        self._guard = threading.RLock()

        # Metrics
        self.sessions_created = 0
        self.sessions_terminated = 0

    @asynccontextmanager
    async def lock(self, camera_id: str) -> AsyncIterator[None]:
        """
        Serialize lifecycle operations for one camera.

        Locks are reference counted and dropped once no holder or waiter
        is left, so arbitrary ids cannot grow the lock table.
        """
        with self._guard:
            lock = self._camera_locks.get(camera_id)
            if lock is None:
                lock = asyncio.Lock()
                self._camera_locks[camera_id] = lock
            self._lock_users[camera_id] = self._lock_users.get(camera_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            with self._guard:
                self._lock_users[camera_id] -= 1
                if self._lock_users[camera_id] == 0:
                    del self._lock_users[camera_id]
                    del self._camera_locks[camera_id]

    def get(self, camera_id: str) -> Optional[StreamSession]:
        """
        Current live session for a camera, or None.

        Entries whose process already exited are reconciled here so callers
        never latch onto a dead session.
        """
        with self._guard:
            session = self._sessions.get(camera_id)
            if session is None:
                return None
            if session.is_live:
                return session
            session.mark_terminated(getattr(session.process, "returncode", None))
            self._forget(session)
            return None

    def last_terminated(self, camera_id: str) -> Optional[StreamSession]:
        """Most recent terminated session for a camera (for diagnostics)."""
        with self._guard:
            return self._last_terminated.get(camera_id)

    def list_sessions(self) -> List[StreamSession]:
        with self._guard:
            return [s for s in self._sessions.values() if s.is_live]

    async def create_if_absent(
        self,
        camera_id: str,
        factory: SessionFactory,
    ) -> Tuple[StreamSession, bool]:
        """
        Return the live session for ``camera_id`` or create one.

        Check and insert are atomic per camera: concurrent callers for the
        same camera share one factory call.

        Returns:
            (session, created)
        """
        async with self.lock(camera_id):
            existing = await self._existing_or_wait(camera_id)
            if existing is not None:
                return existing, False

            session = await factory()
            with self._guard:
                if session.is_terminated:
                    # Died before it could be registered
                    self._forget(session)
                else:
                    self._sessions[camera_id] = session
                self.sessions_created += 1
            logger.debug(f"[{camera_id}] Session registered ({session.state.value})")
            return session, True

    async def _existing_or_wait(self, camera_id: str) -> Optional[StreamSession]:
        existing = self.get(camera_id)
        if existing is None:
            return None
        if existing.state != SessionState.STOPPING:
            return existing

        # The old entry may only be replaced once it is confirmed terminated
        logger.info(f"[{camera_id}] Waiting for stopping session to terminate")
        await existing.wait_terminated(timeout=self.replace_wait_timeout)
        return self.get(camera_id)

    def remove(self, camera_id: str) -> Optional[StreamSession]:
        """Remove and return the entry for a camera. Absent key is a no-op."""
        with self._guard:
            session = self._sessions.pop(camera_id, None)
            if session is not None:
                self._forget(session)
            return session

    def mark_terminated(self, session: StreamSession) -> None:
        """
        Process-exit callback from the encoder supervisor.

        Only removes the entry if it still is ``session``; a newer session
        for the same camera is left untouched.
        """
        with self._guard:
            session.mark_terminated(session.exit_code)
            self._forget(session)

    def _forget(self, session: StreamSession) -> None:
        camera_id = session.camera_id
        if self._sessions.get(camera_id) is session:
            del self._sessions[camera_id]
        if session.is_terminated and self._last_terminated.get(camera_id) is not session:
            self._last_terminated[camera_id] = session
            self.sessions_terminated += 1

    def get_stats(self) -> dict:
        sessions = self.list_sessions()
        by_state: Dict[str, int] = {}
        for session in sessions:
            by_state[session.state.value] = by_state.get(session.state.value, 0) + 1
        return {
            "active_sessions": len(sessions),
            "sessions_by_state": by_state,
            "sessions_created": self.sessions_created,
            "sessions_terminated": self.sessions_terminated,
            "camera_locks": len(self._camera_locks),
        }
