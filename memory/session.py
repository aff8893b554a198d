import threading
from collections.abc import Callable
from datetime import datetime, timedelta

from memory.types import HistoryRecord, SessionState


class SessionStore:
    """Bounded per-session history, oldest record first.

    Appends for one session are serialized on that session's lock; creation
    and removal of sessions are serialized on the store lock.
    """

    def __init__(self, capacity: int = 10, clock: Callable[[], datetime] = datetime.now):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.clock = clock
        self._sessions: dict[str, SessionState] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> SessionState | None:
        return self._sessions.get(session_id)

    def get_or_create(self, session_id: str) -> SessionState:
        state = self._sessions.get(session_id)
        if state is not None:
            return state
        with self._lock:
            state = self._sessions.get(session_id)
            if state is None:
                now = self.clock()
                state = SessionState(session_id=session_id, created_at=now, last_active_at=now)
                self._sessions[session_id] = state
            return state

    def append(self, session_id: str, record: HistoryRecord) -> list[HistoryRecord]:
        """Append and evict from the front; returns the evicted records."""
        state = self.get_or_create(session_id)
        with state.lock:
            state.history.append(record)
            evicted = state.history[: -self.capacity]
            if evicted:
                del state.history[: -self.capacity]
            state.cached_aggregates = None
            state.last_active_at = self.clock()
        return evicted

    def recent(self, session_id: str, n: int) -> list[HistoryRecord]:
        if n <= 0:
            return []
        state = self._sessions.get(session_id)
        if state is None:
            return []
        with state.lock:
            return list(state.history[-n:])

    def clear(self, session_id: str) -> None:
        state = self._sessions.get(session_id)
        if state is None:
            return
        with state.lock:
            state.history.clear()
            state.cached_aggregates = None

    def drop(self, session_id: str) -> bool:
        """Destroy a session's state; returns False if it was not held."""
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def expire(self, idle: timedelta) -> list[str]:
        """Drop every session with no append for longer than ``idle``."""
        cutoff = self.clock() - idle
        with self._lock:
            stale = [
                sid
                for sid, state in self._sessions.items()
                if (state.last_active_at or state.created_at) < cutoff
            ]
            for sid in stale:
                del self._sessions[sid]
        return stale

    def __len__(self) -> int:
        return len(self._sessions)
