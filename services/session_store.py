"""
In-memory registry of live gesture sessions for the HTTP API.

Sessions are keyed by id and touched on every request; purge_idle_sessions()
closes the ones nobody has used for SESSION_IDLE_TIMEOUT_SEC (a game tab that was
closed without DELETE). Nothing is persisted.
"""

import logging
import threading
import time
from typing import Dict, List, Optional

import config
from gestures.session import GestureSession
from gestures.tuning import GestureTuning

logger = logging.getLogger(__name__)

_sessions: Dict[str, GestureSession] = {}
_last_used: Dict[str, float] = {}
_lock = threading.Lock()


def create_session(tuning: Optional[GestureTuning] = None) -> GestureSession:
    """Create and register a new session. Thread-safe."""
    session = GestureSession(tuning)
    with _lock:
        _sessions[session.session_id] = session
        _last_used[session.session_id] = time.time()
    return session


def get_session(session_id: str) -> Optional[GestureSession]:
    """Return the session and mark it as used, or None if unknown. Thread-safe."""
    with _lock:
        session = _sessions.get(session_id)
        if session is not None:
            _last_used[session_id] = time.time()
        return session


def close_session(session_id: str) -> bool:
    """Close and forget a session. False if it did not exist."""
    with _lock:
        session = _sessions.pop(session_id, None)
        _last_used.pop(session_id, None)
    if session is None:
        return False
    session.close()
    return True


def purge_idle_sessions(timeout_sec: Optional[float] = None) -> int:
    """Close sessions idle for longer than timeout_sec. Returns how many were closed."""
    timeout = config.SESSION_IDLE_TIMEOUT_SEC if timeout_sec is None else timeout_sec
    cutoff = time.time() - timeout
    with _lock:
        stale = [sid for sid, t in _last_used.items() if t < cutoff]
        closed = [_sessions.pop(sid) for sid in stale if sid in _sessions]
        for sid in stale:
            _last_used.pop(sid, None)
    for session in closed:
        session.close()
    if closed:
        logger.info("Purged %d idle gesture session(s)", len(closed))
    return len(closed)


def list_sessions() -> List[str]:
    """Ids of live sessions. Thread-safe."""
    with _lock:
        return list(_sessions)


def clear_sessions() -> None:
    """Close everything (shutdown, tests)."""
    with _lock:
        sessions = list(_sessions.values())
        _sessions.clear()
        _last_used.clear()
    for session in sessions:
        session.close()
