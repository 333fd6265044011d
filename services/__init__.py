"""
Services package for the gesture API.

- session_store: thread-safe in-memory registry of live GestureSessions
"""

from .session_store import (
    clear_sessions,
    close_session,
    create_session,
    get_session,
    list_sessions,
    purge_idle_sessions,
)

__all__ = [
    'clear_sessions',
    'close_session',
    'create_session',
    'get_session',
    'list_sessions',
    'purge_idle_sessions',
]
