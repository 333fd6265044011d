"""
Service layer tests.

Tests the in-memory session store: registration, lookup, close and idle purge.
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import unittest
from unittest.mock import patch


class TestSessionStore(unittest.TestCase):
    """Test session registry."""

    def tearDown(self):
        from services.session_store import clear_sessions
        clear_sessions()

    def test_create_and_get(self):
        """create_session should register a session retrievable by id."""
        from services.session_store import create_session, get_session, list_sessions
        s = create_session()
        self.assertIs(get_session(s.session_id), s)
        self.assertIn(s.session_id, list_sessions())

    def test_create_uses_tuning(self):
        from gestures.tuning import GestureTuning
        from services.session_store import create_session
        s = create_session(GestureTuning(stability_ms=450))
        self.assertEqual(s.debouncer.stability_ms, 450)

    def test_close_session(self):
        """close_session should close the session and forget it."""
        from services.session_store import close_session, create_session, get_session
        s = create_session()
        self.assertTrue(close_session(s.session_id))
        self.assertTrue(s.closed)
        self.assertIsNone(get_session(s.session_id))
        self.assertFalse(close_session(s.session_id))

    def test_purge_idle_sessions(self):
        """Sessions untouched for longer than the timeout are closed."""
        import services.session_store as store
        with patch.object(store.time, "time", return_value=1000.0):
            old = store.create_session()
        with patch.object(store.time, "time", return_value=1500.0):
            fresh = store.create_session()
        with patch.object(store.time, "time", return_value=1700.0):
            purged = store.purge_idle_sessions(timeout_sec=600)
        self.assertEqual(purged, 1)
        self.assertTrue(old.closed)
        self.assertFalse(fresh.closed)
        self.assertEqual(store.list_sessions(), [fresh.session_id])

    def test_get_refreshes_last_use(self):
        import services.session_store as store
        with patch.object(store.time, "time", return_value=1000.0):
            s = store.create_session()
        with patch.object(store.time, "time", return_value=1550.0):
            store.get_session(s.session_id)
        with patch.object(store.time, "time", return_value=1700.0):
            self.assertEqual(store.purge_idle_sessions(timeout_sec=600), 0)


if __name__ == "__main__":
    unittest.main()
