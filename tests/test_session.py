"""
Gesture session tests: full frame pipeline, tally, round reset and teardown.
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import unittest


def make_session(**overrides):
    from gestures.session import GestureSession
    from gestures.tuning import GestureTuning
    params = dict(stability_ms=300, cooldown_ms=2000, match_window_ms=0,
                  timing_tolerance_ms=400)
    params.update(overrides)
    return GestureSession(GestureTuning(**params), session_id="test")


def run(session, frames):
    events = []
    for f in frames:
        events.extend(session.process_frame(f).events)
    return events


class TestSingleMovementSession(unittest.TestCase):

    def test_held_open_gives_one_hit_per_cooldown(self):
        from gestures.types import EventKind, Movement, SingleMovementTarget
        from tests.fixtures.synthetic_frames import open_frame, stream
        s = make_session()
        s.set_target(SingleMovementTarget(Movement.OPEN), 0)
        events = run(s, stream(open_frame, 0, 1000))
        self.assertEqual([e.kind for e in events], [EventKind.HIT])
        self.assertEqual(events[0].timestamp_ms, 300)
        self.assertEqual(s.tally.hits, 1)

    def test_dropout_mid_gesture_delays_hit(self):
        from gestures.types import Movement, SingleMovementTarget
        from tests.fixtures.synthetic_frames import no_face_frame, open_frame, stream
        s = make_session()
        s.set_target(SingleMovementTarget(Movement.OPEN), 0)
        frames = stream(open_frame, 0, 200) + [no_face_frame(250)] + stream(open_frame, 300, 700)
        events = run(s, frames)
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].timestamp_ms, 600)
        self.assertEqual(s.tally.frames_without_data, 1)

    def test_pucker_target_ignores_open(self):
        from gestures.types import EventKind, Movement, SingleMovementTarget
        from tests.fixtures.synthetic_frames import open_frame, pucker_frame, stream
        s = make_session()
        s.set_target(SingleMovementTarget(Movement.PUCKER), 0)
        self.assertEqual(run(s, stream(open_frame, 0, 1000)), [])
        events = run(s, stream(pucker_frame, 1050, 1500))
        self.assertEqual([e.kind for e in events], [EventKind.HIT])
        self.assertEqual(events[0].timestamp_ms, 1350)

    def test_blow_state_reported(self):
        from gestures.types import Movement, SingleMovementTarget
        from tests.fixtures.synthetic_frames import blow_frame, stream
        s = make_session(sustain_duration_ms=500)
        s.set_target(SingleMovementTarget(Movement.PUCKER), 0)
        update = None
        for f in stream(blow_frame, 0, 500):
            update = s.process_frame(f)
        self.assertTrue(update.blow_state.is_sustained)
        self.assertGreater(update.blow_state.intensity, 0.9)


class TestRhythmSession(unittest.TestCase):

    def test_copy_the_beat_from_frames(self):
        from gestures.types import Beat, EventKind, Movement, RhythmSequenceTarget
        from tests.fixtures.synthetic_frames import closed_frame, open_frame, stream
        s = make_session()
        s.set_target(RhythmSequenceTarget(beats=(
            Beat(Movement.OPEN, 0), Beat(Movement.OPEN, 600), Beat(Movement.CLOSE, 1200))), 0)
        events = run(s, stream(open_frame, 0, 650) + stream(closed_frame, 700, 1100))
        self.assertEqual([e.kind for e in events], [EventKind.CYCLE])
        self.assertEqual(events[0].timestamp_ms, 1000)
        self.assertEqual(s.tally.cycles, 1)
        self.assertEqual(s.matcher.cycle_start_ms, 3000)


class TestTrackSession(unittest.TestCase):

    def test_pointer_trace(self):
        from gestures.track import PolylinePath
        from gestures.types import ContinuousTrackTarget, EventKind
        s = make_session(line_tolerance=10)
        s.set_target(ContinuousTrackTarget(PolylinePath([(10, 50), (90, 50)])), 0)
        for i, x in enumerate(range(10, 91, 10)):
            update = s.process_pointer(x, 52, i * 16)
            self.assertTrue(update.on_track)
        events, result = s.release_pointer(None, None, 200)
        self.assertEqual([e.kind for e in events], [EventKind.TRACK_COMPLETE])
        self.assertTrue(result.success)
        self.assertEqual(s.tally.track_successes, 1)
        self.assertTrue(s.summary()["lastTrackResult"]["success"])

    def test_pointer_without_track_target(self):
        from gestures.types import Movement, SingleMovementTarget
        s = make_session()
        s.set_target(SingleMovementTarget(Movement.OPEN), 0)
        self.assertIsNone(s.process_pointer(10, 10, 0))
        self.assertEqual(s.release_pointer(10, 10, 10), ([], None))


class TestLifecycle(unittest.TestCase):

    def test_reset_clears_round(self):
        from gestures.types import Movement, SingleMovementTarget, StableState
        from tests.fixtures.synthetic_frames import open_frame, stream
        s = make_session()
        s.set_target(SingleMovementTarget(Movement.OPEN), 0)
        run(s, stream(open_frame, 0, 400))
        s.reset()
        self.assertEqual(s.tally.hits, 0)
        self.assertIsNone(s.target)
        self.assertEqual(s.debouncer.state, StableState())
        self.assertEqual(s.blow.intensity, 0.0)

    def test_close_emits_nothing(self):
        from gestures.types import Movement, SingleMovementTarget
        from tests.fixtures.synthetic_frames import open_frame, stream
        seen = []
        s = make_session()
        s.on_event = seen.append
        s.set_target(SingleMovementTarget(Movement.OPEN), 0)
        run(s, stream(open_frame, 0, 200))
        s.close()
        self.assertEqual(run(s, stream(open_frame, 250, 3000)), [])
        self.assertEqual(seen, [])
        self.assertTrue(s.summary()["closed"])
        with self.assertRaises(RuntimeError):
            s.set_target(SingleMovementTarget(Movement.OPEN), 4000)

    def test_target_swap_restarts_confirmation(self):
        from gestures.types import Movement, SingleMovementTarget
        from tests.fixtures.synthetic_frames import open_frame, stream
        s = make_session()
        s.set_target(SingleMovementTarget(Movement.PUCKER), 0)
        run(s, stream(open_frame, 0, 500))
        s.set_target(SingleMovementTarget(Movement.OPEN), 520)
        events = run(s, stream(open_frame, 550, 900))
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].timestamp_ms, 850)

    def test_summary_shape(self):
        s = make_session()
        summary = s.summary()
        self.assertEqual(summary["sessionId"], "test")
        self.assertIsNone(summary["target"])
        self.assertEqual(summary["tally"]["hits"], 0)
        self.assertIn("stabilityMs", summary["tuning"])

    def test_updates_carry_tally_snapshot(self):
        from gestures.types import Movement, SingleMovementTarget
        from tests.fixtures.synthetic_frames import open_frame, stream
        s = make_session()
        s.set_target(SingleMovementTarget(Movement.OPEN), 0)
        updates = s.process_frames(stream(open_frame, 0, 400))
        self.assertEqual(updates[5].tally.hits, 0)
        self.assertEqual(updates[5].tally.frames, 6)
        self.assertEqual(updates[-1].tally.hits, 1)
        self.assertEqual(updates[-1].tally.frames, 9)
        self.assertIsNot(updates[-1].tally, s.tally)
        self.assertEqual(updates[-1].to_dict()["tally"]["hits"], 1)


if __name__ == "__main__":
    unittest.main()
