"""
Mouth metric extractor tests using synthetic face-mesh landmarks.

MediaPipe itself is not exercised here; the extractor is pure numpy.
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import unittest


def make_extractor(**kwargs):
    from gestures.mouth_metrics import MouthMetricExtractor
    kwargs.setdefault("ema_alpha", 1.0)
    return MouthMetricExtractor(**kwargs)


class TestOpenClose(unittest.TestCase):

    def test_ratio_is_lip_gap(self):
        from gestures.types import SourceStatus
        from tests.fixtures.synthetic_landmarks import make_mouth_landmarks
        frame = make_extractor().extract(make_mouth_landmarks(gap=0.05), 0)
        self.assertEqual(frame.status, SourceStatus.TRACKING)
        self.assertAlmostEqual(frame.mouth_open_ratio, 0.05)
        self.assertTrue(frame.is_open)

    def test_hysteresis(self):
        from tests.fixtures.synthetic_landmarks import make_mouth_landmarks
        ex = make_extractor()
        gaps = [0.02, 0.04, 0.03, 0.025, 0.035, 0.039]
        expected = [False, True, True, False, False, True]
        got = [ex.extract(make_mouth_landmarks(gap=g), i * 33).is_open for i, g in enumerate(gaps)]
        self.assertEqual(got, expected)

    def test_ema_smoothing(self):
        from tests.fixtures.synthetic_landmarks import make_mouth_landmarks
        ex = make_extractor(ema_alpha=0.25)
        first = ex.extract(make_mouth_landmarks(gap=0.01), 0)
        self.assertAlmostEqual(first.mouth_open_ratio, 0.01)
        second = ex.extract(make_mouth_landmarks(gap=0.05), 33)
        self.assertAlmostEqual(second.mouth_open_ratio, 0.25 * 0.05 + 0.75 * 0.01)
        # One wide frame is not enough to count as open.
        self.assertFalse(second.is_open)

    def test_pixel_landmarks(self):
        from tests.fixtures.synthetic_landmarks import make_mouth_landmarks, to_pixels
        lm = to_pixels(make_mouth_landmarks(gap=0.05), (640, 480))
        frame = make_extractor().extract(lm, 0, frame_size=(640, 480))
        self.assertAlmostEqual(frame.mouth_open_ratio, 0.05)
        with self.assertRaises(ValueError):
            make_extractor().extract(lm, 0)

    def test_invalid_thresholds(self):
        with self.assertRaises(ValueError):
            make_extractor(open_threshold=0.02, close_threshold=0.03)


class TestProtrusionAndLateral(unittest.TestCase):

    def test_protrusion_formula(self):
        from tests.fixtures.synthetic_landmarks import make_mouth_landmarks
        ex = make_extractor()
        frame = ex.extract(make_mouth_landmarks(gap=0.01), 0)
        self.assertAlmostEqual(frame.protrusion, (0.01 - 0.02 + 0.05) * 10)
        frame = ex.extract(make_mouth_landmarks(gap=0.1), 33)
        self.assertEqual(frame.protrusion, 1.0)

    def test_lateral_amount_and_position(self):
        from tests.fixtures.synthetic_landmarks import make_mouth_landmarks
        ex = make_extractor()
        frame = ex.extract(make_mouth_landmarks(mouth_width=0.12, chin_offset=0.012), 0)
        self.assertAlmostEqual(frame.lateral_amount, 0.012 / 0.12 * 2.5)
        self.assertEqual(ex.lateral_position, "right")
        # 0.1 is below the enter threshold but above the release threshold: stays right.
        ex.extract(make_mouth_landmarks(mouth_width=0.12, chin_offset=0.0048), 33)
        self.assertEqual(ex.lateral_position, "right")
        ex.extract(make_mouth_landmarks(mouth_width=0.12, chin_offset=0.0), 66)
        self.assertEqual(ex.lateral_position, "center")
        frame = ex.extract(make_mouth_landmarks(mouth_width=0.12, chin_offset=-0.2), 99)
        self.assertEqual(frame.lateral_amount, -1.0)
        self.assertEqual(ex.lateral_position, "left")


class TestSmileAndTongue(unittest.TestCase):

    def test_smile_absent_until_calibrated(self):
        from tests.fixtures.synthetic_landmarks import make_mouth_landmarks
        ex = make_extractor(calibration_frames=5)
        for i in range(5):
            frame = ex.extract(make_mouth_landmarks(mouth_width=0.12), i * 33)
            self.assertIsNone(frame.smile_amount)
        self.assertTrue(ex.is_calibrated)
        frame = ex.extract(make_mouth_landmarks(mouth_width=0.12), 200)
        self.assertAlmostEqual(frame.smile_amount, 0.0)
        frame = ex.extract(make_mouth_landmarks(mouth_width=0.132), 233)
        self.assertAlmostEqual(frame.smile_amount, 0.4)
        frame = ex.extract(make_mouth_landmarks(mouth_width=0.2), 266)
        self.assertEqual(frame.smile_amount, 1.0)

    def test_open_mouth_frames_not_used_for_calibration(self):
        from tests.fixtures.synthetic_landmarks import make_mouth_landmarks
        ex = make_extractor(calibration_frames=3)
        for i in range(10):
            ex.extract(make_mouth_landmarks(gap=0.06), i * 33)
        self.assertFalse(ex.is_calibrated)

    def test_reset_clears_calibration(self):
        from tests.fixtures.synthetic_landmarks import make_mouth_landmarks
        ex = make_extractor(calibration_frames=2)
        ex.extract(make_mouth_landmarks(), 0)
        ex.extract(make_mouth_landmarks(), 33)
        self.assertTrue(ex.is_calibrated)
        ex.reset()
        self.assertFalse(ex.is_calibrated)
        self.assertEqual(ex.lateral_position, "center")

    def test_tongue_metrics_absent(self):
        from tests.fixtures.synthetic_landmarks import make_mouth_landmarks
        frame = make_extractor().extract(make_mouth_landmarks(), 0)
        self.assertIsNone(frame.tongue_visible)
        self.assertIsNone(frame.tongue_position)
        self.assertIsNone(frame.tongue_elevation)


class TestNoFace(unittest.TestCase):

    def test_none_and_short_arrays(self):
        import numpy as np
        from gestures.types import SourceStatus
        ex = make_extractor()
        self.assertEqual(ex.extract(None, 0).status, SourceStatus.NO_FACE)
        frame = ex.extract(np.zeros((100, 3)), 33)
        self.assertEqual(frame.status, SourceStatus.NO_FACE)
        self.assertFalse(frame.has_metrics)

    def test_malformed_array(self):
        import numpy as np
        with self.assertRaises(ValueError):
            make_extractor().extract(np.zeros(10), 0)


if __name__ == "__main__":
    unittest.main()
