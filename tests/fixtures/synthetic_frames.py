"""
Synthetic metric frame streams for debouncer, matcher and session tests.

Frames are deterministic: the same pose always yields the same metrics, so
expected confirmations and events can be worked out from timestamps alone.
"""

from typing import Callable, List

from gestures.types import FacialMetricFrame, SourceStatus

FRAME_MS = 50


def open_frame(ts: int) -> FacialMetricFrame:
    return FacialMetricFrame(ts, mouth_open_ratio=0.06, is_open=True, smile_amount=0.0, protrusion=0.2)


def closed_frame(ts: int) -> FacialMetricFrame:
    return FacialMetricFrame(ts, mouth_open_ratio=0.01, is_open=False, smile_amount=0.0, protrusion=0.1)


def rest_frame(ts: int) -> FacialMetricFrame:
    """Tracking, but no movement: lips slightly apart, not open, not closed."""
    return FacialMetricFrame(ts, mouth_open_ratio=0.032, is_open=False, smile_amount=0.0, protrusion=0.1)


def pucker_frame(ts: int) -> FacialMetricFrame:
    return FacialMetricFrame(ts, mouth_open_ratio=0.02, is_open=False, smile_amount=0.0, protrusion=0.8)


def blow_frame(ts: int) -> FacialMetricFrame:
    """Lips pushed forward with the mouth open: strong blow signal."""
    return FacialMetricFrame(ts, mouth_open_ratio=0.045, is_open=True, smile_amount=0.0, protrusion=0.9)


def no_face_frame(ts: int) -> FacialMetricFrame:
    return FacialMetricFrame.unavailable(ts, SourceStatus.NO_FACE)


def stream(make: Callable[[int], FacialMetricFrame], start: int, end: int,
           step: int = FRAME_MS) -> List[FacialMetricFrame]:
    """Frames from start to end inclusive, one every step ms."""
    return [make(t) for t in range(start, end + 1, step)]
