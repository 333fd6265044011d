"""
Frame classifier: FacialMetricFrame -> Movement | None.

One configurable classifier replaces the open/close/smile/pucker/tongue checks
that each game used to carry. It is restricted to the movements a game cares
about, so a rhythm game that only knows open/close never reports "smile".
"""

from typing import Iterable, Optional, Tuple

from gestures.tuning import GestureTuning
from gestures.types import FacialMetricFrame, Movement

# Checked in this order; the first movement whose condition holds wins.
# Tongue and pucker go before open because they usually happen with the mouth open.
PRIORITY: Tuple[Movement, ...] = (
    Movement.TONGUE_UP,
    Movement.TONGUE_LEFT,
    Movement.TONGUE_RIGHT,
    Movement.PUCKER,
    Movement.SMILE,
    Movement.JAW_LEFT,
    Movement.JAW_RIGHT,
    Movement.OPEN,
    Movement.CLOSE,
)


class MovementClassifier:
    """
    Callable classifier. Returns None when the frame shows none of the enabled
    movements or when the metrics it needs are absent.

    Usage:
        classify = MovementClassifier(tuning, movements=[Movement.OPEN, Movement.CLOSE])
        classify(frame)  # Movement.OPEN / Movement.CLOSE / None
    """

    def __init__(self, tuning: Optional[GestureTuning] = None,
                 movements: Optional[Iterable[Movement]] = None):
        self.tuning = tuning or GestureTuning()
        enabled = set(PRIORITY if movements is None else (Movement.parse(m) for m in movements))
        self.movements: Tuple[Movement, ...] = tuple(m for m in PRIORITY if m in enabled)

    @classmethod
    def for_target(cls, target, tuning: Optional[GestureTuning] = None) -> "MovementClassifier":
        """Classifier limited to the movements a target asks for (all of them for track targets)."""
        movements = target.movements if target is not None else ()
        return cls(tuning, movements or None)

    def __call__(self, frame: FacialMetricFrame) -> Optional[Movement]:
        return self.classify(frame)

    def classify(self, frame: FacialMetricFrame) -> Optional[Movement]:
        if not frame.has_metrics:
            return None
        for movement in self.movements:
            if self.matches(movement, frame):
                return movement
        return None

    def matches(self, movement: Movement, frame: FacialMetricFrame) -> bool:
        t = self.tuning.thresholds
        if movement is Movement.OPEN:
            return frame.is_open is True
        if movement is Movement.CLOSE:
            return (frame.is_open is False
                    and frame.mouth_open_ratio is not None
                    and frame.mouth_open_ratio < t.closed_ratio_max)
        if movement is Movement.SMILE:
            return frame.smile_amount is not None and frame.smile_amount > t.smile
        if movement is Movement.PUCKER:
            return frame.protrusion is not None and frame.protrusion > t.pucker
        if movement is Movement.TONGUE_UP:
            return (frame.tongue_visible is True
                    and frame.tongue_elevation is not None
                    and frame.tongue_elevation > t.tongue_up)
        if movement is Movement.TONGUE_LEFT:
            return (frame.tongue_visible is True
                    and frame.tongue_position is not None
                    and frame.tongue_position.x < t.tongue_left)
        if movement is Movement.TONGUE_RIGHT:
            return (frame.tongue_visible is True
                    and frame.tongue_position is not None
                    and frame.tongue_position.x > t.tongue_right)
        if movement is Movement.JAW_LEFT:
            return frame.lateral_amount is not None and frame.lateral_amount < -t.lateral
        if movement is Movement.JAW_RIGHT:
            return frame.lateral_amount is not None and frame.lateral_amount > t.lateral
        return False
