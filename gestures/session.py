"""
Gesture session: one game round's worth of gesture state.

Wires the classifier, stability debouncer, gesture matcher and blow estimator
behind a single lifecycle so a game (or the HTTP layer) only has to:

    session = GestureSession(GestureTuning.from_dict(game_tuning))
    session.set_target(SingleMovementTarget(Movement.PUCKER), now_ms)
    update = session.process_frame(frame)      # every camera tick
    for event in update.events: ...
    session.reset()                            # round boundary
    session.close()                            # leaving the game

The session keeps a tally of outcomes for the external orchestrator, which owns
scoring and progression.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from gestures.blow import BlowIntensityEstimator
from gestures.classifiers import MovementClassifier
from gestures.debouncer import StabilityDebouncer
from gestures.matcher import GestureMatcher
from gestures.track import TrackResult, TrackUpdate
from gestures.tuning import GestureTuning
from gestures.types import (
    BlowState,
    EventKind,
    FacialMetricFrame,
    GestureEvent,
    GestureTarget,
    StableState,
)

logger = logging.getLogger(__name__)


@dataclass
class Tally:
    """Per-round outcome counts."""
    hits: int = 0
    misses: int = 0
    cycles: int = 0
    track_successes: int = 0
    track_failures: int = 0
    frames: int = 0
    frames_without_data: int = 0

    def count(self, event: GestureEvent) -> None:
        if event.kind is EventKind.HIT:
            self.hits += 1
        elif event.kind is EventKind.MISS:
            self.misses += 1
        elif event.kind is EventKind.CYCLE:
            self.cycles += 1
        elif event.kind is EventKind.TRACK_COMPLETE:
            self.track_successes += 1
        elif event.kind is EventKind.TRACK_FAILED:
            self.track_failures += 1

    def to_dict(self) -> Dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "cycles": self.cycles,
            "trackSuccesses": self.track_successes,
            "trackFailures": self.track_failures,
            "frames": self.frames,
            "framesWithoutData": self.frames_without_data,
        }


@dataclass
class SessionUpdate:
    """What one processed frame produced, with the tally as it stood afterwards."""
    stable_state: StableState
    blow_state: BlowState
    events: List[GestureEvent] = field(default_factory=list)
    tally: Optional[Tally] = None

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "stableState": self.stable_state.to_dict(),
            "blow": self.blow_state.to_dict(),
            "events": [e.to_dict() for e in self.events],
        }
        if self.tally is not None:
            out["tally"] = self.tally.to_dict()
        return out


class GestureSession:
    """
    Per-round gesture pipeline for one child and one game.

    Calls are serialized with a lock so the HTTP layer can share a session
    between request threads.
    """

    def __init__(self, tuning: Optional[GestureTuning] = None, session_id: Optional[str] = None,
                 on_event: Optional[Callable[[GestureEvent], None]] = None):
        self.session_id = session_id or uuid.uuid4().hex
        self.tuning = tuning or GestureTuning()
        self.on_event = on_event
        self._lock = threading.RLock()
        self._closed = False
        self.classifier = MovementClassifier(self.tuning)
        self.debouncer = StabilityDebouncer(
            self.classifier,
            stability_ms=self.tuning.stability_ms,
            max_frame_gap_ms=self.tuning.max_frame_gap_ms,
        )
        self.matcher = GestureMatcher(self.tuning, on_event=self._on_matcher_event)
        self.blow = BlowIntensityEstimator(
            sustain_duration_ms=self.tuning.sustain_duration_ms,
            sustain_threshold=self.tuning.sustain_threshold,
        )
        self.tally = Tally()
        self.last_frame_ms: Optional[int] = None
        logger.info("Gesture session %s created", self.session_id)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def target(self) -> Optional[GestureTarget]:
        return self.matcher.target

    def _on_matcher_event(self, event: GestureEvent) -> None:
        self.tally.count(event)
        if self.on_event is not None:
            self.on_event(event)

    def set_target(self, target: GestureTarget, now_ms: int) -> None:
        """
        Switch to a new target. The classifier is narrowed to the target's movements
        and the debouncer starts over, since a state confirmed under the old movement
        set means nothing for the new one.

        Raises:
            RuntimeError: if the session has been closed
        """
        with self._lock:
            if self._closed:
                raise RuntimeError(f"session {self.session_id} is closed")
            self.classifier = MovementClassifier.for_target(target, self.tuning)
            self.debouncer.classify = self.classifier
            self.debouncer.reset()
            self.matcher.set_target(target, now_ms)

    def process_frame(self, frame: FacialMetricFrame) -> SessionUpdate:
        """Run one metric frame through debouncer, matcher and blow estimator."""
        with self._lock:
            if self._closed:
                return SessionUpdate(StableState(), self.blow.state, [], replace(self.tally))
            self.tally.frames += 1
            if not frame.has_metrics:
                self.tally.frames_without_data += 1
            self.last_frame_ms = frame.timestamp_ms
            state = self.debouncer.update(frame)
            events = self.matcher.update(state, frame.timestamp_ms)
            blow = self.blow.update(frame.is_open, frame.protrusion, frame.mouth_open_ratio, frame.timestamp_ms)
            return SessionUpdate(state, blow, events, replace(self.tally))

    def process_frames(self, frames: List[FacialMetricFrame]) -> List[SessionUpdate]:
        """A batch is processed under one lock hold, so no other call lands in between."""
        with self._lock:
            return [self.process_frame(f) for f in frames]

    def process_pointer(self, x: float, y: float, now_ms: int) -> Optional[TrackUpdate]:
        """Pointer move for tracing targets. None when there is no track target."""
        with self._lock:
            if self._closed:
                return None
            return self.matcher.update_pointer(x, y, now_ms)

    def release_pointer(
        self, x: Optional[float], y: Optional[float], now_ms: int
    ) -> Tuple[List[GestureEvent], Optional[TrackResult]]:
        """Pointer lifted. Returns the events and the attempt's result (None if nothing was judged)."""
        with self._lock:
            if self._closed:
                return [], None
            events = self.matcher.release_pointer(x, y, now_ms)
            result = self.matcher.last_track_result if events else None
            return events, result

    def reset(self) -> None:
        """Round boundary: clears confirmed state, target progress, blow meter and tally."""
        with self._lock:
            self.debouncer.reset()
            self.matcher.reset()
            self.blow.reset()
            self.tally = Tally()
            self.last_frame_ms = None
            logger.info("Gesture session %s reset", self.session_id)

    def close(self) -> None:
        """Teardown. Nothing is emitted after this, even for frames still in flight."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self.matcher.close()
            self.debouncer.reset()
            self.blow.reset()
            logger.info("Gesture session %s closed", self.session_id)

    def summary(self) -> Dict[str, Any]:
        with self._lock:
            target = self.matcher.target
            out: Dict[str, Any] = {
                "sessionId": self.session_id,
                "closed": self._closed,
                "target": target.kind.value if target is not None else None,
                "tally": self.tally.to_dict(),
                "stableState": self.debouncer.state.to_dict(),
                "blow": self.blow.state.to_dict(),
                "beatIndex": self.matcher.beat_index,
                "trackProgress": round(self.matcher.progress, 4),
                "tuning": self.tuning.to_dict(),
            }
            if self.matcher.last_track_result is not None:
                out["lastTrackResult"] = self.matcher.last_track_result.to_dict()
            return out
