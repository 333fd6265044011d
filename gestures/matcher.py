"""
Gesture matcher.

Decides whether the child's confirmed state satisfies what the game currently
expects, and emits at most one GestureEvent per physical gesture:

  - Single movement: the confirmed state is the match signal. A cooldown gives
    one credit per gesture rather than one per frame the pose is held. An
    optional window after a demonstration cue limits when imitations count; a
    window that closes without a match is reported as a miss.
  - Rhythm sequence: beats at fixed offsets from the cycle start; a beat is
    accepted only when timing (inclusive tolerance) and movement are both right.
    A completed cycle emits one cycle event; the next cycle starts after the
    cooldown. A beat whose window passes unmatched is a miss.
  - Continuous track: pointer tracing, delegated to PathTracker.

All timing is evaluated on every update from the caller's clock; nothing relies
on timers firing. Missing data (no face, no camera) is neither a hit nor a miss.
"""

import logging
from typing import Callable, List, Optional

from gestures.track import PathTracker, TrackResult, TrackUpdate
from gestures.tuning import GestureTuning
from gestures.types import (
    ContinuousTrackTarget,
    EventKind,
    GestureEvent,
    GestureTarget,
    RhythmSequenceTarget,
    SingleMovementTarget,
    StableState,
)

logger = logging.getLogger(__name__)


class GestureMatcher:
    """
    Matches confirmed states (or pointer positions) against one target at a time.

    Usage:
        matcher = GestureMatcher(tuning)
        matcher.set_target(SingleMovementTarget(Movement.OPEN), now_ms)
        for event in matcher.update(debouncer.update(frame), frame.timestamp_ms):
            ...
    """

    def __init__(self, tuning: Optional[GestureTuning] = None,
                 on_event: Optional[Callable[[GestureEvent], None]] = None):
        self.tuning = tuning or GestureTuning()
        self.on_event = on_event
        self._target: Optional[GestureTarget] = None
        self._tracker: Optional[PathTracker] = None
        self._closed = False
        self.last_track_result: Optional[TrackResult] = None
        self._clear_progress()

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def _clear_progress(self) -> None:
        self._target_set_ms: Optional[int] = None
        # single movement
        self._last_hit_ms: Optional[int] = None
        self._hits = 0
        self._window_resolved = False
        # rhythm
        self._beat_index = 0
        self._cycle_start_ms: Optional[int] = None
        self._last_cycle_ms: Optional[int] = None
        if self._tracker is not None:
            self._tracker.reset()

    def set_target(self, target: GestureTarget, now_ms: int) -> None:
        """Replace the current target. All progress from the previous target is discarded."""
        if self._closed:
            raise RuntimeError("matcher has been closed")
        self._tracker = None
        self._target = target
        self._clear_progress()
        self.last_track_result = None
        self._target_set_ms = int(now_ms)
        if isinstance(target, RhythmSequenceTarget):
            self._cycle_start_ms = int(now_ms if target.cycle_start_ms is None else target.cycle_start_ms)
        elif isinstance(target, ContinuousTrackTarget):
            tol = self.tuning.line_tolerance if target.line_tolerance is None else target.line_tolerance
            self._tracker = PathTracker(target.path, tol)
        logger.info("Target set: %s at %d", target.kind.value, now_ms)

    def clear_target(self) -> None:
        self._tracker = None
        self._target = None
        self._clear_progress()

    def reset(self) -> None:
        """Round boundary: drop the target with all its progress, cooldowns and pending windows."""
        self.clear_target()
        self.last_track_result = None

    def close(self) -> None:
        """Teardown. After this no event is ever emitted."""
        self.clear_target()
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def target(self) -> Optional[GestureTarget]:
        return self._target

    @property
    def beat_index(self) -> int:
        return self._beat_index

    @property
    def cycle_start_ms(self) -> Optional[int]:
        return self._cycle_start_ms

    @property
    def progress(self) -> float:
        return self._tracker.progress if self._tracker is not None else 0.0

    # ------------------------------------------------------------------
    # per-frame matching
    # ------------------------------------------------------------------

    def update(self, state: StableState, now_ms: int) -> List[GestureEvent]:
        """Evaluate the confirmed state at now_ms. Returns the events emitted on this tick."""
        if self._closed or self._target is None:
            return []
        now = int(now_ms)
        if isinstance(self._target, SingleMovementTarget):
            events = self._update_single(self._target, state, now)
        elif isinstance(self._target, RhythmSequenceTarget):
            events = self._update_rhythm(self._target, state, now)
        else:
            events = []
        for event in events:
            self._emit(event)
        return events

    def _is_held(self, state: StableState, movement, now: int) -> bool:
        return (
            state.available
            and state.confirmed
            and state.classification is movement
            and state.held_for(now) >= self.tuning.stability_ms
        )

    def _update_single(self, target: SingleMovementTarget, state: StableState, now: int) -> List[GestureEvent]:
        if self._window_resolved:
            return []
        window = target.match_window_ms
        if window is None and self.tuning.match_window_ms > 0:
            window = self.tuning.match_window_ms
        cue = self._target_set_ms if target.cue_time_ms is None else target.cue_time_ms

        if window is not None:
            if now < cue:
                return []
            if now > cue + window:
                self._window_resolved = True
                if self._hits == 0:
                    logger.debug("Match window for %s closed without a match", target.movement.value)
                    return [GestureEvent(EventKind.MISS, now, target.movement, within_tolerance=False)]
                return []

        if not self._is_held(state, target.movement, now):
            return []
        if self._last_hit_ms is not None and now - self._last_hit_ms < self.tuning.cooldown_ms:
            return []
        self._last_hit_ms = now
        self._hits += 1
        logger.debug("Matched %s at %d", target.movement.value, now)
        return [GestureEvent(EventKind.HIT, now, target.movement, within_tolerance=True)]

    def _update_rhythm(self, target: RhythmSequenceTarget, state: StableState, now: int) -> List[GestureEvent]:
        if self._cycle_start_ms is None:
            return []
        tolerance = self.tuning.timing_tolerance_ms if target.timing_tolerance_ms is None else target.timing_tolerance_ms
        beat = target.beats[self._beat_index]
        elapsed = now - self._cycle_start_ms
        offset_error = elapsed - beat.offset_ms

        if abs(offset_error) <= tolerance:
            if self._is_held(state, beat.movement, now):
                self._beat_index += 1
                logger.debug("Beat %d (%s) matched, %+d ms", self._beat_index - 1, beat.movement.value, offset_error)
                if self._beat_index >= len(target.beats):
                    return [self._complete_cycle(target, now)]
            return []

        if offset_error > tolerance:
            # The beat's window passed without the right movement.
            missed = self._beat_index
            logger.debug("Beat %d (%s) missed", missed, beat.movement.value)
            self._restart_cycle(target, now)
            return [GestureEvent(EventKind.MISS, now, beat.movement, within_tolerance=False, beat_index=missed)]
        return []

    def _complete_cycle(self, target: RhythmSequenceTarget, now: int) -> GestureEvent:
        self._last_cycle_ms = now
        logger.debug("Rhythm cycle complete at %d", now)
        last = target.beats[-1].movement
        self._restart_cycle(target, now)
        return GestureEvent(EventKind.CYCLE, now, last, within_tolerance=True, cycle=True)

    def _restart_cycle(self, target: RhythmSequenceTarget, now: int) -> None:
        self._beat_index = 0
        if target.repeat:
            self._cycle_start_ms = now + self.tuning.cooldown_ms
        else:
            self._cycle_start_ms = None

    # ------------------------------------------------------------------
    # pointer tracing
    # ------------------------------------------------------------------

    def update_pointer(self, x: float, y: float, now_ms: int) -> Optional[TrackUpdate]:
        """Feed a pointer position. None when the current target is not a track."""
        if self._closed or self._tracker is None:
            return None
        return self._tracker.update(x, y, now_ms)

    def release_pointer(self, x: Optional[float], y: Optional[float], now_ms: int) -> List[GestureEvent]:
        """
        End the tracing attempt. Emits one track_complete or track_failed event;
        the detailed outcome is kept in last_track_result.
        """
        if self._closed or self._tracker is None:
            return []
        result = self._tracker.release(x, y, now_ms)
        self.last_track_result = result
        kind = EventKind.TRACK_COMPLETE if result.success else EventKind.TRACK_FAILED
        event = GestureEvent(kind, int(now_ms), None, within_tolerance=not result.ever_off_track)
        self._emit(event)
        return [event]

    def _emit(self, event: GestureEvent) -> None:
        if self.on_event is not None:
            self.on_event(event)
