"""
Stability debouncer.

Landmark jitter makes the per-frame classification flicker. A classification is
only trusted ("confirmed") after it has been seen on every frame for
stability_ms. While a new classification is still accumulating dwell time the
last confirmed state is held, so the game does not see open->None->open flapping.

Dwell time is measured from frame timestamps, never from how often update() is
called: duplicate or out-of-order frames are ignored and a dropout (no face, no
camera, or a long gap between frames) restarts accumulation from zero.
"""

import logging
from typing import Callable, Optional

import config
from gestures.types import FacialMetricFrame, Movement, StableState

logger = logging.getLogger(__name__)

_UNSET = object()


class StabilityDebouncer:
    """
    Converts a noisy per-frame classification into confirmed state changes.

    Usage:
        debouncer = StabilityDebouncer(MovementClassifier(tuning), stability_ms=300)
        state = debouncer.update(frame)
        if state.confirmed and state.classification is Movement.OPEN:
            ...
    """

    def __init__(
        self,
        classify: Callable[[FacialMetricFrame], Optional[Movement]],
        stability_ms: Optional[int] = None,
        max_frame_gap_ms: Optional[int] = None,
        on_change: Optional[Callable[[StableState], None]] = None,
    ):
        """
        Args:
            classify: Pure function frame -> Movement or None
            stability_ms: Dwell time before a classification is confirmed (default: config.STABILITY_MS)
            max_frame_gap_ms: Larger gaps between frames count as a dropout (default: config.MAX_FRAME_GAP_MS)
            on_change: Optional callback called with the new StableState on every confirmed change
        """
        self.classify = classify
        self.stability_ms = int(config.STABILITY_MS if stability_ms is None else stability_ms)
        self.max_frame_gap_ms = int(config.MAX_FRAME_GAP_MS if max_frame_gap_ms is None else max_frame_gap_ms)
        if self.stability_ms < 0 or self.max_frame_gap_ms < 0:
            raise ValueError("stability_ms and max_frame_gap_ms must be >= 0")
        self.on_change = on_change
        self.reset()

    def reset(self) -> None:
        """Forget everything (round boundary / teardown)."""
        self._raw = _UNSET
        self._raw_since: Optional[int] = None
        self._last_ms: Optional[int] = None
        self._state = StableState()

    @property
    def state(self) -> StableState:
        return self._state

    @property
    def has_data(self) -> bool:
        return self._state.available

    @property
    def dwell_ms(self) -> int:
        """How long the current raw classification has been held (0 without data)."""
        if self._raw_since is None or self._last_ms is None:
            return 0
        return self._last_ms - self._raw_since

    def update(self, frame: FacialMetricFrame, now_ms: Optional[int] = None) -> StableState:
        now = frame.timestamp_ms if now_ms is None else int(now_ms)

        if self._last_ms is not None and now <= self._last_ms:
            # Duplicate or stale frame: already accounted for.
            return self._state

        if not frame.has_metrics:
            self._drop(now, frame.status.value)
            return self._state

        raw = self.classify(frame)
        gap = self._last_ms is not None and now - self._last_ms > self.max_frame_gap_ms
        if gap:
            # A dropout is not evidence the pose was held: start over.
            logger.debug("Frame gap of %d ms, restarting dwell", now - self._last_ms)
            self._set(StableState(available=True))
        if self._raw is _UNSET or raw != self._raw or gap:
            self._raw = raw
            self._raw_since = now
        self._last_ms = now

        if not self._state.available:
            # Data is back but nothing is confirmed yet.
            self._set(StableState(available=True))

        dwell = now - self._raw_since
        current = self._state
        if dwell >= self.stability_ms and not (current.confirmed and current.classification == raw):
            self._set(StableState(classification=raw, since_ms=self._raw_since, confirmed=True, available=True))
        return self._state

    def _drop(self, now: int, reason: str) -> None:
        was_available = self._state.available
        self._raw = _UNSET
        self._raw_since = None
        self._last_ms = now
        if was_available:
            logger.debug("Metric source lost (%s), clearing confirmed state", reason)
            self._set(StableState())
        else:
            self._state = StableState()

    def _set(self, state: StableState) -> None:
        previous = self._state
        self._state = state
        if state.confirmed and not (previous.confirmed and previous.classification == state.classification):
            logger.debug("Confirmed %s since %s", state.classification, state.since_ms)
        if self.on_change is not None and state != previous:
            self.on_change(state)
