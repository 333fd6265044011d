"""
Blow intensity estimator.

Turns jaw/lip metrics into a 0-1 "breath intensity" for fill meters and
particle trails, and reports how long a blow has been sustained.

Intensity heuristic (tunable through config, not a physical law):

    opening = min(1, ratio / OPEN_THRESHOLD)
    raw     = PROTRUSION_WEIGHT * protrusion + OPENING_WEIGHT * opening
    raw    *= 1 if the mouth is open else CLOSED_FACTOR
    raw     = clip(raw, 0, 1)

raw is non-decreasing in protrusion, in ratio and in is_open. Missing inputs
mean "no blow signal" (raw 0), never a computed value from a fabricated zero.

The meter value rises toward raw with a short attack and falls toward it with
an exponential decay, both measured in milliseconds so irregular frame timing
does not change how the meter looks. Sustain is judged on raw per frame: one
frame under the threshold breaks the streak.
"""

import logging
import math
from typing import Optional

import config
from gestures.types import BlowState

logger = logging.getLogger(__name__)


class BlowIntensityEstimator:
    """
    Usage:
        blow = BlowIntensityEstimator(sustain_duration_ms=500)
        state = blow.update(frame.is_open, frame.protrusion, frame.mouth_open_ratio, frame.timestamp_ms)
        meter.fill(state.intensity)
        if state.is_sustained: ...
    """

    def __init__(
        self,
        sustain_duration_ms: Optional[int] = None,
        sustain_threshold: Optional[float] = None,
        protrusion_weight: Optional[float] = None,
        opening_weight: Optional[float] = None,
        closed_factor: Optional[float] = None,
        attack_ms: Optional[float] = None,
        decay_ms: Optional[float] = None,
        open_ratio: Optional[float] = None,
    ):
        self.sustain_duration_ms = int(config.SUSTAIN_DURATION_MS if sustain_duration_ms is None else sustain_duration_ms)
        self.sustain_threshold = float(config.SUSTAIN_THRESHOLD if sustain_threshold is None else sustain_threshold)
        self.protrusion_weight = float(config.BLOW_PROTRUSION_WEIGHT if protrusion_weight is None else protrusion_weight)
        self.opening_weight = float(config.BLOW_OPENING_WEIGHT if opening_weight is None else opening_weight)
        self.closed_factor = float(config.BLOW_CLOSED_FACTOR if closed_factor is None else closed_factor)
        self.attack_ms = float(config.BLOW_ATTACK_MS if attack_ms is None else attack_ms)
        self.decay_ms = float(config.BLOW_DECAY_MS if decay_ms is None else decay_ms)
        self.open_ratio = float(config.OPEN_THRESHOLD if open_ratio is None else open_ratio)
        if self.sustain_duration_ms < 0:
            raise ValueError("sustain_duration_ms must be >= 0")
        if not 0.0 <= self.sustain_threshold <= 1.0:
            raise ValueError("sustain_threshold must be within 0-1")
        if min(self.protrusion_weight, self.opening_weight, self.closed_factor) < 0:
            raise ValueError("blow weights must be >= 0")
        if self.open_ratio <= 0:
            raise ValueError("open_ratio must be > 0")
        self.reset()

    def reset(self) -> None:
        """Clear all accumulated state. Call at the start of every round."""
        self._intensity = 0.0
        self._last_ms: Optional[int] = None
        self._streak_since: Optional[int] = None
        self._sustained_logged = False
        self._state = BlowState()

    @property
    def state(self) -> BlowState:
        return self._state

    @property
    def intensity(self) -> float:
        return self._intensity

    def raw_intensity(self, is_open: Optional[bool], protrusion: Optional[float],
                      ratio: Optional[float]) -> float:
        """Unsmoothed intensity for one frame (see module docstring)."""
        if is_open is None or protrusion is None or ratio is None:
            return 0.0
        if not (math.isfinite(protrusion) and math.isfinite(ratio)):
            return 0.0
        opening = min(1.0, max(0.0, ratio) / self.open_ratio)
        raw = self.protrusion_weight * min(1.0, max(0.0, protrusion)) + self.opening_weight * opening
        if not is_open:
            raw *= self.closed_factor
        return min(1.0, max(0.0, raw))

    def update(self, is_open: Optional[bool], protrusion: Optional[float],
               ratio: Optional[float], now_ms: int) -> BlowState:
        return self.feed(self.raw_intensity(is_open, protrusion, ratio), now_ms)

    def feed(self, raw_intensity: float, now_ms: int) -> BlowState:
        """Advance the meter and sustain timer with an already computed raw intensity."""
        now = int(now_ms)
        if self._last_ms is not None and now <= self._last_ms:
            return self._state
        raw = raw_intensity if math.isfinite(raw_intensity) else 0.0
        raw = min(1.0, max(0.0, raw))

        if self._last_ms is None:
            self._intensity = raw
        else:
            dt = now - self._last_ms
            tau = self.attack_ms if raw > self._intensity else self.decay_ms
            keep = math.exp(-dt / tau) if tau > 0 else 0.0
            self._intensity = raw + (self._intensity - raw) * keep
        self._last_ms = now

        blowing = raw >= self.sustain_threshold
        if blowing:
            if self._streak_since is None:
                self._streak_since = now
        else:
            if self._streak_since is not None and self._sustained_logged:
                logger.debug("Sustained blow ended after %d ms", now - self._streak_since)
            self._streak_since = None
            self._sustained_logged = False

        duration = now - self._streak_since if self._streak_since is not None else 0
        sustained = blowing and duration >= self.sustain_duration_ms
        if sustained and not self._sustained_logged:
            self._sustained_logged = True
            logger.debug("Blow sustained for %d ms", duration)

        self._state = BlowState(
            intensity=self._intensity,
            raw_intensity=raw,
            is_blowing=blowing,
            is_sustained=sustained,
            blowing_since_ms=self._streak_since,
            sustained_since_ms=(self._streak_since + self.sustain_duration_ms) if sustained else None,
            duration_ms=duration,
        )
        return self._state
