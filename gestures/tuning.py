"""
Per-game tuning.

Every game used to hard-code its own STABILITY_MS, cooldown and thresholds.
GestureTuning collects them in one place; defaults come from config.py and a
game overrides only what it needs, e.g.

    GestureTuning.from_dict({"stabilityMs": 500, "cooldownMs": 2500})
"""

import math
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict

import config


@dataclass(frozen=True)
class ClassifierThresholds:
    closed_ratio_max: float = field(default_factory=lambda: config.CLOSED_RATIO_MAX)
    smile: float = field(default_factory=lambda: config.SMILE_THRESHOLD)
    pucker: float = field(default_factory=lambda: config.PUCKER_THRESHOLD)
    tongue_left: float = field(default_factory=lambda: config.TONGUE_LEFT_THRESHOLD)
    tongue_right: float = field(default_factory=lambda: config.TONGUE_RIGHT_THRESHOLD)
    tongue_up: float = field(default_factory=lambda: config.TONGUE_UP_THRESHOLD)
    lateral: float = field(default_factory=lambda: config.LATERAL_THRESHOLD)


@dataclass(frozen=True)
class GestureTuning:
    stability_ms: int = field(default_factory=lambda: config.STABILITY_MS)
    cooldown_ms: int = field(default_factory=lambda: config.COOLDOWN_MS)
    match_window_ms: int = field(default_factory=lambda: config.MATCH_WINDOW_MS)  # 0 = no window
    timing_tolerance_ms: int = field(default_factory=lambda: config.TIMING_TOLERANCE_MS)
    line_tolerance: float = field(default_factory=lambda: config.LINE_TOLERANCE)
    sustain_threshold: float = field(default_factory=lambda: config.SUSTAIN_THRESHOLD)
    sustain_duration_ms: int = field(default_factory=lambda: config.SUSTAIN_DURATION_MS)
    max_frame_gap_ms: int = field(default_factory=lambda: config.MAX_FRAME_GAP_MS)
    thresholds: ClassifierThresholds = field(default_factory=ClassifierThresholds)

    def __post_init__(self):
        for name in ("stability_ms", "cooldown_ms", "match_window_ms", "timing_tolerance_ms",
                     "sustain_duration_ms", "max_frame_gap_ms", "line_tolerance"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be a non-negative number")
        if not 0.0 <= self.sustain_threshold <= 1.0:
            raise ValueError("sustain_threshold must be within 0-1")
        for name, value in asdict(self.thresholds).items():
            if not math.isfinite(value):
                raise ValueError(f"threshold {name} must be finite")

    # camelCase (as games send it) -> field name
    _KEYS = {
        "stabilityMs": "stability_ms",
        "cooldownMs": "cooldown_ms",
        "matchWindowMs": "match_window_ms",
        "timingToleranceMs": "timing_tolerance_ms",
        "lineTolerance": "line_tolerance",
        "sustainThreshold": "sustain_threshold",
        "sustainDurationMs": "sustain_duration_ms",
        "maxFrameGapMs": "max_frame_gap_ms",
    }
    _THRESHOLD_KEYS = {
        "closedRatioMax": "closed_ratio_max",
        "smile": "smile",
        "pucker": "pucker",
        "tongueLeft": "tongue_left",
        "tongueRight": "tongue_right",
        "tongueUp": "tongue_up",
        "lateral": "lateral",
    }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GestureTuning":
        """
        Build tuning from camelCase overrides. Unknown keys are rejected so a
        typo in a game's config does not silently fall back to a default.

        Raises:
            ValueError: on unknown keys, non-numeric or out-of-range values
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError("tuning must be a JSON object")
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key == "thresholds":
                continue
            name = cls._KEYS.get(key)
            if name is None:
                raise ValueError(f"unknown tuning option: {key}")
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{key} must be a number")
            if not math.isfinite(value):
                raise ValueError(f"{key} must be finite")
            kwargs[name] = float(value) if name in ("line_tolerance", "sustain_threshold") else int(value)

        thresholds = data.get("thresholds")
        if thresholds is not None:
            if not isinstance(thresholds, dict):
                raise ValueError("thresholds must be a JSON object")
            t_kwargs = {}
            for key, value in thresholds.items():
                name = cls._THRESHOLD_KEYS.get(key)
                if name is None:
                    raise ValueError(f"unknown threshold: {key}")
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ValueError(f"threshold {key} must be a number")
                t_kwargs[name] = float(value)
            kwargs["thresholds"] = ClassifierThresholds(**t_kwargs)
        return cls(**kwargs)

    def with_overrides(self, **changes) -> "GestureTuning":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        out = {camel: getattr(self, name) for camel, name in self._KEYS.items()}
        out["thresholds"] = {camel: getattr(self.thresholds, name) for camel, name in self._THRESHOLD_KEYS.items()}
        return out
