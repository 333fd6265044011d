"""
Shared types for the gesture core.

FacialMetricFrame is what the metric source hands us every camera tick;
StableState, GestureEvent and BlowState are what we hand back to the game.
Targets describe what the game currently expects (one movement, a rhythm or a
path to trace).

Every metric on a frame is optional: a metric source that has not warmed up, or
that cannot see the tongue, reports None. None is never the same as 0.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple, Union

import config
from gestures.track import TrackPath, path_from_dict


class Movement(Enum):
    """Movements a child can be asked to produce."""
    OPEN = "open"
    CLOSE = "close"
    SMILE = "smile"
    PUCKER = "pucker"
    TONGUE_LEFT = "tongue_left"
    TONGUE_RIGHT = "tongue_right"
    TONGUE_UP = "tongue_up"
    JAW_LEFT = "jaw_left"
    JAW_RIGHT = "jaw_right"

    @classmethod
    def parse(cls, value: Union[str, "Movement"]) -> "Movement":
        """
        Parse a movement from its value or name. Rhythm patterns say "closed",
        so that is accepted as an alias for CLOSE.

        Raises:
            ValueError: if the value is not a known movement
        """
        if isinstance(value, Movement):
            return value
        if not isinstance(value, str):
            raise ValueError(f"movement must be a string, got {type(value).__name__}")
        key = value.strip().lower().replace("-", "_").replace(" ", "_")
        if key == "closed":
            key = "close"
        for m in cls:
            if m.value == key:
                return m
        raise ValueError(f"unknown movement: {value!r}")


class SourceStatus(Enum):
    """State of the metric source for one frame."""
    TRACKING = "tracking"        # face found, metrics valid
    NO_FACE = "no_face"          # camera running, nobody detected
    UNAVAILABLE = "unavailable"  # no camera / permission denied / not started


class EventKind(Enum):
    HIT = "hit"
    MISS = "miss"
    CYCLE = "cycle"
    TRACK_COMPLETE = "track_complete"
    TRACK_FAILED = "track_failed"


class TargetKind(Enum):
    SINGLE_MOVEMENT = "single_movement"
    RHYTHM_SEQUENCE = "rhythm_sequence"
    CONTINUOUS_TRACK = "continuous_track"


def _metric(value: Any, name: str, lo: Optional[float] = 0.0, hi: Optional[float] = 1.0) -> Optional[float]:
    """Coerce a metric to float; non-finite or out-of-range values become absent."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number, got {type(value).__name__}")
    v = float(value)
    if not math.isfinite(v):
        return None
    if (lo is not None and v < lo) or (hi is not None and v > hi):
        return None
    return v


def _flag(value: Any, name: str) -> Optional[bool]:
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be a boolean, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class TonguePosition:
    """Tongue tip position relative to the mouth box (0-1 on both axes)."""
    x: float
    y: float


@dataclass
class FacialMetricFrame:
    """
    One sample from the metric source.

    Float metrics are either finite and in range, or None. Out-of-range and
    non-finite values are stored as None so downstream code never reads a
    fabricated zero.
    """
    timestamp_ms: int
    status: SourceStatus = SourceStatus.TRACKING
    mouth_open_ratio: Optional[float] = None  # lip gap, domain scale (~0.028-0.038 thresholds)
    is_open: Optional[bool] = None            # ratio with hysteresis applied by the source
    smile_amount: Optional[float] = None      # 0 neutral .. 1 big smile
    protrusion: Optional[float] = None        # 0 retracted .. 1 pucker
    tongue_visible: Optional[bool] = None
    tongue_position: Optional[TonguePosition] = None
    tongue_elevation: Optional[float] = None  # 0 down .. 1 touching the palate
    lateral_amount: Optional[float] = None    # jaw: -1 left .. 1 right

    def __post_init__(self):
        if isinstance(self.timestamp_ms, bool) or not isinstance(self.timestamp_ms, (int, float)):
            raise ValueError("timestamp_ms must be a number")
        if not math.isfinite(float(self.timestamp_ms)):
            raise ValueError("timestamp_ms must be finite")
        self.timestamp_ms = int(self.timestamp_ms)
        if not isinstance(self.status, SourceStatus):
            self.status = SourceStatus(self.status)
        self.mouth_open_ratio = _metric(self.mouth_open_ratio, "mouth_open_ratio", 0.0, None)
        self.is_open = _flag(self.is_open, "is_open")
        self.smile_amount = _metric(self.smile_amount, "smile_amount")
        self.protrusion = _metric(self.protrusion, "protrusion")
        self.tongue_visible = _flag(self.tongue_visible, "tongue_visible")
        self.tongue_elevation = _metric(self.tongue_elevation, "tongue_elevation")
        self.lateral_amount = _metric(self.lateral_amount, "lateral_amount", -1.0, 1.0)
        if self.tongue_position is not None:
            tx = _metric(self.tongue_position.x, "tongue_position.x")
            ty = _metric(self.tongue_position.y, "tongue_position.y")
            self.tongue_position = TonguePosition(tx, ty) if tx is not None and ty is not None else None

    @property
    def has_metrics(self) -> bool:
        """True when the source is tracking a face (metrics may still be partly absent)."""
        return self.status is SourceStatus.TRACKING

    @classmethod
    def unavailable(cls, timestamp_ms: int, status: SourceStatus = SourceStatus.UNAVAILABLE) -> "FacialMetricFrame":
        return cls(timestamp_ms=timestamp_ms, status=status)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FacialMetricFrame":
        """
        Build a frame from the JSON form sent by game clients.

        Accepts camelCase keys (timestampMs, mouthOpenRatio, isOpen, smileAmount,
        protrusion, tongueVisible / isTongueVisible, tonguePosition {x, y},
        tongueElevation, lateralAmount, status). A frame without a status is
        tracking if it carries any metric, else no_face.

        Raises:
            ValueError: on missing timestamp or wrongly typed values
        """
        if not isinstance(data, dict):
            raise ValueError("frame must be a JSON object")
        ts = data.get("timestampMs", data.get("timestamp_ms"))
        if ts is None:
            raise ValueError("frame is missing timestampMs")
        tp = data.get("tonguePosition")
        tongue_position = None
        if tp is not None:
            if not isinstance(tp, dict) or "x" not in tp or "y" not in tp:
                raise ValueError("tonguePosition must be an object with x and y")
            tongue_position = TonguePosition(tp["x"], tp["y"])
        metrics = dict(
            mouth_open_ratio=data.get("mouthOpenRatio", data.get("ratio")),
            is_open=data.get("isOpen"),
            smile_amount=data.get("smileAmount"),
            protrusion=data.get("protrusion"),
            tongue_visible=data.get("tongueVisible", data.get("isTongueVisible")),
            tongue_position=tongue_position,
            tongue_elevation=data.get("tongueElevation"),
            lateral_amount=data.get("lateralAmount"),
        )
        status = data.get("status")
        if status is None:
            has_any = any(v is not None for v in metrics.values())
            status = SourceStatus.TRACKING if has_any else SourceStatus.NO_FACE
        else:
            try:
                status = SourceStatus(status)
            except ValueError:
                raise ValueError(f"unknown frame status: {status!r}") from None
        return cls(timestamp_ms=ts, status=status, **metrics)


@dataclass(frozen=True)
class StableState:
    """
    Debounced reading of the classifier.

    confirmed is False until some classification (possibly None, "at rest") has
    been held for the stability time. available is False while the metric source
    has no data; no confirmed state exists then.
    """
    classification: Optional[Movement] = None
    since_ms: Optional[int] = None
    confirmed: bool = False
    available: bool = False

    def held_for(self, now_ms: int) -> int:
        if self.since_ms is None:
            return 0
        return max(0, now_ms - self.since_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "classification": self.classification.value if self.classification else None,
            "sinceMs": self.since_ms,
            "confirmed": self.confirmed,
            "available": self.available,
        }


@dataclass(frozen=True)
class GestureEvent:
    """Discrete outcome pushed to the game. Consumed once."""
    kind: EventKind
    timestamp_ms: int
    matched_movement: Optional[Movement] = None
    within_tolerance: bool = True
    cycle: bool = False
    beat_index: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "timestampMs": self.timestamp_ms,
            "matchedMovement": self.matched_movement.value if self.matched_movement else None,
            "withinTolerance": self.within_tolerance,
            "cycle": self.cycle,
            "beatIndex": self.beat_index,
        }


@dataclass(frozen=True)
class BlowState:
    intensity: float = 0.0           # smoothed, for the meter (0-1)
    raw_intensity: float = 0.0       # this frame's unsmoothed value (0-1)
    is_blowing: bool = False         # raw intensity at or above the sustain threshold
    is_sustained: bool = False
    blowing_since_ms: Optional[int] = None
    sustained_since_ms: Optional[int] = None
    duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intensity": round(self.intensity, 4),
            "rawIntensity": round(self.raw_intensity, 4),
            "isBlowing": self.is_blowing,
            "isSustained": self.is_sustained,
            "blowingSinceMs": self.blowing_since_ms,
            "sustainedSinceMs": self.sustained_since_ms,
            "durationMs": self.duration_ms,
        }


# ============================================================================
# TARGETS
# ============================================================================

@dataclass(frozen=True)
class SingleMovementTarget:
    """
    One movement to produce. With match_window_ms set, only gestures inside
    [cue_time_ms, cue_time_ms + match_window_ms] count; cue_time_ms defaults to
    the moment the target is set.
    """
    movement: Movement
    cue_time_ms: Optional[int] = None
    match_window_ms: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "movement", Movement.parse(self.movement))
        if self.match_window_ms is not None and self.match_window_ms < 0:
            raise ValueError("match_window_ms must be >= 0")

    @property
    def kind(self) -> TargetKind:
        return TargetKind.SINGLE_MOVEMENT

    @property
    def movements(self) -> Tuple[Movement, ...]:
        return (self.movement,)


@dataclass(frozen=True)
class Beat:
    movement: Movement
    offset_ms: int

    def __post_init__(self):
        object.__setattr__(self, "movement", Movement.parse(self.movement))
        if self.offset_ms < 0:
            raise ValueError("beat offset_ms must be >= 0")


@dataclass(frozen=True)
class RhythmSequenceTarget:
    """
    Ordered beats at fixed offsets from the cycle start. timing_tolerance_ms of
    None means "use the session tuning". cycle_start_ms of None means "the
    moment the target is set".
    """
    beats: Tuple[Beat, ...]
    timing_tolerance_ms: Optional[int] = None
    cycle_start_ms: Optional[int] = None
    repeat: bool = True

    def __post_init__(self):
        beats = tuple(self.beats)
        if not beats:
            raise ValueError("a rhythm needs at least one beat")
        for prev, nxt in zip(beats, beats[1:]):
            if nxt.offset_ms < prev.offset_ms:
                raise ValueError("beat offsets must be non-decreasing")
        if self.timing_tolerance_ms is not None and self.timing_tolerance_ms < 0:
            raise ValueError("timing_tolerance_ms must be >= 0")
        object.__setattr__(self, "beats", beats)

    @classmethod
    def evenly_spaced(
        cls,
        movements: Iterable[Union[str, Movement]],
        spacing_ms: Optional[int] = None,
        **kwargs,
    ) -> "RhythmSequenceTarget":
        spacing = config.BEAT_SPACING_MS if spacing_ms is None else spacing_ms
        beats = tuple(Beat(Movement.parse(m), i * spacing) for i, m in enumerate(movements))
        return cls(beats=beats, **kwargs)

    @property
    def kind(self) -> TargetKind:
        return TargetKind.RHYTHM_SEQUENCE

    @property
    def movements(self) -> Tuple[Movement, ...]:
        seen = []
        for b in self.beats:
            if b.movement not in seen:
                seen.append(b.movement)
        return tuple(seen)


@dataclass(frozen=True)
class ContinuousTrackTarget:
    """Pointer tracing along a path in 0-100 normalized coordinates."""
    path: TrackPath
    line_tolerance: Optional[float] = None
    path_id: str = ""

    def __post_init__(self):
        if self.line_tolerance is not None and self.line_tolerance < 0:
            raise ValueError("line_tolerance must be >= 0")

    @property
    def kind(self) -> TargetKind:
        return TargetKind.CONTINUOUS_TRACK

    @property
    def movements(self) -> Tuple[Movement, ...]:
        return ()


GestureTarget = Union[SingleMovementTarget, RhythmSequenceTarget, ContinuousTrackTarget]


def _finite_number(value: Any, key: str) -> Union[int, float]:
    """JSON numbers only; NaN and Infinity (accepted by Python's json) are rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"{key} must be finite")
    return value


def _optional_int(data: Dict[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    return int(_finite_number(value, key))


def target_from_dict(data: Dict[str, Any]) -> GestureTarget:
    """
    Parse a target from its JSON form.

    Examples:
        {"kind": "single_movement", "movement": "pucker", "matchWindowMs": 5000}
        {"kind": "rhythm_sequence", "beats": [{"movement": "open", "offsetMs": 0}, ...],
         "timingToleranceMs": 400}
        {"kind": "rhythm_sequence", "movements": ["open", "open", "closed"], "spacingMs": 600}
        {"kind": "continuous_track", "path": {"type": "arc", ...}, "lineTolerance": 25}

    Raises:
        ValueError: on unknown kinds or malformed fields
    """
    if not isinstance(data, dict):
        raise ValueError("target must be a JSON object")
    try:
        kind = TargetKind(data.get("kind"))
    except ValueError:
        raise ValueError(f"unknown target kind: {data.get('kind')!r}") from None

    if kind is TargetKind.SINGLE_MOVEMENT:
        if "movement" not in data:
            raise ValueError("single_movement target needs a movement")
        return SingleMovementTarget(
            movement=Movement.parse(data["movement"]),
            cue_time_ms=_optional_int(data, "cueTimeMs"),
            match_window_ms=_optional_int(data, "matchWindowMs"),
        )

    if kind is TargetKind.RHYTHM_SEQUENCE:
        common = dict(
            timing_tolerance_ms=_optional_int(data, "timingToleranceMs"),
            cycle_start_ms=_optional_int(data, "cycleStartMs"),
            repeat=bool(data.get("repeat", True)),
        )
        if "beats" in data:
            raw_beats = data["beats"]
            if not isinstance(raw_beats, list):
                raise ValueError("beats must be a list")
            beats = []
            for b in raw_beats:
                if not isinstance(b, dict) or "movement" not in b:
                    raise ValueError("each beat needs a movement")
                offset = b.get("offsetMs", b.get("timing"))
                if offset is None:
                    raise ValueError("each beat needs a numeric offsetMs")
                beats.append(Beat(Movement.parse(b["movement"]), int(_finite_number(offset, "offsetMs"))))
            return RhythmSequenceTarget(beats=tuple(beats), **common)
        movements = data.get("movements")
        if not isinstance(movements, list):
            raise ValueError("rhythm_sequence target needs beats or movements")
        return RhythmSequenceTarget.evenly_spaced(movements, _optional_int(data, "spacingMs"), **common)

    path = data.get("path")
    if not isinstance(path, dict):
        raise ValueError("continuous_track target needs a path object")
    tol = data.get("lineTolerance")
    return ContinuousTrackTarget(
        path=path_from_dict(path),
        line_tolerance=None if tol is None else float(_finite_number(tol, "lineTolerance")),
        path_id=str(data.get("pathId", path.get("id", ""))),
    )
