"""
Path geometry and pointer tracking for trace/drag games.

All coordinates live in a 0-100 normalized space. Two path shapes are supported:
an arc (rainbow, swing, semicircle tracks) and a polyline (roads, train tracks,
straight lines). Both answer the same two questions for a pointer position:
how far is it from the path, and how far along the path is it (0-1).

A degenerate path (zero radius, zero sweep, zero length) is a point target:
distance is the plain Euclidean distance to that point.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

import config

logger = logging.getLogger(__name__)

Point = Tuple[float, float]

_TWO_PI = 2.0 * math.pi
_EPS = 1e-9


def _as_point(value: Any, name: str = "point") -> Point:
    try:
        x, y = value
        x, y = float(x), float(y)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an (x, y) pair") from None
    if not (math.isfinite(x) and math.isfinite(y)):
        raise ValueError(f"{name} must be finite")
    return (x, y)


def _dist(a: Point, b: Point) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


class TrackPath(ABC):
    """A path the pointer has to follow."""

    @property
    @abstractmethod
    def start_point(self) -> Point:
        pass

    @property
    @abstractmethod
    def end_point(self) -> Point:
        pass

    @property
    @abstractmethod
    def is_degenerate(self) -> bool:
        """True when the path collapses to a single point."""
        pass

    @abstractmethod
    def distance(self, point: Point) -> float:
        """Minimum distance from point to the path."""
        pass

    @abstractmethod
    def progress(self, point: Point) -> Optional[float]:
        """
        Position of point along the path, 0 at the start and 1 at the end.
        None when the position is undefined (e.g. exactly at an arc's center).
        """
        pass

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        pass


class ArcPath(TrackPath):
    """
    Circular arc from start_angle to end_angle (radians, standard math
    orientation: point = center + radius * (cos a, sin a)). end_angle may be
    smaller than start_angle for a clockwise sweep.
    """

    def __init__(self, center: Point, radius: float, start_angle: float, end_angle: float):
        self.center = _as_point(center, "center")
        self.radius = float(radius)
        self.start_angle = float(start_angle)
        self.end_angle = float(end_angle)
        if not all(math.isfinite(v) for v in (self.radius, self.start_angle, self.end_angle)):
            raise ValueError("arc radius and angles must be finite")
        if self.radius < 0:
            raise ValueError("arc radius must be >= 0")
        self._sweep = self.end_angle - self.start_angle
        if abs(self._sweep) > _TWO_PI + _EPS:
            raise ValueError("arc sweep cannot exceed a full turn")

    def _point_at(self, angle: float) -> Point:
        return (
            self.center[0] + self.radius * math.cos(angle),
            self.center[1] + self.radius * math.sin(angle),
        )

    @property
    def start_point(self) -> Point:
        return self._point_at(self.start_angle)

    @property
    def end_point(self) -> Point:
        return self._point_at(self.end_angle)

    @property
    def is_degenerate(self) -> bool:
        return self.radius <= _EPS or abs(self._sweep) <= _EPS

    def _angle_from_start(self, point: Point) -> Optional[float]:
        """Angle travelled from the start toward point, in the sweep direction, in [0, 2pi)."""
        dx = point[0] - self.center[0]
        dy = point[1] - self.center[1]
        if math.hypot(dx, dy) <= _EPS:
            return None
        theta = math.atan2(dy, dx)
        d = theta - self.start_angle if self._sweep >= 0 else self.start_angle - theta
        return d % _TWO_PI

    def distance(self, point: Point) -> float:
        point = _as_point(point)
        if self.is_degenerate:
            return _dist(point, self.start_point)
        d = self._angle_from_start(point)
        if d is None:
            # Every point of the arc is exactly one radius away from the center.
            return self.radius
        if d <= abs(self._sweep) + _EPS:
            return abs(_dist(point, self.center) - self.radius)
        return min(_dist(point, self.start_point), _dist(point, self.end_point))

    def progress(self, point: Point) -> Optional[float]:
        point = _as_point(point)
        if self.is_degenerate:
            return 1.0
        d = self._angle_from_start(point)
        if d is None:
            return None
        sweep = abs(self._sweep)
        if d <= sweep:
            return min(1.0, d / sweep)
        # Outside the arc: snap to whichever end is angularly closer.
        over = d - sweep
        gap = _TWO_PI - sweep
        return 1.0 if over <= gap / 2.0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "arc",
            "center": list(self.center),
            "radius": self.radius,
            "startAngle": self.start_angle,
            "endAngle": self.end_angle,
        }


class PolylinePath(TrackPath):
    """Connected line segments. Zero-length segments are allowed and skipped."""

    def __init__(self, points: Sequence[Point]):
        pts = [_as_point(p, "polyline point") for p in points]
        if not pts:
            raise ValueError("a polyline needs at least one point")
        self._pts = np.asarray(pts, dtype=np.float64)
        self._seg = self._pts[1:] - self._pts[:-1]
        self._seg_len = np.hypot(self._seg[:, 0], self._seg[:, 1]) if len(pts) > 1 else np.zeros(0)
        self._cum = np.concatenate([[0.0], np.cumsum(self._seg_len)])
        self._total = float(self._cum[-1])

    @property
    def points(self) -> Tuple[Point, ...]:
        return tuple((float(x), float(y)) for x, y in self._pts)

    @property
    def length(self) -> float:
        return self._total

    @property
    def start_point(self) -> Point:
        return (float(self._pts[0, 0]), float(self._pts[0, 1]))

    @property
    def end_point(self) -> Point:
        return (float(self._pts[-1, 0]), float(self._pts[-1, 1]))

    @property
    def is_degenerate(self) -> bool:
        return self._total <= _EPS

    def _project(self, point: Point) -> Tuple[float, float]:
        """Return (distance to path, arc length of the closest point)."""
        p = np.asarray(point, dtype=np.float64)
        if self.is_degenerate:
            return float(np.hypot(*(p - self._pts[0]))), 0.0
        a = self._pts[:-1]
        len2 = np.einsum("ij,ij->i", self._seg, self._seg)
        safe = np.where(len2 > 0, len2, 1.0)
        t = np.where(len2 > 0, np.einsum("ij,ij->i", p - a, self._seg) / safe, 0.0)
        t = np.clip(t, 0.0, 1.0)
        proj = a + self._seg * t[:, None]
        dists = np.hypot(proj[:, 0] - p[0], proj[:, 1] - p[1])
        i = int(np.argmin(dists))
        return float(dists[i]), float(self._cum[i] + t[i] * self._seg_len[i])

    def distance(self, point: Point) -> float:
        return self._project(_as_point(point))[0]

    def progress(self, point: Point) -> Optional[float]:
        point = _as_point(point)
        if self.is_degenerate:
            return 1.0
        _, s = self._project(point)
        return float(np.clip(s / self._total, 0.0, 1.0))

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "polyline", "points": [list(p) for p in self.points]}


def path_from_dict(data: Dict[str, Any]) -> TrackPath:
    """
    Build a path from its JSON form:
        {"type": "arc", "center": [50, 60], "radius": 30, "startAngle": 0, "endAngle": 3.14159}
        {"type": "polyline", "points": [[10, 50], [90, 50]]}

    Raises:
        ValueError: on unknown types or malformed geometry
    """
    if not isinstance(data, dict):
        raise ValueError("path must be a JSON object")
    kind = str(data.get("type", "")).lower()
    try:
        if kind == "arc":
            return ArcPath(
                center=data["center"],
                radius=data["radius"],
                start_angle=data["startAngle"],
                end_angle=data["endAngle"],
            )
        if kind in ("polyline", "line"):
            points = data["points"]
            if not isinstance(points, list):
                raise ValueError("polyline points must be a list")
            return PolylinePath(points)
    except KeyError as e:
        raise ValueError(f"path is missing {e.args[0]}") from None
    except TypeError as e:
        raise ValueError(f"malformed path: {e}") from None
    raise ValueError(f"unknown path type: {data.get('type')!r}")


# ============================================================================
# POINTER TRACKING
# ============================================================================

@dataclass(frozen=True)
class TrackUpdate:
    distance: float
    on_track: bool
    progress: float
    object_position: Point
    warning: bool          # pointer is currently off the path
    ever_off_track: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "distance": round(self.distance, 4),
            "onTrack": self.on_track,
            "progress": round(self.progress, 4),
            "objectPosition": list(self.object_position),
            "warning": self.warning,
            "everWentOffTrack": self.ever_off_track,
        }


@dataclass(frozen=True)
class TrackResult:
    success: bool
    reason: str            # complete | off_track | incomplete | not_at_end | no_input
    progress: float        # progress reached before the attempt ended
    ever_off_track: bool
    end_distance: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "reason": self.reason,
            "progress": round(self.progress, 4),
            "everWentOffTrack": self.ever_off_track,
            "endDistance": None if self.end_distance is None else round(self.end_distance, 4),
        }


class PathTracker:
    """
    One tracing attempt along a path.

    While the pointer is within line_tolerance the tracked object follows it and
    progress moves forward (never backward). Once the pointer strays, the object
    freezes, a warning is reported and the attempt is marked as having gone off
    track, which makes it fail on release even if the pointer later recovers.
    """

    def __init__(self, path: TrackPath, line_tolerance: Optional[float] = None,
                 complete_progress: Optional[float] = None):
        self.path = path
        self.line_tolerance = float(config.LINE_TOLERANCE if line_tolerance is None else line_tolerance)
        if self.line_tolerance < 0:
            raise ValueError("line_tolerance must be >= 0")
        self.complete_progress = float(
            config.TRACK_COMPLETE_PROGRESS if complete_progress is None else complete_progress
        )
        self.reset()

    def reset(self) -> None:
        """Put the object back at the start and clear the attempt."""
        self._progress = 0.0
        self._ever_off_track = False
        self._object_position: Point = self.path.start_point
        self._last_point: Optional[Point] = None
        self._completed = False

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def ever_off_track(self) -> bool:
        return self._ever_off_track

    @property
    def object_position(self) -> Point:
        return self._object_position

    def update(self, x: float, y: float, now_ms: Optional[int] = None) -> TrackUpdate:
        point = _as_point((x, y), "pointer")
        if self._completed:
            # Previous attempt finished successfully; a new touch starts over.
            self.reset()
        self._last_point = point
        distance = self.path.distance(point)
        on_track = distance <= self.line_tolerance
        if on_track:
            self._object_position = point
            p = self.path.progress(point)
            if p is not None:
                self._progress = max(self._progress, p)
        elif not self._ever_off_track:
            self._ever_off_track = True
            logger.warning(
                "Pointer went off track at %s (distance %.1f > %.1f, t=%s)",
                point, distance, self.line_tolerance, now_ms,
            )
        return TrackUpdate(
            distance=distance,
            on_track=on_track,
            progress=self._progress,
            object_position=self._object_position,
            warning=not on_track,
            ever_off_track=self._ever_off_track,
        )

    def release(self, x: Optional[float] = None, y: Optional[float] = None,
                now_ms: Optional[int] = None) -> TrackResult:
        """
        End the attempt (pointer lifted). Success needs the final point within
        tolerance of the end point, enough progress and no off-track excursion.
        Any failure resets the object to the start and clears progress.
        """
        if x is not None and y is not None:
            self.update(x, y, now_ms)
        if self._last_point is None:
            return TrackResult(False, "no_input", 0.0, False, None)

        end_distance = _dist(self._last_point, self.path.end_point)
        progress = self._progress
        ever_off = self._ever_off_track
        if ever_off:
            reason = "off_track"
        elif progress < self.complete_progress:
            reason = "incomplete"
        elif end_distance > self.line_tolerance:
            reason = "not_at_end"
        else:
            reason = "complete"

        if reason == "complete":
            self._progress = 1.0
            self._object_position = self.path.end_point
            self._completed = True
            logger.debug("Trace complete (end distance %.1f)", end_distance)
            return TrackResult(True, reason, 1.0, False, end_distance)

        logger.info("Trace failed: %s (progress %.2f)", reason, progress)
        self.reset()
        return TrackResult(False, reason, progress, ever_off, end_distance)
