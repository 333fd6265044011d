"""
Gesture core for the oral-motor and tracing games.

Turns per-frame facial metrics (or pointer positions) into confirmed states,
matches them against the current game target and reports discrete events plus
a continuous breath-intensity signal.

The MediaPipe-backed sampler (gestures.mediapipe_sampler) is not imported here so
that the core can be used without loading mediapipe/cv2.
"""

from .types import (
    Beat,
    BlowState,
    ContinuousTrackTarget,
    EventKind,
    FacialMetricFrame,
    GestureEvent,
    GestureTarget,
    Movement,
    RhythmSequenceTarget,
    SingleMovementTarget,
    SourceStatus,
    StableState,
    TargetKind,
    TonguePosition,
    target_from_dict,
)
from .tuning import ClassifierThresholds, GestureTuning
from .classifiers import MovementClassifier
from .debouncer import StabilityDebouncer
from .matcher import GestureMatcher
from .track import ArcPath, PathTracker, PolylinePath, TrackResult, TrackUpdate, path_from_dict
from .blow import BlowIntensityEstimator
from .mouth_metrics import MouthMetricExtractor
from .session import GestureSession, SessionUpdate, Tally

__all__ = [
    'Beat',
    'BlowState',
    'ContinuousTrackTarget',
    'EventKind',
    'FacialMetricFrame',
    'GestureEvent',
    'GestureTarget',
    'Movement',
    'RhythmSequenceTarget',
    'SingleMovementTarget',
    'SourceStatus',
    'StableState',
    'TargetKind',
    'TonguePosition',
    'target_from_dict',
    'ClassifierThresholds',
    'GestureTuning',
    'MovementClassifier',
    'StabilityDebouncer',
    'GestureMatcher',
    'ArcPath',
    'PathTracker',
    'PolylinePath',
    'TrackResult',
    'TrackUpdate',
    'path_from_dict',
    'BlowIntensityEstimator',
    'MouthMetricExtractor',
    'GestureSession',
    'SessionUpdate',
    'Tally',
]
