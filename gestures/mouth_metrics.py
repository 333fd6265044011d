"""
Mouth Metric Extractor

Turns one face-mesh landmark array (MediaPipe 468/478-point indexing) into a
FacialMetricFrame: lip-gap ratio with open/close hysteresis, lip protrusion, jaw
lateral amount and smile amount.

We keep a little state between frames so the numbers do not jitter:
  - EMA smoothing on the lip gap and the jaw lateral amount.
  - Hysteresis on open/close (open above 0.038, stays open until below 0.028) and
    on jaw left/center/right (enter at +-0.12, release at +-0.08).
  - A resting mouth-width baseline learned over the first frames; smile amount is
    reported relative to it and is absent until the baseline exists.

A face mesh cannot see the tongue, so tongue metrics are always absent here.
"""

import logging
from typing import List, Optional, Tuple

import numpy as np

import config
from gestures.types import FacialMetricFrame, SourceStatus

logger = logging.getLogger(__name__)

# MediaPipe face mesh indices
UPPER_LIP = [12, 13, 14, 15]
LOWER_LIP = [18, 19, 20]
MOUTH_LEFT, MOUTH_RIGHT = 61, 291
NOSE_TIP, CHIN = 4, 175
FACE_LEFT, FACE_RIGHT = 234, 454
MIN_LANDMARKS = FACE_RIGHT + 1

# Protrusion: lower lip drop below the upper lip, offset and scaled into 0-1.
PROTRUSION_BASELINE = 0.02
PROTRUSION_OFFSET = 0.05
PROTRUSION_SCALE = 10.0
# Chin offset (in mouth widths) that maps to a full lateral amount of 1.
LATERAL_GAIN = 2.5
# Mouth widening over the resting baseline that counts as a full smile (25%).
SMILE_GAIN = 0.25


def normalize_landmarks(landmarks: np.ndarray, frame_size: Optional[Tuple[int, int]] = None) -> np.ndarray:
    """
    Return an (N, 2) array in normalized image coordinates.

    Args:
        landmarks: (N, 2) or (N, 3) array, normalized (0-1) or in pixels
        frame_size: (width, height), required for pixel input

    Raises:
        ValueError: for pixel input without a frame size, or a malformed array
    """
    lm = np.asarray(landmarks, dtype=np.float64)
    if lm.ndim != 2 or lm.shape[1] < 2:
        raise ValueError("landmarks must be an (N, 2) or (N, 3) array")
    xy = lm[:, :2].copy()
    if np.max(np.abs(xy)) > 2.0:
        if frame_size is None:
            raise ValueError("pixel landmarks need frame_size=(width, height)")
        w, h = frame_size
        xy[:, 0] /= float(w)
        xy[:, 1] /= float(h)
    return xy


def _dist(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.linalg.norm(a - b))


class MouthMetricExtractor:
    """
    Stateful landmark -> FacialMetricFrame converter for one camera stream.

    Usage:
        extractor = MouthMetricExtractor()
        frame = extractor.extract(landmarks, timestamp_ms)
    """

    def __init__(
        self,
        open_threshold: Optional[float] = None,
        close_threshold: Optional[float] = None,
        ema_alpha: Optional[float] = None,
        lateral_threshold: Optional[float] = None,
        lateral_release: Optional[float] = None,
        calibration_frames: Optional[int] = None,
    ):
        self.open_threshold = float(config.OPEN_THRESHOLD if open_threshold is None else open_threshold)
        self.close_threshold = float(config.CLOSE_THRESHOLD if close_threshold is None else close_threshold)
        self.ema_alpha = float(config.METRIC_EMA_ALPHA if ema_alpha is None else ema_alpha)
        self.lateral_threshold = float(config.LATERAL_THRESHOLD if lateral_threshold is None else lateral_threshold)
        self.lateral_release = float(config.LATERAL_RELEASE if lateral_release is None else lateral_release)
        self.calibration_frames = int(
            config.SMILE_CALIBRATION_FRAMES if calibration_frames is None else calibration_frames
        )
        if self.close_threshold >= self.open_threshold:
            raise ValueError("close_threshold must be below open_threshold")
        if not 0.0 < self.ema_alpha <= 1.0:
            raise ValueError("ema_alpha must be within (0, 1]")
        self.reset()

    def reset(self) -> None:
        """Clear smoothing, hysteresis and smile calibration (e.g. new child in front of camera)."""
        self._ratio_ema: Optional[float] = None
        self._lateral_ema: Optional[float] = None
        self._is_open = False
        self.lateral_position = "center"
        self._width_samples: List[float] = []
        self._width_baseline: Optional[float] = None

    @property
    def is_calibrated(self) -> bool:
        return self._width_baseline is not None

    def _smooth(self, previous: Optional[float], value: float) -> float:
        if previous is None:
            return value
        return self.ema_alpha * value + (1.0 - self.ema_alpha) * previous

    def _update_lateral_position(self, amount: float) -> str:
        pos = self.lateral_position
        if pos == "left":
            if amount > -self.lateral_release:
                pos = "right" if amount > self.lateral_threshold else "center"
        elif pos == "right":
            if amount < self.lateral_release:
                pos = "left" if amount < -self.lateral_threshold else "center"
        elif amount < -self.lateral_threshold:
            pos = "left"
        elif amount > self.lateral_threshold:
            pos = "right"
        if pos != self.lateral_position:
            logger.debug("Jaw lateral position %s -> %s (%.3f)", self.lateral_position, pos, amount)
        self.lateral_position = pos
        return pos

    def _smile_amount(self, width_ratio: float, is_open: bool) -> Optional[float]:
        if self._width_baseline is None:
            # Learn the resting width from closed-mouth frames only.
            if not is_open:
                self._width_samples.append(width_ratio)
            if len(self._width_samples) >= self.calibration_frames:
                self._width_baseline = float(np.median(self._width_samples))
                self._width_samples = []
                logger.debug("Smile baseline calibrated: %.4f", self._width_baseline)
            return None
        if self._width_baseline <= 0:
            return None
        widening = width_ratio / self._width_baseline - 1.0
        return float(np.clip(widening / SMILE_GAIN, 0.0, 1.0))

    def extract(
        self,
        landmarks: Optional[np.ndarray],
        timestamp_ms: int,
        frame_size: Optional[Tuple[int, int]] = None,
    ) -> FacialMetricFrame:
        """
        Compute metrics for one frame. None or too few landmarks gives a no_face frame
        (smoothing state is kept so a one-frame dropout does not reset the EMA).
        """
        if landmarks is None:
            return FacialMetricFrame.unavailable(timestamp_ms, SourceStatus.NO_FACE)
        lm = normalize_landmarks(landmarks, frame_size)
        if lm.shape[0] < MIN_LANDMARKS:
            logger.debug("Only %d landmarks, need %d", lm.shape[0], MIN_LANDMARKS)
            return FacialMetricFrame.unavailable(timestamp_ms, SourceStatus.NO_FACE)

        upper = lm[UPPER_LIP].mean(axis=0)
        lower = lm[LOWER_LIP].mean(axis=0)
        left, right = lm[MOUTH_LEFT], lm[MOUTH_RIGHT]
        mouth_width = _dist(left, right)

        # Lip gap in normalized image units; the open/close thresholds are on this scale.
        ratio = self._smooth(self._ratio_ema, _dist(upper, lower))
        self._ratio_ema = ratio
        self._is_open = ratio > self.close_threshold if self._is_open else ratio > self.open_threshold

        drop = lower[1] - (upper[1] + PROTRUSION_BASELINE)
        protrusion = float(np.clip((drop + PROTRUSION_OFFSET) * PROTRUSION_SCALE, 0.0, 1.0))

        center_x = (left[0] + right[0]) / 2.0
        chin_offset = lm[CHIN][0] - center_x
        lateral = float(np.clip(chin_offset / max(0.01, mouth_width) * LATERAL_GAIN, -1.0, 1.0))
        lateral = self._smooth(self._lateral_ema, lateral)
        self._lateral_ema = lateral
        self._update_lateral_position(lateral)

        face_width = _dist(lm[FACE_LEFT], lm[FACE_RIGHT])
        smile = self._smile_amount(mouth_width / face_width, self._is_open) if face_width > 1e-6 else None

        return FacialMetricFrame(
            timestamp_ms=timestamp_ms,
            status=SourceStatus.TRACKING,
            mouth_open_ratio=ratio,
            is_open=self._is_open,
            smile_amount=smile,
            protrusion=protrusion,
            lateral_amount=lateral,
        )
