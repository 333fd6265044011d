"""
Synthetic face-mesh landmarks for mouth metric tests.

Builds MediaPipe-style 468x3 landmark arrays where only the points the mouth
metric extractor reads are meaningful: inner lips, mouth corners, chin, nose
and the face edges. Geometry is given in normalized image units so expected
values can be worked out by hand.
"""

import numpy as np
from typing import Tuple

UPPER_LIP = [12, 13, 14, 15]
LOWER_LIP = [18, 19, 20]
MOUTH_LEFT, MOUTH_RIGHT = 61, 291
NOSE_TIP, CHIN = 4, 175
FACE_LEFT, FACE_RIGHT = 234, 454

CENTER = (0.5, 0.6)


def make_mouth_landmarks(
    gap: float = 0.01,
    mouth_width: float = 0.12,
    chin_offset: float = 0.0,
    face_width: float = 0.4,
    n: int = 468,
) -> np.ndarray:
    """
    Normalized landmarks with the given lip gap, mouth width, chin x-offset
    (positive = toward the child's image right) and face width.
    """
    cx, cy = CENTER
    lm = np.zeros((n, 3), dtype=np.float64)
    lm[:, 0] = cx
    lm[:, 1] = cy
    for idx in UPPER_LIP:
        lm[idx, :2] = (cx, cy - gap / 2)
    for idx in LOWER_LIP:
        lm[idx, :2] = (cx, cy + gap / 2)
    lm[MOUTH_LEFT, :2] = (cx - mouth_width / 2, cy)
    lm[MOUTH_RIGHT, :2] = (cx + mouth_width / 2, cy)
    lm[NOSE_TIP, :2] = (cx, cy - 0.1)
    lm[CHIN, :2] = (cx + chin_offset, cy + 0.12)
    lm[FACE_LEFT, :2] = (cx - face_width / 2, cy - 0.05)
    lm[FACE_RIGHT, :2] = (cx + face_width / 2, cy - 0.05)
    return lm


def to_pixels(landmarks: np.ndarray, size: Tuple[int, int] = (640, 480)) -> np.ndarray:
    """Scale normalized landmarks to pixel space for a (width, height) frame."""
    w, h = size
    out = landmarks.copy()
    out[:, 0] *= w
    out[:, 1] *= h
    return out
