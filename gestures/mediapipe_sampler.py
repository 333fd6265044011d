"""
MediaPipe Metric Sampler

Camera-side metric source: runs MediaPipe Face Mesh on BGR frames and hands the
landmarks to MouthMetricExtractor. Produces one FacialMetricFrame per image,
with status no_face when nobody is detected. A missing camera is reported with
unavailable(), which is distinct from no_face.
"""

import logging
from typing import Optional

import cv2
import mediapipe as mp
import numpy as np

import config
from gestures.mouth_metrics import MouthMetricExtractor
from gestures.types import FacialMetricFrame, SourceStatus

logger = logging.getLogger(__name__)


class MediaPipeMetricSampler:
    """
    Face mesh + mouth metrics for one video stream.

    Usage:
        sampler = MediaPipeMetricSampler()
        frame = sampler.sample(image_bgr, timestamp_ms)
        session.process_frame(frame)
        ...
        sampler.close()
    """

    def __init__(self, min_detection_confidence: Optional[float] = None,
                 min_tracking_confidence: Optional[float] = None,
                 extractor: Optional[MouthMetricExtractor] = None):
        default_conf = config.MIN_FACE_CONFIDENCE
        if min_detection_confidence is None:
            min_detection_confidence = default_conf
        if min_tracking_confidence is None:
            min_tracking_confidence = default_conf
        self._det_conf = max(0.01, min(0.99, float(min_detection_confidence)))
        self._track_conf = max(0.01, min(0.99, float(min_tracking_confidence)))
        self.extractor = extractor or MouthMetricExtractor()
        self.mp_face_mesh = mp.solutions.face_mesh
        self.face_mesh = self.mp_face_mesh.FaceMesh(
            static_image_mode=False,
            max_num_faces=1,
            refine_landmarks=True,
            min_detection_confidence=self._det_conf,
            min_tracking_confidence=self._track_conf,
        )
        self._closed = False

    def sample(self, image: Optional[np.ndarray], timestamp_ms: int) -> FacialMetricFrame:
        """
        Args:
            image: BGR image array (OpenCV format); None when the camera gave nothing
            timestamp_ms: Capture time

        Returns:
            FacialMetricFrame (tracking, no_face, or unavailable when closed / no image)
        """
        if self._closed or image is None or image.size == 0:
            return FacialMetricFrame.unavailable(timestamp_ms)
        rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        results = self.face_mesh.process(rgb)
        if not results.multi_face_landmarks:
            return FacialMetricFrame.unavailable(timestamp_ms, SourceStatus.NO_FACE)
        face = results.multi_face_landmarks[0]
        landmarks = np.array([[p.x, p.y, p.z] for p in face.landmark], dtype=np.float64)
        return self.extractor.extract(landmarks, timestamp_ms)

    def unavailable(self, timestamp_ms: int) -> FacialMetricFrame:
        """Frame to send while the camera is not running (no permission, not started)."""
        return FacialMetricFrame.unavailable(timestamp_ms)

    def reset(self) -> None:
        self.extractor.reset()

    def close(self) -> None:
        """Release MediaPipe resources."""
        if self._closed:
            return
        self._closed = True
        try:
            self.face_mesh.close()
        except Exception as e:
            logger.warning("Face mesh close failed: %s", e)
