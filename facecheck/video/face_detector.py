"""Face counting with MediaPipe Face Detection.

The detector is used only as an oracle for "how many faces, and where":
landmarks and any per-face classification are ignored.
"""

import logging

import cv2
import mediapipe as mp
import numpy as np

from facecheck.results import (
    DETECTION_FAILED,
    FaceBox,
    FaceDetectionResult,
    Faces,
)

logger = logging.getLogger(__name__)

_MODEL_SELECTION = {"short_range": 0, "full_range": 1}
_NO_FACE_WARN_STREAK = 30  # warn after this many consecutive faceless frames


class FaceDetector:
    """Detects every face in a BGR frame and reports their count and boxes.

    ``short_range`` suits a handheld or front camera within ~2m;
    ``full_range`` covers faces up to ~5m away.

    Usage::

        detector = FaceDetector()
        result = detector.detect(frame)   # Faces(...) or DETECTION_FAILED
        detector.close()
    """

    def __init__(
        self,
        model: str = "short_range",
        min_detection_confidence: float = 0.5,
    ) -> None:
        self._detector = mp.solutions.face_detection.FaceDetection(
            model_selection=_MODEL_SELECTION[model],
            min_detection_confidence=min_detection_confidence,
        )
        self._no_face_streak: int = 0

    def detect(self, frame: np.ndarray) -> FaceDetectionResult:
        """Detect faces in a BGR frame.

        Args:
            frame: BGR ndarray from the frame source.

        Returns:
            ``Faces`` with one clipped pixel box per detection, or
            ``DETECTION_FAILED`` if the model raised.
        """
        h, w = frame.shape[:2]
        try:
            rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            results = self._detector.process(rgb)
        except Exception as exc:
            logger.warning("Face detection failed: %s", exc)
            return DETECTION_FAILED

        detections = results.detections or []
        if not detections:
            self._no_face_streak += 1
            if self._no_face_streak == _NO_FACE_WARN_STREAK:
                logger.warning(
                    "No face detected for %d consecutive frames",
                    self._no_face_streak,
                )
            return Faces(count=0)

        self._no_face_streak = 0
        boxes = [_to_face_box(d, w, h) for d in detections]
        return Faces.from_boxes(boxes)

    def close(self) -> None:
        """Release MediaPipe resources."""
        self._detector.close()


def _to_face_box(detection, w: int, h: int) -> FaceBox:
    bbox = detection.location_data.relative_bounding_box

    # Relative bbox may extend past the frame edges; clip to pixels
    x1 = min(max(0, int(bbox.xmin * w)), w)
    y1 = min(max(0, int(bbox.ymin * h)), h)
    x2 = min(max(0, int((bbox.xmin + bbox.width) * w)), w)
    y2 = min(max(0, int((bbox.ymin + bbox.height) * h)), h)

    return FaceBox(x=x1, y=y1, width=x2 - x1, height=y2 - y1)
