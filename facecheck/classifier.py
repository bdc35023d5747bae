"""Frame quality classification.

``classify`` turns one face-detection result and the brightness of the same
frame into exactly one ``QualityVerdict``.  Checks run in a fixed priority
order, first match wins:

1. detection failed             -> NO_FACE_DETECTED
2. no face                      -> NO_FACE_DETECTED
3. more than one face           -> MULTIPLE_FACES
4. sharpness <= blur threshold  -> TOO_BLURRY  (only when a sharpness is given)
5. brightness < dark threshold  -> TOO_DARK
6. brightness > bright threshold -> TOO_BRIGHT
7. otherwise                    -> GOOD

Face presence and count are the most actionable feedback, so lighting is only
judged when exactly one face is in frame.

``FrameQualityClassifier`` wraps ``classify`` with a debounce so the banner
does not flicker when a verdict holds for a single frame only.
"""

import logging

from facecheck.results import DetectionFailed, FaceDetectionResult, QualityVerdict

logger = logging.getLogger(__name__)

DARK_THRESHOLD = 100  # mean luma below this is too dark (~39% of full scale)
BRIGHT_THRESHOLD = 220  # mean luma above this is too bright (~86% of full scale)
BLUR_THRESHOLD = 50.0  # Laplacian variance at or below this is too blurry


def classify(
    detection: FaceDetectionResult,
    brightness: int,
    sharpness: float | None = None,
    *,
    dark_threshold: int = DARK_THRESHOLD,
    bright_threshold: int = BRIGHT_THRESHOLD,
    blur_threshold: float = BLUR_THRESHOLD,
) -> QualityVerdict:
    """Return the quality verdict for one frame.

    Args:
        detection: ``Faces`` from the detector, or ``DetectionFailed``.
        brightness: Mean luma of the frame, in [0, 255].
        sharpness: Optional Laplacian variance of the frame.  When None the
            blur check is skipped entirely.
    """
    if isinstance(detection, DetectionFailed):
        return QualityVerdict.NO_FACE_DETECTED
    if detection.count == 0:
        return QualityVerdict.NO_FACE_DETECTED
    if detection.count > 1:
        return QualityVerdict.MULTIPLE_FACES

    if sharpness is not None and sharpness <= blur_threshold:
        return QualityVerdict.TOO_BLURRY
    if brightness < dark_threshold:
        return QualityVerdict.TOO_DARK
    if brightness > bright_threshold:
        return QualityVerdict.TOO_BRIGHT
    return QualityVerdict.GOOD


class FrameQualityClassifier:
    """Stateful, debounced classifier for one frame stream.

    The first verdict of a stream is emitted as-is.  After that, a verdict
    different from the last emitted one must be seen on ``stable_frames``
    consecutive frames before it is emitted; until then the previous verdict
    is repeated.  ``stable_frames=1`` disables smoothing.

    Not safe for concurrent use: frames must be evaluated one at a time.

    Usage::

        classifier = FrameQualityClassifier(stable_frames=3)
        verdict = classifier.evaluate(detection, brightness)
        classifier.reset()  # at end of stream
    """

    def __init__(
        self,
        stable_frames: int = 1,
        dark_threshold: int = DARK_THRESHOLD,
        bright_threshold: int = BRIGHT_THRESHOLD,
        blur_threshold: float = BLUR_THRESHOLD,
    ) -> None:
        if stable_frames < 1:
            raise ValueError(f"stable_frames must be >= 1, got {stable_frames}")
        self._stable_frames = stable_frames
        self._dark_threshold = dark_threshold
        self._bright_threshold = bright_threshold
        self._blur_threshold = blur_threshold

        self._last: QualityVerdict | None = None
        self._candidate: QualityVerdict | None = None
        self._candidate_count = 0

    @property
    def last_verdict(self) -> QualityVerdict | None:
        return self._last

    def evaluate(
        self,
        detection: FaceDetectionResult,
        brightness: int,
        sharpness: float | None = None,
    ) -> QualityVerdict:
        """Classify one frame and return the verdict to display."""
        raw = classify(
            detection,
            brightness,
            sharpness,
            dark_threshold=self._dark_threshold,
            bright_threshold=self._bright_threshold,
            blur_threshold=self._blur_threshold,
        )

        if self._last is None or raw == self._last:
            self._last = raw
            self._candidate = None
            self._candidate_count = 0
            return raw

        if raw == self._candidate:
            self._candidate_count += 1
        else:
            self._candidate = raw
            self._candidate_count = 1

        if self._candidate_count >= self._stable_frames:
            logger.debug("Verdict changed: %s -> %s", self._last.value, raw.value)
            self._last = raw
            self._candidate = None
            self._candidate_count = 0

        return self._last

    def reset(self) -> None:
        """Forget all smoothing state, as at the start of a new stream."""
        self._last = None
        self._candidate = None
        self._candidate_count = 0
