"""Frame analyzer: coordinates frame source → face detection → verdict.

One ``FrameAnalyzer`` serves one camera stream.  It:

1. Accepts frames through ``submit()`` with keep-only-latest backpressure:
   a frame that arrives while another is still waiting replaces it.
2. Runs a background task that analyzes one frame at a time in a worker
   thread (luma extraction, face detection, brightness, optional sharpness).
3. Feeds the result through a debounced ``FrameQualityClassifier``.
4. Publishes one ``QualityReport`` per analyzed frame to a ``VerdictChannel``.
"""

import asyncio
import logging

import numpy as np

from facecheck.classifier import FrameQualityClassifier
from facecheck.config import Settings
from facecheck.results import (
    DETECTION_FAILED,
    DetectionFailed,
    FaceDetectionResult,
    QualityReport,
    VerdictChannel,
)
from facecheck.video.brightness import InvalidInput, estimate, luma_plane
from facecheck.video.face_detector import FaceDetector
from facecheck.video.sharpness import compute_sharpness

logger = logging.getLogger(__name__)


class FrameAnalyzer:
    """Turns a stream of camera frames into a stream of quality verdicts.

    Usage::

        analyzer = FrameAnalyzer(settings, channel)
        await analyzer.start()
        await analyzer.submit(frame)   # call for each captured frame
        report = channel.latest
        await analyzer.close()
    """

    def __init__(
        self,
        settings: Settings,
        channel: VerdictChannel | None = None,
        detector: FaceDetector | None = None,
        classifier: FrameQualityClassifier | None = None,
    ) -> None:
        self._channel = channel or VerdictChannel()
        self._detector = detector or FaceDetector(
            model=settings.detector_model,
            min_detection_confidence=settings.min_detection_confidence,
        )
        self._classifier = classifier or FrameQualityClassifier(
            stable_frames=settings.verdict_stable_frames,
            dark_threshold=settings.dark_threshold,
            bright_threshold=settings.bright_threshold,
            blur_threshold=settings.blur_threshold,
        )
        self._blur_check_enabled = settings.blur_check_enabled

        # At most one frame ever waits for analysis
        self._pending: asyncio.Queue[np.ndarray] = asyncio.Queue(maxsize=1)
        self._task: asyncio.Task | None = None
        self._frame_index = 0
        self._frames_dropped = 0

    @property
    def channel(self) -> VerdictChannel:
        return self._channel

    @property
    def frames_analyzed(self) -> int:
        return self._frame_index

    @property
    def frames_dropped(self) -> int:
        return self._frames_dropped

    async def start(self) -> None:
        self._classifier.reset()
        self._task = asyncio.create_task(self._run(), name="frame-analyzer")
        logger.info("FrameAnalyzer started")

    async def submit(self, frame: np.ndarray, timestamp_ms: int = 0) -> None:
        """Queue *frame* for analysis, replacing any frame still waiting."""
        if self._pending.full():
            self._pending.get_nowait()
            self._frames_dropped += 1
            logger.debug("Analyzer busy, dropped stale frame (ts=%d)", timestamp_ms)
        self._pending.put_nowait(frame)

    async def close(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._classifier.reset()
        self._detector.close()
        logger.info(
            "FrameAnalyzer closed (analyzed=%d dropped=%d)",
            self._frame_index,
            self._frames_dropped,
        )

    def analyze(self, frame: np.ndarray) -> QualityReport:
        """Synchronously analyze one frame and return its report."""
        self._frame_index += 1
        luma = luma_plane(frame)
        brightness: int | None = None
        sharpness: float | None = None

        try:
            brightness = estimate(luma)
        except InvalidInput as exc:
            logger.warning("Unusable frame %d: %s", self._frame_index, exc)
            detection = DETECTION_FAILED
        else:
            detection = self._detect(frame)
            if self._blur_check_enabled:
                sharpness = compute_sharpness(luma)

        if brightness is None:
            # DetectionFailed short-circuits before brightness is read
            verdict = self._classifier.evaluate(detection, 0)
        else:
            verdict = self._classifier.evaluate(detection, brightness, sharpness)
        return QualityReport(
            verdict=verdict,
            frame_index=self._frame_index,
            brightness=brightness,
            face_count=(
                None if isinstance(detection, DetectionFailed) else detection.count
            ),
            sharpness=sharpness,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _detect(self, frame: np.ndarray) -> FaceDetectionResult:
        try:
            return self._detector.detect(frame)
        except Exception as exc:
            logger.warning(
                "Face detector raised on frame %d: %s", self._frame_index, exc
            )
            return DETECTION_FAILED

    async def _run(self) -> None:
        while True:
            frame = await self._pending.get()
            try:
                report = await asyncio.to_thread(self.analyze, frame)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.exception("Unexpected error analyzing frame: %s", exc)
                continue
            self._channel.publish(report)
