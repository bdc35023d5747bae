import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

logger = logging.getLogger(__name__)


class QualityVerdict(str, Enum):
    """Closed set of per-frame quality verdicts shown to the person capturing."""

    GOOD = "good"
    TOO_DARK = "too_dark"
    TOO_BRIGHT = "too_bright"
    # Only produced when the optional blur check is enabled.
    TOO_BLURRY = "too_blurry"
    NO_FACE_DETECTED = "no_face_detected"
    MULTIPLE_FACES = "multiple_faces"

    @property
    def banner(self) -> str | None:
        """Warning text for the capture banner, or None when nothing is shown."""
        return _BANNERS[self]


_BANNERS: dict[QualityVerdict, str | None] = {
    QualityVerdict.GOOD: None,
    QualityVerdict.TOO_DARK: "Too dark - raise brightness",
    QualityVerdict.TOO_BRIGHT: "Too bright - lower brightness",
    QualityVerdict.TOO_BLURRY: "Too blurry - hold the camera still",
    QualityVerdict.NO_FACE_DETECTED: (
        "No face detected - please position your face in view"
    ),
    QualityVerdict.MULTIPLE_FACES: (
        "Multiple faces detected - use only one face at a time"
    ),
}


@dataclass(frozen=True)
class FaceBox:
    """Absolute pixel rectangle of one detected face, clipped to the frame."""

    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class Faces:
    """Successful detection: how many faces were found and where."""

    count: int
    boxes: Sequence[FaceBox] = ()

    def __post_init__(self) -> None:
        if self.count < 0:
            raise ValueError(f"face count must be non-negative, got {self.count}")

    @classmethod
    def from_boxes(cls, boxes: Sequence[FaceBox]) -> "Faces":
        return cls(count=len(boxes), boxes=tuple(boxes))


@dataclass(frozen=True)
class DetectionFailed:
    """The detector raised or returned nothing usable for this frame."""


DETECTION_FAILED = DetectionFailed()

FaceDetectionResult = Faces | DetectionFailed


@dataclass(frozen=True)
class QualityReport:
    """The published outcome of analyzing one frame."""

    verdict: QualityVerdict
    frame_index: int
    brightness: int | None  # None when the luma buffer was unusable
    face_count: int | None  # None when detection failed
    sharpness: float | None = None
    evaluated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def banner(self) -> str | None:
        return self.verdict.banner

    def to_dict(self) -> dict:
        return {
            "verdict": self.verdict.value,
            "banner": self.banner,
            "frame_index": self.frame_index,
            "brightness": self.brightness,
            "face_count": self.face_count,
            "sharpness": self.sharpness,
            "evaluated_at": self.evaluated_at.isoformat(),
        }


class VerdictChannel:
    """Single-slot publisher for the latest ``QualityReport``.

    Readers either poll ``latest`` or ``subscribe()`` to get a one-item queue.
    Publishing never blocks: if a subscriber has not consumed the previous
    report yet, that report is replaced by the new one.

    Usage::

        channel = VerdictChannel()
        queue = channel.subscribe()
        channel.publish(report)
        latest = await queue.get()
        channel.unsubscribe(queue)
    """

    def __init__(self) -> None:
        self._latest: QualityReport | None = None
        self._subscribers: set[asyncio.Queue[QualityReport]] = set()

    @property
    def latest(self) -> QualityReport | None:
        return self._latest

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, report: QualityReport) -> None:
        self._latest = report
        for queue in self._subscribers:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(report)

    def subscribe(self) -> "asyncio.Queue[QualityReport]":
        queue: asyncio.Queue[QualityReport] = asyncio.Queue(maxsize=1)
        self._subscribers.add(queue)
        logger.debug("Verdict subscriber added (total=%d)", len(self._subscribers))
        return queue

    def unsubscribe(self, queue: "asyncio.Queue[QualityReport]") -> None:
        self._subscribers.discard(queue)
