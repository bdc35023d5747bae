"""Mean-luma brightness estimate for a single frame.

The estimate is a plain arithmetic mean of the Y (luma) samples, truncated
to an integer.  No weighting or gamma correction is applied: the result only
has to be good enough to tell a dark room from a blown-out one, and it has to
keep up with the camera frame rate.
"""

from collections.abc import Sequence

import cv2
import numpy as np


class InvalidInput(ValueError):
    """Raised when a luma buffer cannot be reduced to a brightness value."""


def luma_plane(frame: np.ndarray) -> np.ndarray:
    """Return the Y plane of a BGR frame.

    Single-channel frames are assumed to be luma already and are returned
    unchanged.
    """
    if frame.ndim == 2:
        return frame
    if frame.size == 0:
        return np.empty(frame.shape[:2], dtype=np.uint8)
    return cv2.cvtColor(frame, cv2.COLOR_BGR2YUV)[..., 0]


def estimate(buffer: "bytes | bytearray | memoryview | Sequence[int] | np.ndarray") -> int:
    """Return the mean of all luma samples in *buffer*, in [0, 255].

    Args:
        buffer: Unsigned 8-bit luma samples, as raw bytes, a sequence of
            ints or a numpy array of any shape.

    Raises:
        InvalidInput: If the buffer is empty or holds values that are not
            unsigned 8-bit integers.
    """
    if isinstance(buffer, (bytes, bytearray, memoryview)):
        samples = np.frombuffer(buffer, dtype=np.uint8)
    else:
        samples = np.asarray(buffer)

    if samples.size == 0:
        raise InvalidInput("luma buffer is empty")

    if samples.dtype != np.uint8:
        if not np.issubdtype(samples.dtype, np.integer):
            raise InvalidInput(f"luma samples must be integers, got {samples.dtype}")
        if samples.min() < 0 or samples.max() > 255:
            raise InvalidInput("luma samples must be in [0, 255]")

    total = int(samples.sum(dtype=np.uint64))
    return total // samples.size
