"""OpenCV camera frame source.

Bridges the blocking ``cv2.VideoCapture.read()`` loop into our asyncio
pipeline.  Frames are read on a background thread and forwarded to the
event loop with ``asyncio.run_coroutine_threadsafe``.

Usage::

    camera = CameraSource(settings, on_frame)
    await camera.start()
    # frames arrive asynchronously via on_frame(frame_bgr, timestamp_ms)
    await camera.close()
"""

import asyncio
import logging
import threading
import time
from collections.abc import Awaitable, Callable
from typing import Any

import cv2
import numpy as np

from facecheck.config import Settings

logger = logging.getLogger(__name__)

# Callback type: (frame_bgr, timestamp_ms)
FrameCallback = Callable[[np.ndarray, int], Awaitable[None]]

_READ_FAILURE_WARN_STREAK = 30


class CameraError(Exception):
    """Raised when the capture device cannot be opened."""


class CameraSource:
    """Reads frames from a local camera and hands them to an async callback.

    Parameters
    ----------
    settings:
        Supplies ``camera_index``.
    on_frame:
        Coroutine function called once per captured frame on the event loop.
    _capture_factory:
        Override the ``cv2.VideoCapture`` constructor.  Used in tests to
        substitute a fake device.
    """

    _RETRY_INTERVAL: float = 0.05  # back-off after a failed read

    def __init__(
        self,
        settings: Settings,
        on_frame: FrameCallback,
        _capture_factory: Callable[[int], Any] | None = None,
    ) -> None:
        self._camera_index = settings.camera_index
        self._on_frame = on_frame
        self._capture_factory = _capture_factory or cv2.VideoCapture

        self._capture: Any = None
        self._read_thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._frames_read = 0
        self._read_failures = 0

    @property
    def frames_read(self) -> int:
        return self._frames_read

    async def start(self) -> None:
        """Open the capture device and begin reading frames.

        Raises:
            CameraError: If the device cannot be opened.
        """
        self._loop = asyncio.get_running_loop()
        self._capture = self._capture_factory(self._camera_index)
        if not self._capture.isOpened():
            self._capture.release()
            self._capture = None
            raise CameraError(f"Cannot open camera {self._camera_index}")

        self._stop_event.clear()
        self._read_thread = threading.Thread(
            target=self._read_loop,
            name=f"camera-{self._camera_index}",
            daemon=True,
        )
        self._read_thread.start()
        logger.info("CameraSource started (camera=%d)", self._camera_index)

    async def close(self) -> None:
        """Stop the reader thread and release the device."""
        self._stop_event.set()
        if self._read_thread is not None:
            self._read_thread.join(timeout=2.0)
            self._read_thread = None
        if self._capture is not None:
            self._capture.release()
            self._capture = None
        logger.info(
            "CameraSource closed (camera=%d frames=%d)",
            self._camera_index,
            self._frames_read,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read_loop(self) -> None:
        """Background thread: read frames until stopped."""
        loop = self._loop
        while not self._stop_event.is_set():
            ok, frame = self._capture.read()
            if not ok or frame is None:
                self._read_failures += 1
                if self._read_failures == _READ_FAILURE_WARN_STREAK:
                    logger.warning(
                        "Camera %d returned no frame %d times in a row",
                        self._camera_index,
                        self._read_failures,
                    )
                time.sleep(self._RETRY_INTERVAL)
                continue

            self._read_failures = 0
            self._frames_read += 1
            timestamp_ms = int(time.monotonic() * 1000)
            asyncio.run_coroutine_threadsafe(
                self._on_frame(frame, timestamp_ms),
                loop,
            )
