import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect

from facecheck.analyzer import FrameAnalyzer
from facecheck.config import get_settings
from facecheck.results import VerdictChannel
from facecheck.video.camera import CameraSource

logger = logging.getLogger(__name__)

# Module-level singletons: initialised in lifespan, None before startup.
_channel: VerdictChannel | None = None
_analyzer: FrameAnalyzer | None = None
_camera: CameraSource | None = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    global _channel, _analyzer, _camera

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO)
    )

    _channel = VerdictChannel()
    _analyzer = FrameAnalyzer(settings, _channel)
    await _analyzer.start()
    logger.info(
        "FrameAnalyzer ready (stable_frames=%d blur_check=%s)",
        settings.verdict_stable_frames,
        settings.blur_check_enabled,
    )

    if settings.camera_enabled:
        _camera = CameraSource(settings, _analyzer.submit)
        try:
            await _camera.start()
        except Exception:
            await _analyzer.close()
            _camera = None
            _analyzer = None
            _channel = None
            raise

    yield

    if _camera is not None:
        await _camera.close()
    if _analyzer is not None:
        await _analyzer.close()
    _camera = None
    _analyzer = None
    _channel = None


app = FastAPI(
    title="facecheck",
    description=(
        "Real-time capture feedback for face datasets. "
        "Reports whether the current camera frame is well lit and "
        "contains exactly one face."
    ),
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/quality")
async def get_quality() -> dict:
    channel = _channel
    if channel is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    report = channel.latest
    if report is None:
        raise HTTPException(status_code=404, detail="No frame analyzed yet")
    return report.to_dict()


@app.websocket("/ws/quality")
async def stream_quality(websocket: WebSocket) -> None:
    """Push the latest report on connect, then every new one as it is published.

    The socket is read concurrently so a client that leaves is unsubscribed
    right away, even while no new reports are being published.
    """
    channel = _channel
    await websocket.accept()
    if channel is None:
        await websocket.close(code=1013, reason="Service not ready")
        return

    queue = channel.subscribe()
    disconnected = asyncio.create_task(_wait_for_disconnect(websocket))
    next_report: asyncio.Task | None = None
    try:
        if channel.latest is not None:
            await websocket.send_json(channel.latest.to_dict())
        while True:
            next_report = asyncio.create_task(queue.get())
            done, _ = await asyncio.wait(
                {next_report, disconnected}, return_when=asyncio.FIRST_COMPLETED
            )
            if disconnected in done:
                next_report.cancel()
                break
            await websocket.send_json(next_report.result().to_dict())
    except WebSocketDisconnect:
        pass
    finally:
        disconnected.cancel()
        if next_report is not None:
            next_report.cancel()
        channel.unsubscribe(queue)
        logger.debug("Quality stream client disconnected")


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@app.get("/health")
async def health() -> dict:
    return {
        "status": "ok",
        "version": app.version,
        "frames_analyzed": _analyzer.frames_analyzed if _analyzer else 0,
        "frames_dropped": _analyzer.frames_dropped if _analyzer else 0,
        "camera": "running" if _camera else "off",
    }
