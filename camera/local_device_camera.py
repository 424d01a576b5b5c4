from __future__ import annotations

import asyncio
import logging
from typing import Optional

import cv2

from camera.camera_base import BackendState, Camera
from camera.config import LocalDeviceConfig
from camera.errors import CaptureFailedError, ConnectionFailedError, NotInitializedError
from camera.naming import capture_filename
from camera.results import CaptureKind, CaptureResult
from imaging.post_processing import PhotoPipeline

logger = logging.getLogger(__name__)

_ENCODE_EXTENSIONS = {
    "jpeg": ".jpg",
    "jpg": ".jpg",
    "png": ".png",
}


def _device_source(device):
    if isinstance(device, str) and device.isdigit():
        return int(device)
    return device


class LocalDeviceCamera(Camera):
    """
    USB webcam driven through an OpenCV capture session.

    The session handle is opened by initialize() and reused across captures
    (unless keep_open is disabled). A failed capture discards the handle and
    drops the camera back to uninitialized so the next initialize() reopens
    the device instead of reusing a broken session.
    """

    name = "webcam"

    def __init__(self, pipeline: PhotoPipeline, config: LocalDeviceConfig):
        super().__init__(pipeline)
        self.config = config
        self._session: Optional[cv2.VideoCapture] = None
        self._io_lock = asyncio.Lock()

        ext = _ENCODE_EXTENSIONS.get(config.output_format.lower())
        if ext is None:
            raise ValueError(f"Unsupported output format: {config.output_format!r}")
        self._extension = ext

    # ---------- Lifecycle ----------

    async def _connect(self) -> None:
        if self.config.simulate:
            return

        async with self._io_lock:
            await self._release_session()
            try:
                self._session = await asyncio.to_thread(self._open_session)
            except (OSError, cv2.error) as e:
                raise ConnectionFailedError() from e

    async def _capture(self, kind: CaptureKind) -> CaptureResult:
        if self.config.simulate:
            return await self._capture_sample(kind)

        async with self._io_lock:
            # a capture queued behind a failed one must not reopen the device
            if self.state != BackendState.READY:
                raise NotInitializedError()

            try:
                if self._session is None:
                    self._session = await asyncio.to_thread(self._open_session)
                data = await asyncio.to_thread(self._grab_frame, self._session)
            except (OSError, cv2.error) as e:
                await self._release_session()
                self.state = BackendState.UNINITIALIZED
                raise CaptureFailedError() from e

            if not self.config.keep_open:
                await self._release_session()

        return await self.pipeline.process(data, capture_filename(kind == CaptureKind.PREVIEW))

    async def close(self) -> None:
        async with self._io_lock:
            await self._release_session()
        await super().close()

    # ---------- Device I/O (runs off the event loop) ----------

    def _open_session(self) -> cv2.VideoCapture:
        source = _device_source(self.config.device)
        session = cv2.VideoCapture(source)
        if not session.isOpened():
            session.release()
            raise OSError(f"Unable to open camera device {source!r}")

        session.set(cv2.CAP_PROP_FOURCC, cv2.VideoWriter_fourcc(*"MJPG"))
        if self.config.resolution:
            width, height = self.config.resolution
            session.set(cv2.CAP_PROP_FRAME_WIDTH, float(width))
            session.set(cv2.CAP_PROP_FRAME_HEIGHT, float(height))

        # auto exposure settles over the first few frames
        for _ in range(self.config.warmup_frames):
            ok, _frame = session.read()
            if not ok:
                break

        logger.info("Opened camera device %r", source)
        return session

    def _grab_frame(self, session: cv2.VideoCapture) -> bytes:
        ok, frame = session.read()
        if not ok or frame is None:
            raise OSError("Camera returned no frame")

        params = []
        if self._extension == ".jpg":
            params = [cv2.IMWRITE_JPEG_QUALITY, self.config.jpeg_quality]

        encoded, buffer = cv2.imencode(self._extension, frame, params)
        if not encoded:
            raise OSError(f"Failed to encode frame as {self.config.output_format}")
        return buffer.tobytes()

    async def _release_session(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            await asyncio.to_thread(session.release)
