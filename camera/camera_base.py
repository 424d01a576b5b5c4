from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum, auto

from camera.errors import SAMPLE_PICTURE_FAILED, CameraError, CaptureFailedError, NotInitializedError
from camera.naming import capture_filename, timestamp
from camera.results import CaptureKind, CaptureResult, InitResult
from imaging.placeholder import render_placeholder
from imaging.post_processing import PhotoPipeline

logger = logging.getLogger(__name__)


class BackendState(Enum):
    UNINITIALIZED = auto()
    INITIALIZING = auto()
    READY = auto()


class Camera(ABC):
    """
    Capture backend contract.

    Every variant (simulated, local device, streamed) exposes the same
    lifecycle: initialize once, then take pictures. Failures never raise out
    of the public methods; they come back as InitResult / CaptureResult.
    """

    name = "camera"

    def __init__(self, pipeline: PhotoPipeline):
        self.pipeline = pipeline
        self.state = BackendState.UNINITIALIZED
        self._init_lock = asyncio.Lock()

    # ---------- Public interface ----------

    async def initialize(self) -> InitResult:
        async with self._init_lock:
            if self.state == BackendState.READY:
                logger.info("%s already initialized", self.name)
                return InitResult.success()

            self.state = BackendState.INITIALIZING
            try:
                await self._connect()
            except CameraError as e:
                self.state = BackendState.UNINITIALIZED
                logger.warning("%s: %s (%s)", self.name, e, e.__cause__)
                return InitResult.failed(str(e), e.__cause__ or e)
            except BaseException:
                self.state = BackendState.UNINITIALIZED
                raise

            self.state = BackendState.READY
            logger.info("%s initialized", self.name)
            return InitResult.success()

    def is_initialized(self) -> bool:
        return self.state == BackendState.READY

    async def is_connected(self) -> bool:
        """Variants without a liveness signal report their initialized state."""
        return self.is_initialized()

    async def take_picture(self, preview: bool = False) -> CaptureResult:
        kind = CaptureKind.of(preview)
        try:
            if not self.is_initialized():
                raise NotInitializedError()
            return await self._capture(kind)
        except CameraError as e:
            logger.warning("%s %s capture failed: %s", self.name, kind.name.lower(), e)
            return e.to_result()

    async def close(self) -> None:
        self.state = BackendState.UNINITIALIZED

    # ---------- Variant hooks ----------

    @abstractmethod
    async def _connect(self) -> None:
        """Acquire the device or session. Raise ConnectionFailedError on failure."""

    @abstractmethod
    async def _capture(self, kind: CaptureKind) -> CaptureResult:
        """Produce exactly one result for `kind`. Raise CameraError on failure."""

    # ---------- Shared helpers ----------

    async def _capture_sample(self, kind: CaptureKind) -> CaptureResult:
        logger.info("%s: sample picture", self.name)
        ts = timestamp()
        try:
            data = await asyncio.to_thread(render_placeholder, ts)
        except (OSError, ValueError) as e:
            raise CaptureFailedError(SAMPLE_PICTURE_FAILED) from e

        return await self.pipeline.process(data, capture_filename(kind == CaptureKind.PREVIEW, ts))
