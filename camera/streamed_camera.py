from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from typing import Dict, Optional, Set

from camera.broadcast_client import FrameBroadcastClient
from camera.broadcast_process import BroadcastProcess
from camera.camera_base import Camera
from camera.config import StreamedConfig
from camera.errors import CameraError, CaptureFailedError, ConnectionFailedError
from camera.listener_arbiter import ListenerArbiter
from camera.naming import capture_filename
from camera.results import CaptureKind, CaptureResult, FrameEvent
from imaging.post_processing import PhotoPipeline

logger = logging.getLogger(__name__)

CONNECT_ATTEMPTS = 3


class StreamedCamera(Camera):
    """
    Live camera whose frames arrive continuously over a broadcast connection.

    Frames are not correlated with requests: take_picture() parks a listener
    that fires on the next frame to arrive. At most one preview and one
    capture request are pending at a time. There is no timeout, so a request
    made while the broadcaster is unreachable waits until it comes back.
    """

    name = "livecam"

    def __init__(
            self,
            pipeline: PhotoPipeline,
            config: StreamedConfig,
            *,
            process: Optional[BroadcastProcess] = None,
            client: Optional[FrameBroadcastClient] = None,
    ):
        super().__init__(pipeline)
        self.config = config
        self.arbiter = ListenerArbiter()
        self.process = process or BroadcastProcess(config)
        self.client = client or FrameBroadcastClient(
            config.url,
            self.arbiter.dispatch,
            event_name=config.event_name,
            reconnect_delay=config.reconnect_delay,
        )
        self._pending: Dict[CaptureKind, asyncio.Future] = {}
        self._tasks: Set[asyncio.Task] = set()

    # ---------- Lifecycle ----------

    async def _connect(self) -> None:
        if self.config.simulate:
            return

        try:
            await self.process.start()
        except OSError as e:
            raise ConnectionFailedError() from e

        # a freshly started broadcaster may not be listening yet
        for attempt in range(1, CONNECT_ATTEMPTS + 1):
            try:
                await self.client.connect()
                return
            except ConnectionFailedError as e:
                if attempt == CONNECT_ATTEMPTS:
                    await self.process.stop()
                    raise
                logger.info("%s connect attempt %d failed: %s", self.name, attempt, e.__cause__)
            await asyncio.sleep(self.config.reconnect_delay)

    async def is_connected(self) -> bool:
        if self.config.simulate:
            return self.is_initialized()
        return self.is_initialized() and self.client.connected

    async def close(self) -> None:
        await self.client.close()
        await self.process.stop()
        self.arbiter.clear()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        for future in self._pending.values():
            if not future.done():
                future.set_result(CaptureFailedError("camera closed").to_result())
        self._pending.clear()
        await super().close()

    # ---------- Capture ----------

    async def _capture(self, kind: CaptureKind) -> CaptureResult:
        if self.config.simulate:
            return await self._capture_sample(kind)

        future = asyncio.get_running_loop().create_future()
        if self.arbiter.install(kind, self._listener_for(kind, future)):
            self._pending[kind] = future
        else:
            # one listener per kind; the caller shares the outcome of the pending request
            future = self._pending[kind]
        return await asyncio.shield(future)

    def _listener_for(self, kind: CaptureKind, future: asyncio.Future):
        if kind == CaptureKind.PREVIEW:
            def on_preview(frame: FrameEvent) -> None:
                if not future.done():
                    future.set_result(CaptureResult.preview(frame.data))

            return on_preview

        def on_capture(frame: FrameEvent) -> None:
            task = asyncio.get_running_loop().create_task(self._save_frame(frame, future))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        return on_capture

    async def _save_frame(self, frame: FrameEvent, future: asyncio.Future) -> None:
        try:
            try:
                data = base64.b64decode(frame.data, validate=True)
            except (binascii.Error, ValueError) as e:
                raise CaptureFailedError() from e
            result = await self.pipeline.process(data, capture_filename(False))
        except CameraError as e:
            logger.warning("%s capture failed: %s", self.name, e)
            result = e.to_result()
        except Exception as e:
            logger.exception("%s capture failed", self.name)
            if not future.done():
                future.set_exception(e)
            return

        if not future.done():
            future.set_result(result)
