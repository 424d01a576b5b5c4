import asyncio
import threading
from concurrent.futures import Future
from typing import Awaitable, Optional, TypeVar

from camera.camera_base import Camera

T = TypeVar("T")


class CameraRunner:
    """
    Owns the event loop the camera lives on.

    IMPORTANT:
    - All camera state is touched from the loop thread only.
    - Threaded callers (the Flask app) submit coroutines and block on the result.
    """

    def __init__(self, camera: Camera):
        self.camera = camera
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return

        self._ready.clear()
        self._thread = threading.Thread(target=self._run, name="camera-loop", daemon=True)
        self._thread.start()
        self._ready.wait()

    def stop(self, timeout: float = 10.0) -> None:
        if not self.running:
            return

        try:
            self.call(self.camera.close(), timeout=timeout)
        finally:
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout)
            self._thread = None

    def submit(self, coro: Awaitable[T]) -> Future:
        if not self.running:
            raise RuntimeError("Camera runner is not started")
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def call(self, coro: Awaitable[T], timeout: Optional[float] = None) -> T:
        return self.submit(coro).result(timeout)

    def is_initialized(self) -> bool:
        return self.camera.is_initialized()

    def _run(self) -> None:
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        self._ready.set()
        try:
            self._loop.run_forever()
        finally:
            self._loop.close()
