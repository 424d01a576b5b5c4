import asyncio
import base64
import io
import time
from typing import Callable, Tuple

from PIL import Image


async def async_wait_for(
        condition: Callable[[], bool],
        timeout: float = 5.0,
        interval: float = 0.01,
):
    """
    Wait until condition() returns True or timeout is reached.

    Raises AssertionError on timeout.
    """
    deadline = time.monotonic() + timeout

    while time.monotonic() < deadline:
        if condition():
            return
        await asyncio.sleep(interval)

    raise AssertionError("Condition not met before timeout")


def jpeg_bytes(size: Tuple[int, int] = (640, 480), color=(10, 120, 200)) -> bytes:
    out = io.BytesIO()
    Image.new("RGB", size, color).save(out, format="JPEG")
    return out.getvalue()


def jpeg_frame(size: Tuple[int, int] = (640, 480)) -> str:
    """A broadcast payload: base64 encoded JPEG."""
    return base64.b64encode(jpeg_bytes(size)).decode("ascii")
