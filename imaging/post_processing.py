from __future__ import annotations

import asyncio
import io
import logging
import os
from pathlib import Path
from typing import Tuple

from PIL import Image

from camera.config import StorageConfig
from camera.errors import ResizeFailedError, SaveFailedError
from camera.naming import web_path
from camera.results import CaptureResult

logger = logging.getLogger(__name__)


def _write_durably(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())


def _bounded_size(size: Tuple[int, int], max_width: int) -> Tuple[int, int]:
    """Scale `size` down so its width is at most `max_width`, keeping aspect ratio."""
    src_w, src_h = size
    if src_w <= max_width:
        return src_w, src_h

    scale = max_width / src_w
    return max_width, max(1, int(round(src_h * scale)))


def _resize_to_file(data: bytes, path: Path, max_width: int) -> Tuple[int, int]:
    with Image.open(io.BytesIO(data)) as src:
        img = src.convert("RGB")

    target = _bounded_size(img.size, max_width)
    if target != img.size:
        img = img.resize(target, resample=Image.Resampling.LANCZOS)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        img.save(f, format="JPEG", quality=90)
        f.flush()
        os.fsync(f.fileno())

    return img.size


class PhotoPipeline:
    """
    Persists captured image bytes.

    With `resize` enabled (simulated and local-device cameras) the pipeline
    optionally archives the untouched bytes when printing is enabled and then
    writes a width-bounded display copy under the photos directory. Without
    it (streamed camera) the bytes are archived as-is and the archive path is
    reported twice.

    Stateless between calls; concurrent calls must use distinct filenames.
    """

    def __init__(self, storage: StorageConfig, *, resize: bool = True):
        self.storage = storage
        self.resize = resize

    async def process(self, data: bytes, filename: str) -> CaptureResult:
        if not self.resize:
            path = await self._save_full_size(data, filename)
            return CaptureResult.success(path, str(path))

        if self.storage.printing_enabled:
            await self._save_full_size(data, filename)

        resized_path = self.storage.photos_dir / filename
        try:
            size = await asyncio.to_thread(
                _resize_to_file, data, resized_path, self.storage.max_image_size
            )
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            logger.warning("Resizing %s failed: %s", filename, e)
            raise ResizeFailedError() from e

        logger.info("Saved %s (%dx%d)", resized_path, size[0], size[1])
        return CaptureResult.success(resized_path, web_path(filename))

    async def _save_full_size(self, data: bytes, filename: str) -> Path:
        path = self.storage.full_size_photos_dir / filename
        try:
            await asyncio.to_thread(_write_durably, path, data)
        except OSError as e:
            logger.warning("Saving full size image %s failed: %s", path, e)
            raise SaveFailedError() from e
        return path
