from __future__ import annotations

import logging
from typing import Optional

from camera.camera_base import Camera
from camera.config import BackendConfig
from camera.local_device_camera import LocalDeviceCamera
from camera.simulated_camera import SimulatedCamera
from camera.streamed_camera import StreamedCamera
from imaging.post_processing import PhotoPipeline

logger = logging.getLogger(__name__)

SIMULATED = "simulated"
LOCAL_DEVICE = "local_device"
STREAMED = "streamed"

_KIND_ALIASES = {
    "simulated": SIMULATED,
    "simulate": SIMULATED,
    "local_device": LOCAL_DEVICE,
    "webcam": LOCAL_DEVICE,
    "fswebcam": LOCAL_DEVICE,
    "streamed": STREAMED,
    "livecam": STREAMED,
}


def resolve_kind(kind: Optional[str]) -> str:
    resolved = _KIND_ALIASES.get((kind or "").strip().lower())
    if resolved is None:
        logger.warning("Unknown camera interface %r, using %s", kind, LOCAL_DEVICE)
        return LOCAL_DEVICE
    return resolved


def create_camera(config: BackendConfig, pipeline: Optional[PhotoPipeline] = None) -> Camera:
    """Build the one capture backend named by `config.kind`."""
    kind = resolve_kind(config.kind)
    logger.info("Using %s camera", kind)

    if kind == SIMULATED:
        return SimulatedCamera(pipeline or PhotoPipeline(config.storage))

    if kind == STREAMED:
        # the live camera archives frames untouched; no display copy
        return StreamedCamera(
            pipeline or PhotoPipeline(config.storage, resize=False),
            config.streamed,
        )

    return LocalDeviceCamera(pipeline or PhotoPipeline(config.storage), config.local_device)
