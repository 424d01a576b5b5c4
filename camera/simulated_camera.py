from camera.camera_base import Camera
from camera.results import CaptureKind, CaptureResult


class SimulatedCamera(Camera):
    """Camera stand-in that renders a timestamped placeholder for every capture."""

    name = "simulated camera"

    async def _connect(self) -> None:
        return None

    async def _capture(self, kind: CaptureKind) -> CaptureResult:
        return await self._capture_sample(kind)
