from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from camera.config import StreamedConfig

logger = logging.getLogger(__name__)

STARTUP_GRACE = 0.5  # seconds the broadcaster must survive to count as started
STOP_TIMEOUT = 5.0  # seconds


class BroadcastProcess:
    """
    Local process that reads the webcam and broadcasts its frames.

    Design constraints:
    - The command comes from configuration; without one, the broadcaster is
      assumed to be managed outside this process and start/stop do nothing.
    - A process that exits during the startup grace period is a start failure.
    """

    def __init__(self, config: StreamedConfig, startup_grace: float = STARTUP_GRACE):
        self._config = config
        self._startup_grace = startup_grace
        self._process: Optional[asyncio.subprocess.Process] = None

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    def command(self) -> Optional[List[str]]:
        template: Optional[Sequence[str]] = self._config.broadcast_command
        if not template:
            return None

        values = {
            "addr": self._config.broadcast_addr,
            "port": self._config.broadcast_port,
            "width": self._config.width,
            "height": self._config.height,
        }
        return [arg.format(**values) for arg in template]

    async def start(self) -> None:
        if self.running:
            return

        cmd = self.command()
        if cmd is None:
            return

        logger.info("Starting frame broadcaster: %s", " ".join(cmd))
        self._process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.DEVNULL,
        )

        try:
            await asyncio.wait_for(self._process.wait(), timeout=self._startup_grace)
        except asyncio.TimeoutError:
            logger.info("WebCam server started!")
            return

        returncode = self._process.returncode
        self._process = None
        raise OSError(f"Frame broadcaster exited during startup (rc={returncode})")

    async def stop(self) -> None:
        process, self._process = self._process, None
        if process is None or process.returncode is not None:
            return

        process.terminate()
        try:
            await asyncio.wait_for(process.wait(), timeout=STOP_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning("Frame broadcaster did not exit, killing it")
            process.kill()
            await process.wait()
