from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from camera.results import CaptureKind, FrameEvent

logger = logging.getLogger(__name__)

FrameListener = Callable[[FrameEvent], None]


class ListenerArbiter:
    """
    Routes inbound frames to at most one pending preview listener and at most
    one pending capture listener.

    A slot is cleared before its listener runs, so each listener fires exactly
    once. Both slots may fire off the same frame.
    """

    def __init__(self):
        self._slots: Dict[CaptureKind, Optional[FrameListener]] = {
            CaptureKind.PREVIEW: None,
            CaptureKind.FULL: None,
        }

    def pending(self, kind: CaptureKind) -> bool:
        return self._slots[kind] is not None

    def install(self, kind: CaptureKind, listener: FrameListener) -> bool:
        if self._slots[kind] is not None:
            logger.warning("%s listener already pending, expect frame drop", kind.name.lower())
            return False

        self._slots[kind] = listener
        return True

    def dispatch(self, frame: FrameEvent) -> int:
        """Hand `frame` to every pending listener. Returns how many fired."""
        taken = []
        for kind in (CaptureKind.PREVIEW, CaptureKind.FULL):
            listener = self._slots[kind]
            if listener is not None:
                self._slots[kind] = None
                taken.append((kind, listener))

        for kind, listener in taken:
            try:
                listener(frame)
            except Exception:
                logger.exception("%s listener failed", kind.name.lower())

        return len(taken)

    def clear(self) -> None:
        for kind in self._slots:
            self._slots[kind] = None
