from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum, IntEnum, auto
from pathlib import Path
from typing import Optional, Union


class ResultCode(IntEnum):
    OK = 0
    NOT_INITIALIZED = -1
    CONNECTION_FAILED = -2
    SAVE_FAILED = -3


class CaptureKind(Enum):
    PREVIEW = auto()
    FULL = auto()

    @staticmethod
    def of(preview: bool) -> "CaptureKind":
        return CaptureKind.PREVIEW if preview else CaptureKind.FULL


@dataclass(frozen=True)
class FrameEvent:
    """One encoded frame pushed by the broadcaster. Only arrival order identifies it."""

    data: str
    received_at: float = field(default_factory=time.monotonic)


@dataclass(frozen=True)
class InitResult:
    ok: bool
    message: Optional[str] = None
    cause: Optional[BaseException] = None

    @staticmethod
    def success() -> "InitResult":
        return InitResult(ok=True)

    @staticmethod
    def failed(message: str, cause: Optional[BaseException] = None) -> "InitResult":
        return InitResult(ok=False, message=message, cause=cause)


@dataclass(frozen=True)
class CaptureResult:
    """
    Outcome of one take_picture call.

    On success `primary` is the derived file path and `secondary` the
    web-relative path. Streamed previews carry the raw frame payload in
    `primary` and nothing in `secondary`. On failure `primary` is a
    human-readable message and `secondary` the underlying cause.
    """

    code: ResultCode
    primary: str
    secondary: Union[str, BaseException, None] = None

    @property
    def ok(self) -> bool:
        return self.code == ResultCode.OK

    @property
    def path(self) -> Optional[Path]:
        if not self.ok or self.secondary is None:
            return None
        return Path(self.primary)

    @staticmethod
    def success(path: Path, web_path: str) -> "CaptureResult":
        return CaptureResult(code=ResultCode.OK, primary=str(path), secondary=web_path)

    @staticmethod
    def preview(frame: str) -> "CaptureResult":
        return CaptureResult(code=ResultCode.OK, primary=frame)

    @staticmethod
    def failure(
            code: ResultCode,
            message: str,
            cause: Optional[BaseException] = None,
    ) -> "CaptureResult":
        return CaptureResult(code=code, primary=message, secondary=cause)

    def to_dict(self) -> dict:
        if self.ok:
            return {
                "code": int(self.code),
                "path": self.primary if self.secondary is not None else None,
                "web_path": self.secondary,
            }

        return {
            "code": int(self.code),
            "message": self.primary,
            "cause": str(self.secondary) if self.secondary is not None else None,
        }
