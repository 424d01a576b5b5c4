from __future__ import annotations

from camera.results import CaptureResult, ResultCode

NOT_INITIALIZED = "camera not initialized"
CONNECTION_FAILED = "connection to webcam failed"
CAPTURE_FAILED = "capture failed"
SAMPLE_PICTURE_FAILED = "failed to create sample picture"
SAVE_FAILED = "saving hq image failed"
RESIZE_FAILED = "resizing image failed"


class CameraError(Exception):
    """Base class for every failure a capture backend reports."""

    code = ResultCode.CONNECTION_FAILED

    def to_result(self) -> CaptureResult:
        return CaptureResult.failure(self.code, str(self), self.__cause__ or self)


class NotInitializedError(CameraError):
    code = ResultCode.NOT_INITIALIZED

    def __init__(self, message: str = NOT_INITIALIZED):
        super().__init__(message)


class ConnectionFailedError(CameraError):
    code = ResultCode.CONNECTION_FAILED

    def __init__(self, message: str = CONNECTION_FAILED):
        super().__init__(message)


class CaptureFailedError(CameraError):
    code = ResultCode.CONNECTION_FAILED

    def __init__(self, message: str = CAPTURE_FAILED):
        super().__init__(message)


class SaveFailedError(CameraError):
    code = ResultCode.SAVE_FAILED

    def __init__(self, message: str = SAVE_FAILED):
        super().__init__(message)


class ResizeFailedError(CameraError):
    code = ResultCode.SAVE_FAILED

    def __init__(self, message: str = RESIZE_FAILED):
        super().__init__(message)
