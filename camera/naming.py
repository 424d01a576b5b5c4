from datetime import datetime
from typing import Optional

PREVIEW_FILENAME = "preview.jpg"
WEB_PHOTOS_PREFIX = "photos"


def timestamp(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return now.strftime("%Y-%m-%d_%H-%M-%S-") + f"{now.microsecond // 1000:03d}"


def capture_filename(preview: bool, ts: Optional[str] = None) -> str:
    if preview:
        return PREVIEW_FILENAME
    return f"img_{ts or timestamp()}.jpg"


def web_path(filename: str) -> str:
    return f"{WEB_PHOTOS_PREFIX}/{filename}"
