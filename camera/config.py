"""
Backend configuration.

Loaded once at startup and read-only afterwards. The JSON layout follows the
photobooth `config.json`:

    {
      "cameraInterface": "livecam",
      "maxImageSize": 1500,
      "printing": {"enabled": false},
      "storage": {"root": "/var/lib/photobooth"},
      "fswebcam": {"simulate": false, "device": 0, "resolution": [1920, 1080]},
      "livecam": {"simulate": false, "broadcast_port": 12000}
    }
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple, Union

DEFAULT_MAX_IMAGE_SIZE = 1500


class ConfigError(ValueError):
    """Raised when the configuration file cannot be used."""


@dataclass(frozen=True)
class StorageConfig:
    root: Path
    printing_enabled: bool = False
    max_image_size: int = DEFAULT_MAX_IMAGE_SIZE

    @property
    def photos_dir(self) -> Path:
        return self.root / "photos"

    @property
    def full_size_photos_dir(self) -> Path:
        return self.root / "photos_fullsize"

    def prepare(self) -> None:
        self.photos_dir.mkdir(parents=True, exist_ok=True)
        self.full_size_photos_dir.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class LocalDeviceConfig:
    simulate: bool = False
    device: Union[int, str] = 0
    resolution: Optional[Tuple[int, int]] = None  # (width, height)
    output_format: str = "jpeg"
    jpeg_quality: int = 95
    keep_open: bool = True
    warmup_frames: int = 2


@dataclass(frozen=True)
class StreamedConfig:
    simulate: bool = False
    broadcast_addr: str = "127.0.0.1"
    broadcast_port: int = 12000
    event_name: str = "image"
    # argv with {addr} {port} {width} {height} placeholders; None means the
    # broadcaster is started outside this process
    broadcast_command: Optional[Tuple[str, ...]] = None
    reconnect_delay: float = 1.0
    width: int = 0
    height: int = 0

    @property
    def url(self) -> str:
        return f"ws://{self.broadcast_addr}:{self.broadcast_port}/"


@dataclass(frozen=True)
class BackendConfig:
    storage: StorageConfig
    kind: Optional[str] = None
    local_device: LocalDeviceConfig = field(default_factory=LocalDeviceConfig)
    streamed: StreamedConfig = field(default_factory=StreamedConfig)


def _section(data: dict, key: str) -> dict:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' must be an object")
    return value


def _resolution(value) -> Optional[Tuple[int, int]]:
    if value is None:
        return None
    try:
        width, height = value
        return int(width), int(height)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid resolution: {value!r}") from e


def config_from_dict(data: dict, *, default_root: Optional[Path] = None) -> BackendConfig:
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a JSON object")

    storage_data = _section(data, "storage")
    root = storage_data.get("root") or default_root or Path.cwd()

    try:
        storage = StorageConfig(
            root=Path(root),
            printing_enabled=bool(_section(data, "printing").get("enabled", False)),
            max_image_size=int(data.get("maxImageSize") or DEFAULT_MAX_IMAGE_SIZE),
        )

        webcam = _section(data, "fswebcam")
        local_device = LocalDeviceConfig(
            simulate=bool(webcam.get("simulate", False)),
            device=webcam.get("device", 0),
            resolution=_resolution(webcam.get("resolution")),
            output_format=str(webcam.get("output_format", "jpeg")),
            jpeg_quality=int(webcam.get("jpeg_quality", 95)),
            keep_open=bool(webcam.get("keep_open", True)),
            warmup_frames=int(webcam.get("warmup_frames", 2)),
        )

        live = _section(data, "livecam")
        command = live.get("broadcast_command")
        streamed = StreamedConfig(
            simulate=bool(live.get("simulate", False)),
            broadcast_addr=str(live.get("broadcast_addr", "127.0.0.1")),
            broadcast_port=int(live.get("broadcast_port", 12000)),
            event_name=str(live.get("event_name", "image")),
            broadcast_command=tuple(str(arg) for arg in command) if command else None,
            reconnect_delay=float(live.get("reconnect_delay", 1.0)),
            width=int(live.get("width", 0)),
            height=int(live.get("height", 0)),
        )
    except (TypeError, ValueError) as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(f"Invalid configuration value: {e}") from e

    if storage.max_image_size < 1:
        raise ConfigError(f"maxImageSize must be >= 1 (got {storage.max_image_size})")

    return BackendConfig(
        storage=storage,
        kind=data.get("cameraInterface"),
        local_device=local_device,
        streamed=streamed,
    )


def load_config(path: Path) -> BackendConfig:
    try:
        data = json.loads(Path(path).read_text())
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Configuration file is not valid JSON: {path}") from e

    return config_from_dict(data, default_root=Path(path).resolve().parent)
