import re
from pathlib import Path

import pytest
from PIL import Image

from camera.camera_base import BackendState
from camera.config import StorageConfig
from camera.results import ResultCode
from camera.simulated_camera import SimulatedCamera
from imaging.post_processing import PhotoPipeline


@pytest.fixture
def storage(tmp_path):
    storage = StorageConfig(root=tmp_path, printing_enabled=False, max_image_size=1500)
    storage.prepare()
    return storage


@pytest.fixture
def camera(storage):
    return SimulatedCamera(PhotoPipeline(storage))


def _all_files(storage):
    return [p for p in storage.root.rglob("*") if p.is_file()]


async def test_take_picture_before_initialize_fails_without_writing(camera, storage):
    result = await camera.take_picture()

    assert result.code == ResultCode.NOT_INITIALIZED
    assert result.primary == "camera not initialized"
    assert _all_files(storage) == []


async def test_full_capture_scenario(camera, storage):
    init = await camera.initialize()
    assert init.ok is True

    result = await camera.take_picture(preview=False)

    assert result.code == ResultCode.OK
    path = Path(result.primary)
    assert path.parent == storage.photos_dir
    assert re.fullmatch(r"img_\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2}-\d{3}\.jpg", path.name)
    assert result.secondary == f"photos/{path.name}"
    with Image.open(path) as img:
        img.load()
        assert img.width <= 1500


async def test_preview_capture_uses_fixed_name(camera, storage):
    await camera.initialize()

    result = await camera.take_picture(preview=True)

    assert result.ok
    assert result.primary == str(storage.photos_dir / "preview.jpg")
    assert result.secondary == "photos/preview.jpg"


async def test_initialize_twice_is_a_noop(camera, monkeypatch):
    calls = {"n": 0}
    original = camera._connect

    async def counting_connect():
        calls["n"] += 1
        await original()

    monkeypatch.setattr(camera, "_connect", counting_connect)

    first = await camera.initialize()
    second = await camera.initialize()

    assert first.ok and second.ok
    assert calls["n"] == 1
    assert camera.state == BackendState.READY


async def test_is_connected_follows_initialized(camera):
    assert await camera.is_connected() is False
    await camera.initialize()
    assert await camera.is_connected() is True
    assert camera.is_initialized() is True


async def test_placeholder_failure_reports_capture_failure(camera, storage, monkeypatch):
    def broken(_ts):
        raise OSError("encoder missing")

    monkeypatch.setattr("camera.camera_base.render_placeholder", broken)
    await camera.initialize()

    result = await camera.take_picture()

    assert result.code == ResultCode.CONNECTION_FAILED
    assert result.primary == "failed to create sample picture"
    assert isinstance(result.secondary, OSError)
    assert _all_files(storage) == []


async def test_close_returns_to_uninitialized(camera):
    await camera.initialize()
    await camera.close()

    assert camera.is_initialized() is False
    result = await camera.take_picture()
    assert result.code == ResultCode.NOT_INITIALIZED
