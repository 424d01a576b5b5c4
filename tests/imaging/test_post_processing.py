import asyncio

import pytest
from PIL import Image

from camera.config import StorageConfig
from camera.errors import ResizeFailedError, SaveFailedError
from camera.results import ResultCode
from imaging.post_processing import PhotoPipeline, _bounded_size
from tests.helpers import jpeg_bytes


@pytest.fixture
def storage(tmp_path):
    storage = StorageConfig(root=tmp_path)
    storage.prepare()
    return storage


async def test_resized_copy_is_bounded_by_max_width(storage):
    pipeline = PhotoPipeline(storage)

    result = await pipeline.process(jpeg_bytes((3000, 2000)), "img_1.jpg")

    assert result.code == ResultCode.OK
    assert result.primary == str(storage.photos_dir / "img_1.jpg")
    assert result.secondary == "photos/img_1.jpg"
    with Image.open(result.primary) as img:
        img.load()
        assert img.size == (1500, 1000)


async def test_small_images_are_not_upscaled(storage):
    pipeline = PhotoPipeline(storage)

    result = await pipeline.process(jpeg_bytes((800, 600)), "img_small.jpg")

    with Image.open(result.path) as img:
        assert img.size == (800, 600)


async def test_custom_max_width(tmp_path):
    pipeline = PhotoPipeline(StorageConfig(root=tmp_path, max_image_size=400))

    result = await pipeline.process(jpeg_bytes((1000, 500)), "img_1.jpg")

    with Image.open(result.path) as img:
        assert img.size == (400, 200)


async def test_printing_disabled_writes_no_full_size_copy(storage):
    await PhotoPipeline(storage).process(jpeg_bytes(), "img_1.jpg")

    assert list(storage.full_size_photos_dir.iterdir()) == []


async def test_printing_enabled_archives_untouched_bytes(tmp_path):
    storage = StorageConfig(root=tmp_path, printing_enabled=True)
    data = jpeg_bytes((2000, 1000))

    result = await PhotoPipeline(storage).process(data, "img_1.jpg")

    assert result.ok
    assert (storage.full_size_photos_dir / "img_1.jpg").read_bytes() == data
    assert (storage.photos_dir / "img_1.jpg").exists()


async def test_archive_failure_stops_before_resizing(tmp_path):
    storage = StorageConfig(root=tmp_path, printing_enabled=True)
    # a plain file where the archive directory should be
    storage.full_size_photos_dir.write_bytes(b"")

    with pytest.raises(SaveFailedError, match="saving hq image failed") as excinfo:
        await PhotoPipeline(storage).process(jpeg_bytes(), "img_1.jpg")

    assert excinfo.value.to_result().code == ResultCode.SAVE_FAILED
    assert not (storage.photos_dir / "img_1.jpg").exists()


async def test_undecodable_bytes_fail_resize(storage):
    with pytest.raises(ResizeFailedError, match="resizing image failed") as excinfo:
        await PhotoPipeline(storage).process(b"definitely not an image", "img_1.jpg")

    result = excinfo.value.to_result()
    assert result.code == ResultCode.SAVE_FAILED
    assert result.secondary is excinfo.value.__cause__


async def test_archival_mode_reports_full_size_path_twice(storage):
    data = jpeg_bytes((3000, 2000))

    result = await PhotoPipeline(storage, resize=False).process(data, "img_1.jpg")

    expected = str(storage.full_size_photos_dir / "img_1.jpg")
    assert result.ok
    assert result.primary == expected
    assert result.secondary == expected
    assert (storage.full_size_photos_dir / "img_1.jpg").read_bytes() == data
    assert list(storage.photos_dir.iterdir()) == []


async def test_concurrent_calls_for_distinct_files(storage):
    pipeline = PhotoPipeline(storage)

    results = await asyncio.gather(*(
        pipeline.process(jpeg_bytes((1600, 1200)), f"img_{i}.jpg") for i in range(4)
    ))

    assert all(r.ok for r in results)
    assert sorted(p.name for p in storage.photos_dir.iterdir()) == [
        "img_0.jpg", "img_1.jpg", "img_2.jpg", "img_3.jpg",
    ]


def test_bounded_size_keeps_aspect_ratio():
    assert _bounded_size((3000, 2000), 1500) == (1500, 1000)
    assert _bounded_size((1500, 10), 1500) == (1500, 10)
    assert _bounded_size((4000, 1), 1500) == (1500, 1)
