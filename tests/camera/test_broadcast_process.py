import sys

import pytest

from camera.broadcast_process import BroadcastProcess
from camera.config import StreamedConfig


def make_process(command, grace=0.2, **kwargs):
    return BroadcastProcess(StreamedConfig(broadcast_command=command, **kwargs), startup_grace=grace)


def test_command_placeholders_are_filled():
    process = make_process(
        ["broadcaster", "--bind", "{addr}:{port}", "--size", "{width}x{height}"],
        broadcast_port=12001,
        width=1280,
        height=720,
    )

    assert process.command() == ["broadcaster", "--bind", "127.0.0.1:12001", "--size", "1280x720"]


async def test_no_command_means_external_broadcaster():
    process = make_process(None)

    await process.start()
    await process.stop()

    assert process.command() is None
    assert process.running is False


async def test_start_and_stop_long_running_broadcaster():
    process = make_process([sys.executable, "-c", "import time; time.sleep(60)"])

    await process.start()
    assert process.running is True

    # starting again does not spawn a second broadcaster
    first = process._process
    await process.start()
    assert process._process is first

    await process.stop()
    assert process.running is False
    assert first.returncode is not None


async def test_broadcaster_exiting_at_startup_is_an_error():
    process = make_process([sys.executable, "-c", "raise SystemExit(3)"], grace=30.0)

    with pytest.raises(OSError, match="rc=3"):
        await process.start()

    assert process.running is False


async def test_missing_broadcaster_binary():
    process = make_process(["/nonexistent/frame-broadcaster"])

    with pytest.raises(FileNotFoundError):
        await process.start()
