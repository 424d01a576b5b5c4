"""
Flask application exposing the selected camera over HTTP.
"""
import base64
import binascii
import logging
import os
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path

from flask import Flask, Response, jsonify, request, send_from_directory

from camera.config import BackendConfig, StorageConfig, load_config
from camera.results import CaptureResult, ResultCode
from camera.runner import CameraRunner
from camera.selector import create_camera

logger = logging.getLogger(__name__)

LIVE_VIEW_TIMEOUT = 2.0  # seconds
TAKE_PHOTO_TIMEOUT = 30.0  # seconds

_HTTP_STATUS = {
    ResultCode.OK: 200,
    ResultCode.NOT_INITIALIZED: 409,
    ResultCode.CONNECTION_FAILED: 502,
    ResultCode.SAVE_FAILED: 500,
}


def _default_config() -> BackendConfig:
    config_path = os.environ.get("PHOTOBOOTH_CONFIG")
    if config_path:
        return load_config(Path(config_path))

    # Default: project root relative to this file
    return BackendConfig(storage=StorageConfig(root=Path(__file__).resolve().parents[1]))


def _preview_bytes(result: CaptureResult) -> bytes:
    # live cameras hand back the broadcast payload, the others a file path
    if result.secondary is None:
        try:
            return base64.b64decode(result.primary, validate=True)
        except (binascii.Error, ValueError):
            return b""
    return Path(result.primary).read_bytes()


def create_app(camera=None, config: BackendConfig | None = None, runner: CameraRunner | None = None):
    if config is None:
        config = _default_config()
    config.storage.prepare()

    if runner is None:
        if camera is None:
            camera = create_camera(config)
        runner = CameraRunner(camera)
    runner.start()

    app = Flask(__name__)
    app.config["PHOTOS_DIR"] = config.storage.photos_dir
    app.runner = runner

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({
            "initialized": app.runner.is_initialized(),
            "connected": app.runner.call(app.runner.camera.is_connected()),
        })

    @app.route("/initialize", methods=["POST"])
    def initialize():
        result = app.runner.call(app.runner.camera.initialize())
        body = {"ok": result.ok, "message": result.message}
        return jsonify(body), (200 if result.ok else 503)

    @app.route("/take-photo", methods=["POST"])
    def take_photo():
        data = request.get_json(silent=True) or {}
        preview = bool(data.get("preview", False))

        try:
            result = app.runner.call(
                app.runner.camera.take_picture(preview=preview),
                timeout=TAKE_PHOTO_TIMEOUT,
            )
        except FutureTimeoutError:
            return jsonify({"ok": False, "error": "timeout"}), 504

        return jsonify(result.to_dict()), _HTTP_STATUS[result.code]

    @app.route("/live-view", methods=["GET"])
    def live_view():
        try:
            result = app.runner.call(
                app.runner.camera.take_picture(preview=True),
                timeout=LIVE_VIEW_TIMEOUT,
            )
        except FutureTimeoutError:
            return "", 204

        frame = _preview_bytes(result) if result.ok else b""
        if not frame:
            return "", 204
        return Response(frame, mimetype="image/jpeg")

    @app.route("/photos/<path:filename>")
    def photos(filename: str):
        return send_from_directory(str(app.config["PHOTOS_DIR"]), filename)

    return app
