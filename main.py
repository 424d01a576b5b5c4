#!/usr/bin/env python
import argparse
import logging
from pathlib import Path

from camera.config import load_config
from web.app import create_app

logger = logging.getLogger("photobooth")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Photobooth camera service")
    parser.add_argument("--config", type=Path, default=Path("config.json"),
                        help="JSON configuration file (default: config.json)")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    app = create_app(config=config)

    # initialize up front so the first guest does not wait for the device
    result = app.runner.call(app.runner.camera.initialize())
    if not result.ok:
        logger.warning("Camera not ready at startup: %s (%s)", result.message, result.cause)

    try:
        app.run(host=args.host, port=args.port, threaded=True)
    finally:
        app.runner.stop()


if __name__ == "__main__":
    main()
