"""Entry point for the ZKTeco push ingestion server."""

import logging
import signal
import sys
import threading

from zkpush.app import create_app
from zkpush.config import load_config
from zkpush.server import PushServer


def main():
    config = load_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        stream=sys.stderr,
    )
    logger = logging.getLogger(__name__)

    shutdown_event = threading.Event()

    def signal_handler(signum, frame):
        logger.info("Received signal %d, shutting down...", signum)
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
    if hasattr(signal, "SIGUSR2"):
        signal.signal(signal.SIGUSR2, signal_handler)

    app = create_app(config)
    server = PushServer(app, config)
    server.start()

    try:
        while not shutdown_event.wait(timeout=1.0):
            pass
    finally:
        server.stop()


if __name__ == "__main__":
    main()
