"""Runs the push app on a threaded WSGI server with graceful shutdown."""

import logging
import os
import threading

from flask import Flask
from werkzeug.serving import make_server

from zkpush.config import Config
from zkpush.connection import ConnectionSupervisor
from zkpush.gateway import PersistenceGateway

logger = logging.getLogger(__name__)


def _force_exit():
    logger.error("Forcing process exit after shutdown grace period")
    os._exit(1)


class PushServer:
    """Owns the HTTP server, the store connection loop and shutdown ordering.

    stop() closes the listener, lets in-flight requests finish, stops the
    connection loop and closes the store. A daemon timer kills the process
    if that takes longer than the grace period.
    """

    def __init__(self, app: Flask, config: Config,
                 supervisor: ConnectionSupervisor | None = None):
        self._app = app
        self._config = config
        self._gateway: PersistenceGateway = app.config["components"]["gateway"]
        self._supervisor = supervisor or ConnectionSupervisor(
            self._gateway.store, retry_interval=config.retry_interval_seconds,
        )
        self._httpd = None
        self._thread = None
        self._stop_lock = threading.Lock()
        self._stopped = False

    @property
    def server_address(self) -> tuple:
        """Return (host, port) the server is bound to. Useful when port=0."""
        if self._httpd is None:
            return None
        return self._httpd.server_address

    def start(self):
        """Bind the listener, start the connection loop and serve in a thread."""
        self._httpd = make_server(
            self._config.host, self._config.port, self._app, threaded=True,
        )
        # non-daemon request threads are joined by server_close()
        self._httpd.daemon_threads = False
        self._httpd.block_on_close = True
        self._supervisor.start()
        self._thread = threading.Thread(target=self._httpd.serve_forever, daemon=True)
        self._thread.start()
        logger.info("Server running on %s:%d", *self.server_address[:2])
        logger.info("Push endpoint available at /api/zkpush")

    def stop(self, grace_seconds: float | None = None):
        with self._stop_lock:
            if self._stopped:
                return
            self._stopped = True

        grace = self._config.shutdown_grace_seconds if grace_seconds is None else grace_seconds
        timer = threading.Timer(grace, _force_exit)
        timer.daemon = True
        timer.start()

        logger.info("Closing HTTP server...")
        if self._httpd is not None:
            self._httpd.shutdown()
            self._httpd.server_close()
            logger.info("HTTP server closed")

        self._supervisor.stop()
        self._gateway.store.close()
        timer.cancel()
        logger.info("Shutdown complete")
