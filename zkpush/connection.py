"""Background connection loop for the primary document store.

DISCONNECTED --connect ok--> CONNECTED
DISCONNECTED --connect fails--> DISCONNECTED, next attempt in retry_interval

Attempts run on an APScheduler BackgroundScheduler so request handling never
waits on them. There is no retry limit and no backoff growth.
"""

import logging
import threading
from datetime import datetime, timedelta
from enum import Enum

from apscheduler.schedulers.background import BackgroundScheduler

from zkpush.store import DocumentStore

logger = logging.getLogger(__name__)

CONNECT_JOB_NAME = "store-connect"


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class ConnectionSupervisor:
    def __init__(self, store: DocumentStore, retry_interval: float = 5.0,
                 scheduler=None):
        self._store = store
        self._retry_interval = retry_interval
        self._scheduler = scheduler or BackgroundScheduler()
        self._stopped = threading.Event()
        self._attempts = 0

    @property
    def state(self) -> ConnectionState:
        if self._store.is_connected:
            return ConnectionState.CONNECTED
        return ConnectionState.DISCONNECTED

    @property
    def attempts(self) -> int:
        return self._attempts

    def start(self):
        """Start the scheduler and submit an immediate connect attempt."""
        self._stopped.clear()
        if not self._scheduler.running:
            self._scheduler.start()
        self._schedule(run_date=None)

    def _schedule(self, run_date):
        if self._stopped.is_set():
            return
        # no misfire window: a late retry still runs
        kwargs = {"name": CONNECT_JOB_NAME, "misfire_grace_time": None}
        if run_date is not None:
            kwargs["trigger"] = "date"
            kwargs["run_date"] = run_date
        self._scheduler.add_job(self.attempt, **kwargs)

    def attempt(self) -> bool:
        """Run one connect attempt; on failure schedule the next one."""
        if self._stopped.is_set() or self._store.is_connected:
            return self._store.is_connected

        self._attempts += 1
        logger.info("Attempting store connection (attempt %d)...", self._attempts)
        try:
            self._store.connect()
        except Exception as exc:
            logger.warning(
                "Store connection failed: %s; retrying in %.0f seconds",
                exc, self._retry_interval,
            )
            self._schedule(datetime.now() + timedelta(seconds=self._retry_interval))
            return False

        if self._stopped.is_set():
            # stop() ran while this attempt was in flight
            self._store.close()
            return False

        logger.info("Store connected after %d attempt(s)", self._attempts)
        return True

    def stop(self):
        """Cancel pending attempts and shut the scheduler down. Safe to call twice."""
        if self._stopped.is_set():
            return
        self._stopped.set()
        if self._scheduler.running:
            self._scheduler.remove_all_jobs()
            self._scheduler.shutdown(wait=False)
        logger.info("Connection supervisor stopped")
