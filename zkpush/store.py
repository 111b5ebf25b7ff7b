"""Document store clients: MongoDB primary and the in-memory fallback buffer."""

import logging
import threading
from typing import Any, Protocol, runtime_checkable

from pymongo import MongoClient

logger = logging.getLogger(__name__)


@runtime_checkable
class DocumentStore(Protocol):
    @property
    def is_connected(self) -> bool: ...

    def connect(self) -> None: ...

    def insert(self, document: dict[str, Any]) -> Any: ...

    def close(self) -> None: ...


class MongoLogStore:
    """Punch log collection in MongoDB.

    ``connect()`` raises on failure and leaves the store disconnected; the
    connection supervisor owns retrying it. After a successful connect the
    client's server monitor keeps the topology current, so ``is_connected``
    drops to False as soon as a heartbeat finds no writable server and comes
    back once the monitor rediscovers the primary.
    """

    def __init__(self, uri: str, database: str = "zkpush", collection: str = "logs",
                 server_selection_timeout_ms: int = 5000,
                 socket_timeout_ms: int = 45000):
        self._uri = uri
        self._database = database
        self._collection_name = collection
        self._server_selection_timeout_ms = server_selection_timeout_ms
        self._socket_timeout_ms = socket_timeout_ms
        self._client = None
        self._collection = None
        self._lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        client = self._client
        if client is None or self._collection is None:
            return False
        # monitor state only; never blocks on server selection
        return bool(client.topology_description.has_writable_server())

    def connect(self) -> None:
        client = MongoClient(
            self._uri,
            serverSelectionTimeoutMS=self._server_selection_timeout_ms,
            socketTimeoutMS=self._socket_timeout_ms,
            retryWrites=True,
            w="majority",
        )
        try:
            client.admin.command("ping")
        except Exception:
            client.close()
            raise

        with self._lock:
            previous = self._client
            self._client = client
            self._collection = client[self._database][self._collection_name]
        if previous is not None:
            previous.close()
        logger.info("MongoDB connected: %s.%s", self._database, self._collection_name)

    def insert(self, document: dict[str, Any]) -> Any:
        collection = self._collection
        if collection is None:
            raise RuntimeError("MongoDB is not connected")
        # insert_one adds _id to the dict it is given
        result = collection.insert_one(dict(document))
        return result.inserted_id

    def close(self) -> None:
        with self._lock:
            client = self._client
            self._client = None
            self._collection = None
        if client is not None:
            client.close()
            logger.info("MongoDB connection closed")


class InMemoryLogStore:
    """Thread-safe append-only buffer holding punches the primary store could not take."""

    def __init__(self):
        self._documents: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def append(self, document: dict[str, Any]):
        with self._lock:
            self._documents.append(document)

    def get_all(self) -> list[dict[str, Any]]:
        """Return a copy of every buffered document in insertion order."""
        with self._lock:
            return list(self._documents)

    def find(self, document_id: str) -> list[dict[str, Any]]:
        """Return every buffered document with this id (ids are not guaranteed unique)."""
        with self._lock:
            return [d for d in self._documents if d.get("_id") == document_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._documents)

    def clear(self):
        with self._lock:
            self._documents.clear()
