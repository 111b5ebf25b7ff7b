"""Persistence gateway: primary store first, in-memory fallback on any failure."""

import logging
import time
from typing import Callable

from zkpush.models import LogRecord, Outcome, StorageKind
from zkpush.store import DocumentStore, InMemoryLogStore

logger = logging.getLogger(__name__)


def millisecond_id() -> str:
    """Local fallback id: current time in milliseconds. Collisions are possible."""
    return str(int(time.time() * 1000))


class PersistenceGateway:
    """Saves LogRecords without ever raising to the caller."""

    def __init__(self, store: DocumentStore, fallback: InMemoryLogStore,
                 id_factory: Callable[[], str] | None = None):
        self._store = store
        self._fallback = fallback
        self._id_factory = id_factory or millisecond_id

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def fallback(self) -> InMemoryLogStore:
        return self._fallback

    def save(self, record: LogRecord) -> Outcome:
        document = record.to_document()

        if self._store.is_connected:
            try:
                inserted_id = self._store.insert(document)
            except Exception as exc:
                logger.warning("Primary store insert failed, using memory: %s", exc)
            else:
                logger.info("Saved to MongoDB: %s", inserted_id)
                return Outcome(True, str(inserted_id), StorageKind.PRIMARY)
        else:
            logger.warning("Primary store not connected, using memory")

        return self._save_fallback(document)

    def _save_fallback(self, document: dict) -> Outcome:
        try:
            memory_id = self._id_factory()
            document["_id"] = memory_id
            self._fallback.append(document)
        except Exception as exc:
            logger.error("Fallback storage failed, record dropped: %s", exc)
            return Outcome(False, error=str(exc))

        logger.info("Saved to memory storage: %s", memory_id)
        return Outcome(True, memory_id, StorageKind.FALLBACK)
