import itertools

import pytest

from zkpush.app import create_app
from zkpush.config import Config
from zkpush.gateway import PersistenceGateway
from zkpush.store import InMemoryLogStore


class FakeStore:
    """Stand-in document store with switchable connectivity and failures."""

    def __init__(self, connected=True, fail_with=None):
        self.connected = connected
        self.fail_with = fail_with
        self.documents = []
        self.connect_calls = 0
        self.closed = False
        self._ids = itertools.count(1)

    @property
    def is_connected(self):
        return self.connected

    def connect(self):
        self.connect_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        self.connected = True

    def insert(self, document):
        if self.fail_with is not None:
            raise self.fail_with
        inserted_id = f"oid-{next(self._ids)}"
        self.documents.append(dict(document, _id=inserted_id))
        return inserted_id

    def close(self):
        self.closed = True
        self.connected = False


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def offline_store():
    return FakeStore(connected=False)


@pytest.fixture
def fallback():
    return InMemoryLogStore()


@pytest.fixture
def counter_ids():
    counter = itertools.count(1700000000000)
    return lambda: str(next(counter))


@pytest.fixture
def gateway(fake_store, fallback, counter_ids):
    return PersistenceGateway(fake_store, fallback, id_factory=counter_ids)


@pytest.fixture
def offline_gateway(offline_store, fallback, counter_ids):
    return PersistenceGateway(offline_store, fallback, id_factory=counter_ids)


@pytest.fixture
def sample_punch():
    return {
        "SN": "CKJ8220460020",
        "PIN": "1001",
        "Verified": 1,
        "Status": 0,
        "DateTime": "2024-01-15 08:30:00",
    }


@pytest.fixture
def app(gateway):
    """Create a Flask test app backed by a connected fake store."""
    application = create_app(Config(), gateway=gateway)
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    """Create a Flask test client."""
    return app.test_client()


@pytest.fixture
def offline_client(offline_gateway):
    application = create_app(Config(), gateway=offline_gateway)
    application.config["TESTING"] = True
    return application.test_client()
