"""Integration tests: run the push server on a real socket."""

import http.client
import json
import time

import pytest

from zkpush.app import create_app
from zkpush.config import Config
from zkpush.connection import ConnectionSupervisor
from zkpush.gateway import PersistenceGateway
from zkpush.server import PushServer
from zkpush.store import InMemoryLogStore
from tests.conftest import FakeStore


@pytest.fixture
def running_server():
    store = FakeStore(connected=False, fail_with=ConnectionError("refused"))
    fallback = InMemoryLogStore()
    config = Config(host="127.0.0.1", port=0, retry_interval_seconds=0.05)
    app = create_app(config, gateway=PersistenceGateway(store, fallback))
    server = PushServer(app, config)
    server.start()
    yield server, store, fallback
    server.stop()


def _request(server, method, path, body=None, headers=None):
    host, port = server.server_address[:2]
    conn = http.client.HTTPConnection(host, port, timeout=5)
    try:
        conn.request(method, path, body=body, headers=headers or {})
        resp = conn.getresponse()
        return resp.status, json.loads(resp.read())
    finally:
        conn.close()


class TestPushServer:
    def test_health(self, running_server):
        server, _, _ = running_server
        status, data = _request(server, "GET", "/health")
        assert status == 200
        assert data == {"status": "ok"}

    def test_push_while_store_down_goes_to_memory(self, running_server):
        server, _, fallback = running_server
        status, data = _request(
            server, "POST", "/api/zkpush",
            body=json.dumps({"PIN": "55", "SN": "DEV1"}),
            headers={"Content-Type": "application/json"},
        )
        assert status == 200
        assert data["message"] == "Data saved to memory storage"
        assert fallback.find(data["id"])[0]["pin"] == "55"

    def test_text_push(self, running_server):
        server, _, fallback = running_server
        status, data = _request(
            server, "POST", "/push",
            body="1\t2024-01-01 08:00:00\t0\n2\t2024-01-01 08:01:00\t1\n",
            headers={"Content-Type": "text/plain"},
        )
        assert status == 200
        assert data["message"] == "Processed 2 records from plain text data"
        assert len(fallback) == 2

    def test_connection_loop_keeps_retrying(self, running_server):
        _, store, _ = running_server
        deadline = time.monotonic() + 5
        while store.connect_calls < 2 and time.monotonic() < deadline:
            time.sleep(0.02)
        assert store.connect_calls >= 2


class TestShutdown:
    def test_stop_closes_store_and_supervisor(self):
        store = FakeStore(connected=True)
        config = Config(host="127.0.0.1", port=0)
        app = create_app(config, gateway=PersistenceGateway(store, InMemoryLogStore()))
        supervisor = ConnectionSupervisor(store)
        server = PushServer(app, config, supervisor=supervisor)
        server.start()
        server.stop(grace_seconds=5)
        assert store.closed is True
        assert supervisor.state.value == "disconnected"

    def test_stop_is_idempotent(self):
        store = FakeStore(connected=True)
        config = Config(host="127.0.0.1", port=0)
        app = create_app(config, gateway=PersistenceGateway(store, InMemoryLogStore()))
        server = PushServer(app, config)
        server.start()
        server.stop(grace_seconds=5)
        server.stop(grace_seconds=5)
        assert store.closed is True

    def test_stop_before_start(self):
        store = FakeStore(connected=False)
        config = Config(host="127.0.0.1", port=0)
        app = create_app(config, gateway=PersistenceGateway(store, InMemoryLogStore()))
        PushServer(app, config).stop(grace_seconds=5)
        assert store.closed is True
