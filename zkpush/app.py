"""Flask application factory for the device push endpoints."""

import logging

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import BadRequest

from zkpush.config import Config
from zkpush.gateway import PersistenceGateway
from zkpush.models import StorageKind
from zkpush.normalizer import normalize_structured, normalize_text
from zkpush.store import InMemoryLogStore, MongoLogStore

logger = logging.getLogger(__name__)

PUSH_ROUTES = ("/api/zkpush", "/", "/push", "/device")

_SAVED_MESSAGES = {
    StorageKind.PRIMARY: "Data saved to MongoDB",
    StorageKind.FALLBACK: "Data saved to memory storage",
}


def _server_error(message: str):
    return jsonify({"error": "Server Error", "message": message}), 500


def _read_body():
    """Return ``(body, is_text)`` for the request.

    ``text/*`` bodies are raw text even when empty. JSON bodies are parsed
    (a parse failure raises BadRequest). Anything else, including an empty
    JSON body, reads as an empty object so it still produces one record with
    default fields.
    """
    if request.mimetype.startswith("text/"):
        return request.get_data(as_text=True), True
    if request.is_json and request.get_data():
        return request.get_json(), False
    return {}, False


def build_gateway(config: Config) -> PersistenceGateway:
    store = MongoLogStore(
        config.mongodb_uri,
        database=config.mongodb_database,
        collection=config.mongodb_collection,
        server_selection_timeout_ms=config.server_selection_timeout_ms,
        socket_timeout_ms=config.socket_timeout_ms,
    )
    return PersistenceGateway(store, InMemoryLogStore())


def create_app(config: Config | None = None,
               gateway: PersistenceGateway | None = None) -> Flask:
    """Flask application factory."""
    app = Flask(__name__)

    if config is None:
        config = Config()
    if gateway is None:
        gateway = build_gateway(config)

    if config.cors_enabled:
        CORS(app, send_wildcard=True)

    # Store components on app for access in tests and by the runner
    app.config["components"] = {
        "config": config,
        "gateway": gateway,
    }

    @app.before_request
    def log_request():
        logger.info("%s %s", request.method, request.path)

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"}), 200

    def handle_device_data():
        try:
            body, is_text = _read_body()
            records = normalize_text(body) if is_text else normalize_structured(body)
        except (BadRequest, ValueError) as exc:
            logger.error("Could not read device payload: %s", exc)
            return _server_error(getattr(exc, "description", None) or str(exc))

        if is_text:
            logger.info("Received plain text data from device (%d record(s))", len(records))
            for record in records:
                outcome = gateway.save(record)
                if not outcome.success:
                    return _server_error(outcome.error)
            return jsonify({
                "success": True,
                "message": f"Processed {len(records)} records from plain text data",
            }), 200

        logger.info("Received JSON data from device: %s", body)
        outcome = gateway.save(records[0])
        if not outcome.success:
            return _server_error(outcome.error)
        return jsonify({
            "success": True,
            "message": _SAVED_MESSAGES[outcome.storage_kind],
            "id": outcome.id,
        }), 200

    for rule in PUSH_ROUTES:
        app.add_url_rule(rule, endpoint=f"push:{rule}", view_func=handle_device_data,
                         methods=["POST"])

    return app
