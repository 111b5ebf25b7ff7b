"""Configuration: frozen dataclass loaded from an optional YAML file and the environment.

Precedence: environment variables > YAML file (CONFIG_PATH) > dataclass defaults.
"""

import logging
import os
from dataclasses import dataclass, fields

import yaml

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class Config:
    host: str = "0.0.0.0"
    port: int = 3000
    mongodb_uri: str = "mongodb://localhost:27017/"
    mongodb_database: str = "zkpush"
    mongodb_collection: str = "logs"
    server_selection_timeout_ms: int = 5000
    socket_timeout_ms: int = 45000
    retry_interval_seconds: float = 5.0
    shutdown_grace_seconds: float = 10.0
    log_level: str = "INFO"
    cors_enabled: bool = True


# field name -> environment variable
ENV_VARS = {
    "host": "SERVER_HOST",
    "port": "SERVER_PORT",
    "mongodb_uri": "MONGODB_URI",
    "mongodb_database": "MONGODB_DATABASE",
    "mongodb_collection": "MONGODB_COLLECTION",
    "server_selection_timeout_ms": "MONGODB_SERVER_SELECTION_TIMEOUT_MS",
    "socket_timeout_ms": "MONGODB_SOCKET_TIMEOUT_MS",
    "retry_interval_seconds": "MONGODB_RETRY_INTERVAL_SECONDS",
    "shutdown_grace_seconds": "SHUTDOWN_GRACE_SECONDS",
    "log_level": "LOG_LEVEL",
    "cors_enabled": "CORS_ENABLED",
}


def _load_yaml(path: str) -> dict:
    """Read overrides from a YAML file. Missing or invalid files yield {}."""
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        return {}
    except yaml.YAMLError:
        logger.warning("Invalid YAML in %s, using defaults", path)
        return {}

    if not isinstance(data, dict):
        return {}
    known = {f.name for f in fields(Config)}
    return {k: v for k, v in data.items() if k in known}


def _coerce(name: str, value):
    kind = Config.__dataclass_fields__[name].type
    if kind in (bool, "bool"):
        return _parse_bool(value)
    if kind in (int, "int"):
        return int(value)
    if kind in (float, "float"):
        return float(value)
    return str(value)


def load_config(config_path: str | None = None) -> Config:
    """Build Config from CONFIG_PATH (if any) and environment variables."""
    config_path = config_path or os.environ.get("CONFIG_PATH")
    values = _load_yaml(config_path) if config_path else {}

    for name, env_var in ENV_VARS.items():
        if env_var in os.environ:
            values[name] = os.environ[env_var]

    values = {name: _coerce(name, value) for name, value in values.items()}
    if "log_level" in values:
        level = values["log_level"].upper()
        if level not in LOG_LEVELS:
            logger.warning("Unknown log level %r, using %s", values["log_level"], Config.log_level)
            level = Config.log_level
        values["log_level"] = level
    return Config(**values)
