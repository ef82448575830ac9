from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Settings:
    """
    Store settings loaded from environment variables.

    Env vars:
    - TODO_STORE_BACKEND: 'mongo' (default) or 'memory'
    - MONGO_URI: connection string. Default 'mongodb://localhost:27017'
    - MONGO_DATABASE: database holding the todos collection. Default 'todos'
    - MONGO_COLLECTION: collection name. Default 'todos'
    - MONGO_SERVER_SELECTION_TIMEOUT_MS: how long the client waits for a server (default 5000)
    - MONGO_OPERATION_TIMEOUT: per-operation deadline in seconds; unset means none
    - TOGGLE_MAX_ATTEMPTS: compare-and-swap attempts for toggle before giving up (default 5)
    """

    backend: str
    mongo_uri: str
    database: str
    collection: str
    server_selection_timeout_ms: int
    operation_timeout: Optional[float]
    toggle_max_attempts: int


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(value: str, default: int, minimum: int = 0) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _parse_seconds(value: Optional[str]) -> Optional[float]:
    """
    Parse a positive number of seconds. Empty, non-numeric and non-positive
    values all mean "no deadline".
    """
    if value is None or not value.strip():
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds > 0 else None


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return store settings loaded from environment variables."""
    backend = _get_env("TODO_STORE_BACKEND", "mongo").strip().lower()
    if backend not in {"mongo", "memory"}:
        # Fallback to mongo if unsupported
        backend = "mongo"

    return Settings(
        backend=backend,
        mongo_uri=_get_env("MONGO_URI", "mongodb://localhost:27017").strip(),
        database=_get_env("MONGO_DATABASE", "todos").strip(),
        collection=_get_env("MONGO_COLLECTION", "todos").strip(),
        server_selection_timeout_ms=_parse_int(
            _get_env("MONGO_SERVER_SELECTION_TIMEOUT_MS", "5000"), 5000, minimum=1
        ),
        operation_timeout=_parse_seconds(os.getenv("MONGO_OPERATION_TIMEOUT")),
        toggle_max_attempts=_parse_int(_get_env("TOGGLE_MAX_ATTEMPTS", "5"), 5, minimum=1),
    )
