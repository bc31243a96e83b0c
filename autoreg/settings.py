from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Core
    db_path: str = os.getenv("AUTOREG_DB_PATH", "autoreg.db")
    poll_interval_s: int = _env_int("AUTOREG_POLL_INTERVAL_S", 10)
    docker_host: str | None = os.getenv("AUTOREG_DOCKER_HOST")

    # Backend conventions
    backend_port: int = _env_int("AUTOREG_BACKEND_PORT", 25565)
    project_label: str = os.getenv("AUTOREG_PROJECT_LABEL", "com.plexverse.project.id")
    proxy_marker: str = os.getenv("AUTOREG_PROXY_MARKER", "velocity")
    lobby_marker: str = os.getenv("AUTOREG_LOBBY_MARKER", "lobby")

    # Record DEBUG events too (noisy: one batch per cycle).
    debug_events: bool = _env_bool("AUTOREG_DEBUG_EVENTS", False)


settings = Settings()
