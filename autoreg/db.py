from __future__ import annotations

import os
import sqlite3
from datetime import datetime, timezone
from typing import Any

from .settings import settings


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _resolve_db_path() -> str:
    """Return a file path usable by sqlite.

    When the proxy runs in a container with the log path bind-mounted, Docker
    creates a *directory* if the mounted file did not exist yet. In that case
    the database file is placed inside the directory.
    """
    p = os.path.abspath(settings.db_path)

    if os.path.isdir(p):
        p = os.path.join(p, "autoreg.db")

    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    return p


def connect() -> sqlite3.Connection:
    conn = sqlite3.connect(_resolve_db_path(), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_db() -> None:
    """Create tables if they do not exist."""
    with connect() as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS events (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              level TEXT NOT NULL,
              service_name TEXT,
              backend TEXT,
              message TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
            """
        )


def log_event(level: str, message: str, service_name: str | None = None, backend: str | None = None) -> None:
    level = level.upper()
    if level == "DEBUG" and not settings.debug_events:
        return
    with connect() as conn:
        conn.execute(
            "INSERT INTO events (ts, level, service_name, backend, message) VALUES (?, ?, ?, ?, ?)",
            (utc_now(), level, service_name, backend, message),
        )


def latest_events(limit: int = 100, level: str | None = None) -> list[dict[str, Any]]:
    with connect() as conn:
        if level:
            rows = conn.execute(
                "SELECT * FROM events WHERE level=? ORDER BY id DESC LIMIT ?", (level.upper(), limit)
            ).fetchall()
        else:
            rows = conn.execute("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [dict(r) for r in rows]
