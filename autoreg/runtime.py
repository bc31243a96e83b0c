from __future__ import annotations

from threading import Lock
from typing import Iterable


class ReconciliationState:
    """Registered backend names and the cached default backend.

    Owned by the Reconciler (single writer). ``registered`` is a frozenset that
    is replaced wholesale, so readers never see a half-applied cycle.
    """

    def __init__(self) -> None:
        self.lock = Lock()
        self._registered: frozenset[str] = frozenset()
        self._default: str | None = None

    @property
    def registered(self) -> frozenset[str]:
        with self.lock:
            return self._registered

    def replace_registered(self, names: Iterable[str]) -> None:
        snapshot = frozenset(names)
        with self.lock:
            self._registered = snapshot

    @property
    def default_backend(self) -> str | None:
        with self.lock:
            return self._default

    def set_default(self, name: str | None) -> str | None:
        """Store the default; returns the previous value."""
        with self.lock:
            prev, self._default = self._default, name
            return prev


class PendingConnections:
    """session id -> backend id of the in-flight routing attempt."""

    def __init__(self) -> None:
        self.lock = Lock()
        self._pending: dict[str, str] = {}

    def put(self, session_id: str, backend: str) -> None:
        with self.lock:
            self._pending[session_id] = backend

    def get(self, session_id: str) -> str | None:
        with self.lock:
            return self._pending.get(session_id)

    def pop_if(self, session_id: str, backend: str) -> bool:
        """Remove the entry only if it still points at ``backend``.

        Exactly one of several racing callers gets True.
        """
        with self.lock:
            if self._pending.get(session_id) != backend:
                return False
            del self._pending[session_id]
            return True

    def __len__(self) -> int:
        with self.lock:
            return len(self._pending)

    def __contains__(self, session_id: object) -> bool:
        with self.lock:
            return session_id in self._pending
