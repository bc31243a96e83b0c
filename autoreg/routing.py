from __future__ import annotations

from dataclasses import dataclass
from threading import Lock


@dataclass(frozen=True)
class BackendInfo:
    name: str
    host: str
    port: int

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


class RoutingTable:
    """The proxy's table of named backends.

    Thread-safe; the reconciler thread writes while session tasks read.
    """

    def __init__(self) -> None:
        self.lock = Lock()
        self._backends: dict[str, BackendInfo] = {}

    def register_backend(self, name: str, host: str, port: int) -> bool:
        """Register a backend. Returns False if the name was already taken."""
        with self.lock:
            if name in self._backends:
                return False
            self._backends[name] = BackendInfo(name=name, host=host, port=int(port))
            return True

    def unregister_backend(self, name: str) -> bool:
        with self.lock:
            return self._backends.pop(name, None) is not None

    def is_registered(self, name: str) -> bool:
        with self.lock:
            return name in self._backends

    def lookup(self, name: str) -> BackendInfo | None:
        with self.lock:
            return self._backends.get(name)

    def list_backends(self) -> list[BackendInfo]:
        with self.lock:
            return sorted(self._backends.values(), key=lambda b: b.name)
