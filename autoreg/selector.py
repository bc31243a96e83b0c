from __future__ import annotations

from typing import Iterable

from .db import log_event
from .routing import RoutingTable
from .runtime import ReconciliationState
from .settings import settings


def pick_default(names: Iterable[str], lobby_marker: str | None = None) -> tuple[str | None, str]:
    """Choose the default backend among ``names``.

    Returns (name or None, rule that picked it). The lobby match is
    case-insensitive but the tie-break is a plain string sort.
    """
    marker = (lobby_marker or settings.lobby_marker).lower()
    names = sorted(names)
    lobbies = [n for n in names if marker in n.lower()]
    if lobbies:
        return lobbies[0], f"contains '{marker}'"
    if names:
        return names[0], "first available"
    return None, "none"


class DefaultSelector:
    def __init__(self, state: ReconciliationState, routing: RoutingTable):
        self.state = state
        self.routing = routing

    def _live(self) -> list[str]:
        return [n for n in self.state.registered if self.routing.is_registered(n)]

    def refresh(self) -> str | None:
        chosen, rule = pick_default(self._live())
        prev = self.state.set_default(chosen)
        if chosen != prev:
            if chosen is None:
                log_event("WARN", "No servers available for default connection")
            else:
                log_event("INFO", f"Default server set to: {chosen} ({rule})", backend=chosen)
        return chosen

    def current(self) -> str | None:
        """Cached default while it is still live, otherwise a fresh pick."""
        cached = self.state.default_backend
        if cached is not None and cached in self.state.registered and self.routing.is_registered(cached):
            return cached
        return self.refresh()
