from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from .db import log_event
from .runtime import PendingConnections
from .selector import DefaultSelector


NO_SERVERS_MESSAGE = "No servers available. Please try again later."
DEFAULT_KICK_REASON = "Disconnected from server"


def _log(level: str, message: str, backend: str | None = None) -> None:
    # A busy event log must not take a player session down with it.
    try:
        log_event(level, message, backend=backend)
    except sqlite3.Error:
        pass


@dataclass(frozen=True)
class ConnectResult:
    success: bool
    reason: str | None = None  # text supplied by the backend
    status: str | None = None  # proxy status label, e.g. SERVER_DISCONNECTED


@dataclass
class BackendKick:
    """A backend kicked a session. The proxy reads ``disconnect_message``
    afterwards; None keeps its own handling."""

    session_id: str
    backend_id: str
    reason: str | None = None
    disconnect_message: str | None = None


class SessionGateway(Protocol):
    async def connect(self, session_id: str, backend_id: str) -> ConnectResult: ...

    def terminate_session(self, session_id: str, message: str) -> None: ...


class SessionOutcome(str, Enum):
    NO_BACKEND = "no-backend"
    CONNECTED = "connected"
    FAILED = "failed"
    # A kick for the same attempt was handled first.
    SUPERSEDED = "superseded"


def failure_reason(result: ConnectResult | None = None, error: BaseException | None = None) -> str:
    if result is not None:
        if result.reason:
            return result.reason
        if result.status:
            return result.status
        return "Connection failed"
    if error is not None and str(error):
        return str(error)
    return "Connection error"


class SessionRouter:
    def __init__(self, selector: DefaultSelector, gateway: SessionGateway, pending: PendingConnections | None = None):
        self.selector = selector
        self.gateway = gateway
        self.pending = pending or PendingConnections()

    async def route(self, session_id: str) -> SessionOutcome:
        """Send a freshly connected session to the default backend."""
        target = self.selector.current()
        if target is None:
            _log("WARN", f"No default server available for session {session_id}")
            self.gateway.terminate_session(session_id, NO_SERVERS_MESSAGE)
            return SessionOutcome.NO_BACKEND

        _log("INFO", f"Connecting session {session_id} to default server: {target}", backend=target)
        self.pending.put(session_id, target)
        try:
            try:
                result = await self.gateway.connect(session_id, target)
            except Exception as e:
                return self._failed(session_id, target, failure_reason(error=e))

            if result.success:
                self.pending.pop_if(session_id, target)
                _log("INFO", f"Connected session {session_id} to default server: {target}", backend=target)
                return SessionOutcome.CONNECTED
            return self._failed(session_id, target, failure_reason(result))
        finally:
            # Cancelled or otherwise unfinished attempts must not stay pending.
            self.pending.pop_if(session_id, target)

    def _failed(self, session_id: str, target: str, reason: str) -> SessionOutcome:
        if not self.pending.pop_if(session_id, target):
            return SessionOutcome.SUPERSEDED
        self.gateway.terminate_session(session_id, f"Failed to connect to {target}: {reason}")
        _log("WARN", f"Failed to connect session {session_id} to default server {target}: {reason}", backend=target)
        return SessionOutcome.FAILED

    def on_kick(self, event: BackendKick) -> bool:
        """Forward the backend's own reason when it rejects a pending session.

        Kicks from any other backend are left alone.
        """
        if not self.pending.pop_if(event.session_id, event.backend_id):
            return False
        reason = event.reason or DEFAULT_KICK_REASON
        event.disconnect_message = reason
        _log(
            "WARN",
            f"Session {event.session_id} was kicked from default server {event.backend_id}: {reason}",
            backend=event.backend_id,
        )
        return True
