from __future__ import annotations

from . import db
from .discovery import Orchestrator
from .docker_ops import DockerOrchestrator, OrchestratorUnavailable
from .reconciler import Reconciler
from .routing import RoutingTable
from .runtime import ReconciliationState
from .selector import DefaultSelector
from .sessions import BackendKick, SessionGateway, SessionOutcome, SessionRouter


class AutoRegister:
    """Wires discovery, reconciliation and session routing for one proxy.

    The proxy supplies its routing table and, when it wants sessions routed,
    a SessionGateway. Without an orchestrator one is connected on start().
    """

    def __init__(
        self,
        routing: RoutingTable | None = None,
        gateway: SessionGateway | None = None,
        orchestrator: Orchestrator | None = None,
        interval_s: float | None = None,
    ):
        self.routing = routing or RoutingTable()
        self.state = ReconciliationState()
        self.selector = DefaultSelector(self.state, self.routing)
        self.orchestrator = orchestrator
        self.interval_s = interval_s
        self.reconciler: Reconciler | None = None
        self.sessions = SessionRouter(self.selector, gateway) if gateway is not None else None

    @property
    def running(self) -> bool:
        return self.reconciler is not None

    def start(self) -> bool:
        """Connect, run the initial discovery and schedule the rest.

        Returns False when Docker is unreachable; nothing is retried then.
        """
        db.init_db()
        db.log_event("INFO", "Auto register enabled")
        if self.orchestrator is None:
            try:
                self.orchestrator = DockerOrchestrator.connect()
            except OrchestratorUnavailable as e:
                db.log_event("ERROR", f"Failed to connect to Docker socket: {e}")
                return False

        self.reconciler = Reconciler(
            self.orchestrator, self.routing, self.state, self.selector, interval_s=self.interval_s
        )
        db.log_event("INFO", "Starting initial server discovery...")
        self.reconciler.reconcile_once()
        db.log_event(
            "INFO", f"Initial server discovery complete. Found {len(self.state.registered)} registered server(s)"
        )
        self.reconciler.start()
        return True

    def stop(self) -> None:
        if self.reconciler is not None:
            self.reconciler.stop(timeout=5)
            self.reconciler = None
        if isinstance(self.orchestrator, DockerOrchestrator):
            self.orchestrator.close()

    async def on_session_started(self, session_id: str) -> SessionOutcome:
        if self.sessions is None:
            raise RuntimeError("No session gateway configured")
        return await self.sessions.route(session_id)

    def on_backend_kick(self, event: BackendKick) -> bool:
        if self.sessions is None:
            return False
        return self.sessions.on_kick(event)
