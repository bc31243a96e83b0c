from __future__ import annotations

import time
from dataclasses import dataclass, field
from threading import Event, Lock, Thread

from . import db
from .discovery import Discovery, Orchestrator, discover
from .routing import RoutingTable
from .runtime import ReconciliationState
from .selector import DefaultSelector
from .settings import settings


@dataclass
class CycleReport:
    mode: str
    found: int
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    default: str | None = None


class Reconciler:
    """Keeps the routing table in line with what Docker is running."""

    def __init__(
        self,
        orchestrator: Orchestrator,
        routing: RoutingTable,
        state: ReconciliationState,
        selector: DefaultSelector,
        interval_s: float | None = None,
    ):
        self.orchestrator = orchestrator
        self.routing = routing
        self.state = state
        self.selector = selector
        self.interval_s = interval_s if interval_s is not None else settings.poll_interval_s
        self._cycle_lock = Lock()
        self._stop = Event()
        self._thr: Thread | None = None

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._stop.clear()
        self._thr = Thread(target=self._loop, name="autoreg-reconciler", daemon=True)
        self._thr.start()
        db.log_event("INFO", f"Scheduled periodic server discovery every {self.interval_s} seconds")

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thr:
            self._thr.join(timeout)

    def _loop(self) -> None:
        # The initial cycle already ran in the caller; wait first.
        while not self._stop.wait(max(1.0, float(self.interval_s))):
            self.reconcile_once()

    def reconcile_once(self) -> CycleReport | None:
        """Run one cycle unless another is in flight.

        Errors never escape; the next tick retries from the last good state.
        """
        if not self._cycle_lock.acquire(blocking=False):
            db.log_event("DEBUG", "Reconcile cycle already running, skipping")
            return None
        try:
            return self._cycle()
        except Exception as e:
            db.log_event("ERROR", f"Error discovering servers from Docker: {type(e).__name__}: {e}")
            return None
        finally:
            self._cycle_lock.release()

    def _cycle(self) -> CycleReport:
        started = time.monotonic()
        # Nothing is touched until discovery has fully succeeded.
        found = discover(self.orchestrator)
        report = CycleReport(mode=found.mode.value, found=len(found.backends))
        try:
            self._apply(found, report)
        finally:
            report.default = self.selector.refresh()

        db.log_event(
            "INFO" if report.added or report.removed else "DEBUG",
            f"{found.mode.value} mode: found {report.found} server(s), "
            f"{len(report.added)} registered, {len(report.removed)} removed "
            f"in {round((time.monotonic() - started) * 1000.0, 2)} ms",
        )
        return report

    def _apply(self, found: Discovery, report: CycleReport) -> None:
        registered = set(self.state.registered)
        try:
            for name in sorted(found.ids):
                b = found.backends[name]
                if not self.routing.is_registered(name):
                    if self.routing.register_backend(name, b.host, b.port):
                        report.added.append(name)
                        db.log_event(
                            "INFO",
                            f"Registered healthy server: {name} at {b.host}:{b.port} (instance {b.instance})",
                            service_name=b.service,
                            backend=name,
                        )
                registered.add(name)

            for name in sorted(registered - found.ids):
                self.routing.unregister_backend(name)
                registered.discard(name)
                report.removed.append(name)
                db.log_event("INFO", f"Unregistered server: {name} (no longer running)", backend=name)
        finally:
            self.state.replace_registered(registered)
