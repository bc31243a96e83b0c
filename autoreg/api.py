from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, status

from . import db
from .api_models import BackendOut, DefaultOut, EventOut, HealthOut, ReconcileOut
from .plugin import AutoRegister


def create_app(plugin: AutoRegister | None = None) -> FastAPI:
    """Build the operator API; the plugin starts and stops with the app.

    Serve with an ASGI server in factory mode, e.g. `uvicorn --factory autoreg.api:create_app`.
    """
    plugin = plugin or AutoRegister()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        plugin.start()
        try:
            yield
        finally:
            plugin.stop()

    app = FastAPI(title="Proxy backend auto-register", lifespan=lifespan)
    app.state.plugin = plugin

    @app.get("/health", response_model=HealthOut)
    def health() -> HealthOut:
        return HealthOut(
            status="ok" if plugin.running else "degraded",
            reconciling=plugin.running,
            backends=len(plugin.state.registered),
        )

    @app.get("/backends", response_model=list[BackendOut])
    def backends() -> list[BackendOut]:
        default = plugin.state.default_backend
        return [
            BackendOut(name=b.name, host=b.host, port=b.port, default=b.name == default)
            for b in plugin.routing.list_backends()
        ]

    @app.get("/default", response_model=DefaultOut)
    def default_backend() -> DefaultOut:
        return DefaultOut(default=plugin.selector.current())

    @app.post("/reconcile", response_model=ReconcileOut)
    def reconcile() -> ReconcileOut:
        if plugin.reconciler is None:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Docker is not available.")
        report = plugin.reconciler.reconcile_once()
        if report is None:
            return ReconcileOut(ran=False)
        return ReconcileOut(
            ran=True,
            mode=report.mode,
            found=report.found,
            added=report.added,
            removed=report.removed,
            default=report.default,
        )

    @app.get("/events", response_model=list[EventOut])
    def events(limit: int = Query(100, ge=1, le=1000), level: str | None = None) -> list[EventOut]:
        return [EventOut(**e) for e in db.latest_events(limit=limit, level=level)]

    return app
