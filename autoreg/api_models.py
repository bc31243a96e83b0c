from __future__ import annotations

from pydantic import BaseModel, Field


class BackendOut(BaseModel):
    name: str = Field(..., description="Backend name, e.g. lobby-1")
    host: str = Field(..., description="DNS name inside the docker network")
    port: int = Field(..., ge=1, le=65535)
    default: bool = False


class DefaultOut(BaseModel):
    default: str | None = Field(None, description="Backend new sessions are sent to")


class ReconcileOut(BaseModel):
    ran: bool = Field(..., description="False when a cycle was already running or failed")
    mode: str | None = None
    found: int = 0
    added: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    default: str | None = None


class EventOut(BaseModel):
    id: int
    ts: str
    level: str
    service_name: str | None = None
    backend: str | None = None
    message: str


class HealthOut(BaseModel):
    status: str
    reconciling: bool
    backends: int
