from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import docker
from docker.errors import DockerException

from .db import log_event
from .settings import settings


class OrchestratorUnavailable(RuntimeError):
    pass


@dataclass(frozen=True)
class ServiceInfo:
    id: str
    name: str
    labels: dict[str, str] = field(default_factory=dict)
    # Labels from Spec.TaskTemplate.ContainerSpec; that is where stack files put them.
    task_labels: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class TaskInfo:
    id: str
    state: str
    error: str | None = None


@dataclass(frozen=True)
class ContainerInfo:
    id: str
    names: tuple[str, ...]
    labels: dict[str, str] = field(default_factory=dict)
    status: str | None = None


def _service_info(attrs: dict[str, Any]) -> ServiceInfo:
    spec = attrs.get("Spec") or {}
    template = spec.get("TaskTemplate") or {}
    container_spec = template.get("ContainerSpec") or {}
    return ServiceInfo(
        id=attrs.get("ID", ""),
        name=spec.get("Name", ""),
        labels=dict(spec.get("Labels") or {}),
        task_labels=dict(container_spec.get("Labels") or {}),
    )


def _task_info(raw: dict[str, Any]) -> TaskInfo:
    status = raw.get("Status") or {}
    return TaskInfo(id=raw.get("ID", ""), state=str(status.get("State", "")).lower(), error=status.get("Err") or None)


def _container_info(raw: dict[str, Any]) -> ContainerInfo:
    return ContainerInfo(
        id=raw.get("Id", ""),
        names=tuple(raw.get("Names") or ()),
        labels=dict(raw.get("Labels") or {}),
        status=raw.get("Status"),
    )


class DockerOrchestrator:
    """Read-only view of the Docker daemon, in the shapes discovery needs."""

    def __init__(self, client: docker.DockerClient):
        self.client = client

    @classmethod
    def connect(cls, base_url: str | None = None) -> "DockerOrchestrator":
        base_url = base_url or settings.docker_host
        try:
            client = docker.DockerClient(base_url=base_url) if base_url else docker.from_env()
            client.ping()
        except DockerException as e:
            raise OrchestratorUnavailable(f"Cannot reach Docker daemon: {e}") from e
        log_event("INFO", f"Connected to Docker at {base_url or 'default socket'}")
        return cls(client)

    def swarm_active(self) -> bool:
        """True when this node can list services (an active swarm manager)."""
        swarm = (self.client.info() or {}).get("Swarm") or {}
        return swarm.get("LocalNodeState") == "active" and bool(swarm.get("ControlAvailable"))

    def list_services(self) -> list[ServiceInfo]:
        return [_service_info(s.attrs) for s in self.client.services.list()]

    def list_tasks(self, service_id: str) -> list[TaskInfo]:
        return [_task_info(t) for t in self.client.api.tasks(filters={"service": service_id})]

    def list_containers(self, status: str = "running") -> list[ContainerInfo]:
        # Low-level API: the high-level Container model drops the "Status" text.
        return [_container_info(c) for c in self.client.api.containers(filters={"status": status})]

    def close(self) -> None:
        try:
            self.client.close()
        except DockerException as e:
            log_event("WARN", f"Error closing Docker client: {type(e).__name__}: {e}")
