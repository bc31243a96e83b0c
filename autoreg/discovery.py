from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from docker.errors import DockerException

from .db import log_event
from .docker_ops import ContainerInfo, ServiceInfo, TaskInfo
from .health import container_is_eligible, is_managed, task_is_eligible
from .naming import NameDialect, backend_id, container_name, resolve_name
from .settings import settings


class Orchestrator(Protocol):
    def swarm_active(self) -> bool: ...

    def list_services(self) -> list[ServiceInfo]: ...

    def list_tasks(self, service_id: str) -> list[TaskInfo]: ...

    def list_containers(self, status: str = "running") -> list[ContainerInfo]: ...


class DiscoveryMode(str, Enum):
    ORCHESTRATED = "orchestrated"  # swarm services
    FLAT_CONTAINER = "flat-container"  # plain / compose containers


@dataclass(frozen=True)
class DiscoveredBackend:
    backend_id: str
    service: str
    host: str
    port: int
    instance: str

    @property
    def address(self) -> tuple[str, int]:
        return self.host, self.port


@dataclass
class Discovery:
    mode: DiscoveryMode
    backends: dict[str, DiscoveredBackend] = field(default_factory=dict)

    @property
    def ids(self) -> frozenset[str]:
        return frozenset(self.backends)

    @property
    def addresses(self) -> dict[str, tuple[str, int]]:
        return {bid: b.address for bid, b in self.backends.items()}

    def add(self, backend: DiscoveredBackend) -> None:
        if backend.backend_id in self.backends:
            log_event(
                "WARN",
                f"Duplicate backend name {backend.backend_id} (instance {backend.instance}); keeping the first",
                service_name=backend.service,
                backend=backend.backend_id,
            )
            return
        self.backends[backend.backend_id] = backend


def detect_mode(orchestrator: Orchestrator) -> tuple[DiscoveryMode, list[ServiceInfo]]:
    """Pick the topology for this cycle.

    Returns the services already listed so the orchestrated strategy does not
    list them twice.
    """
    try:
        if not orchestrator.swarm_active():
            log_event("DEBUG", "Swarm mode not active, using container mode")
            return DiscoveryMode.FLAT_CONTAINER, []
        services = orchestrator.list_services()
    except DockerException as e:
        log_event("WARN", f"Service listing failed ({type(e).__name__}: {e}), using container mode")
        return DiscoveryMode.FLAT_CONTAINER, []
    if not services:
        log_event("DEBUG", "No services found in swarm mode, using container mode")
        return DiscoveryMode.FLAT_CONTAINER, []
    return DiscoveryMode.ORCHESTRATED, services


def _assign_replicas(
    result: Discovery, service: str, host: str, port: int, instances: list[str]
) -> None:
    # Ordinals follow the instance identifier order, never API response order.
    for ordinal, instance in enumerate(sorted(instances), start=1):
        result.add(
            DiscoveredBackend(
                backend_id=backend_id(service, ordinal),
                service=service,
                host=host,
                port=port,
                instance=instance,
            )
        )


def discover_services(orchestrator: Orchestrator, services: list[ServiceInfo]) -> Discovery:
    result = Discovery(mode=DiscoveryMode.ORCHESTRATED)
    for svc in services:
        service = resolve_name(svc.name, NameDialect.UNDERSCORE).service
        if service == settings.proxy_marker:
            log_event("DEBUG", f"Skipping proxy service {svc.name}")
            continue

        labels = svc.task_labels or svc.labels
        if not is_managed(labels):
            log_event("DEBUG", f"Service {svc.name} has no {settings.project_label} label, skipping")
            continue

        tasks = orchestrator.list_tasks(svc.id)
        healthy = [t for t in tasks if task_is_eligible(t)]
        log_event(
            "DEBUG",
            f"Service {svc.name} has {len(healthy)} healthy running task(s) (filtered from {len(tasks)} total)",
            service_name=service,
        )
        # Full service name resolves on the swarm overlay network.
        _assign_replicas(result, service, svc.name, settings.backend_port, [t.id for t in healthy])
    return result


def discover_containers(orchestrator: Orchestrator) -> Discovery:
    result = Discovery(mode=DiscoveryMode.FLAT_CONTAINER)
    groups: dict[str, list[str]] = defaultdict(list)

    for c in orchestrator.list_containers(status="running"):
        if not c.names or not is_managed(c.labels):
            continue
        name = container_name(c.names[0])
        service = resolve_name(name).service
        if settings.proxy_marker in service:
            log_event("DEBUG", f"Skipping proxy container {name}")
            continue
        if not container_is_eligible(c):
            log_event("DEBUG", f"Container {name} not healthy: {c.status}", service_name=service)
            continue
        groups[service].append(name)

    for service in sorted(groups):
        # Compose registers the service name as a DNS alias on its network.
        _assign_replicas(result, service, service, settings.backend_port, groups[service])
    return result


def discover(orchestrator: Orchestrator) -> Discovery:
    mode, services = detect_mode(orchestrator)
    if mode is DiscoveryMode.ORCHESTRATED:
        return discover_services(orchestrator, services)
    return discover_containers(orchestrator)
