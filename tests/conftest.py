from __future__ import annotations

import dataclasses

import pytest
from docker.errors import APIError

from autoreg import db
from autoreg.docker_ops import ContainerInfo, ServiceInfo, TaskInfo
from autoreg.sessions import ConnectResult

PROJECT_LABEL = {"com.plexverse.project.id": "plexverse"}


@pytest.fixture(autouse=True)
def event_db(tmp_path, monkeypatch):
    """Every test gets its own sqlite event log."""
    monkeypatch.setattr(db, "settings", dataclasses.replace(db.settings, db_path=str(tmp_path / "events.db")))
    db.init_db()
    return db


class FakeOrchestrator:
    """In-memory stand-in for DockerOrchestrator."""

    def __init__(self, swarm: bool = False):
        self.swarm = swarm
        self.services: list[ServiceInfo] = []
        self.tasks: dict[str, list[TaskInfo]] = {}
        self.containers: list[ContainerInfo] = []
        self.service_error: Exception | None = None
        self.container_error: Exception | None = None
        self.calls: list[str] = []

    def add_service(self, name: str, tasks: list[TaskInfo], labels=None, task_labels=None) -> ServiceInfo:
        svc = ServiceInfo(
            id=f"svc-{name}",
            name=name,
            labels=dict(labels or {}),
            task_labels=dict(PROJECT_LABEL if task_labels is None else task_labels),
        )
        self.services.append(svc)
        self.tasks[svc.id] = list(tasks)
        self.swarm = True
        return svc

    def add_container(self, name: str, status: str = "Up 5 seconds", labels=None) -> ContainerInfo:
        c = ContainerInfo(
            id=f"c-{len(self.containers)}",
            names=(f"/{name}",),
            labels=dict(PROJECT_LABEL if labels is None else labels),
            status=status,
        )
        self.containers.append(c)
        return c

    def remove_container(self, name: str) -> None:
        self.containers = [c for c in self.containers if c.names[0] != f"/{name}"]

    def swarm_active(self) -> bool:
        self.calls.append("swarm_active")
        return self.swarm

    def list_services(self) -> list[ServiceInfo]:
        self.calls.append("list_services")
        if self.service_error:
            raise self.service_error
        return list(self.services)

    def list_tasks(self, service_id: str) -> list[TaskInfo]:
        self.calls.append(f"list_tasks:{service_id}")
        return list(self.tasks.get(service_id, []))

    def list_containers(self, status: str = "running") -> list[ContainerInfo]:
        self.calls.append(f"list_containers:{status}")
        if self.container_error:
            raise self.container_error
        return list(self.containers)


def running(task_id: str) -> TaskInfo:
    return TaskInfo(id=task_id, state="running")


class FakeGateway:
    """Session collaborator recording what the router asked for."""

    def __init__(self, result: ConnectResult | Exception | None = None):
        self.result = result if result is not None else ConnectResult(success=True)
        self.connects: list[tuple[str, str]] = []
        self.terminated: dict[str, str] = {}
        self.before_result = None

    async def connect(self, session_id: str, backend_id: str) -> ConnectResult:
        self.connects.append((session_id, backend_id))
        if self.before_result is not None:
            self.before_result(session_id, backend_id)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result

    def terminate_session(self, session_id: str, message: str) -> None:
        self.terminated[session_id] = message


@pytest.fixture
def orchestrator():
    return FakeOrchestrator()


@pytest.fixture
def not_a_swarm_error():
    return APIError("This node is not a swarm manager.")
