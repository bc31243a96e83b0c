from __future__ import annotations

from typing import Mapping

from .docker_ops import ContainerInfo, TaskInfo
from .settings import settings


# Docker appends these to the container status text when a HEALTHCHECK is
# configured, e.g. "Up 5 seconds (health: starting)".
UNHEALTHY_MARKERS = ("(unhealthy)", "(health: starting)", "(health: unhealthy)")


def is_managed(labels: Mapping[str, str] | None, label: str | None = None) -> bool:
    """True when the workload carries the ownership label (any value)."""
    if not labels:
        return False
    return (label or settings.project_label) in labels


def task_is_eligible(task: TaskInfo) -> bool:
    if task.state != "running":
        return False
    return not task.error


def status_is_eligible(status: str | None) -> bool:
    """Classify a container status text.

    No health info at all means no health check is configured; that is
    allowed.
    """
    if not status:
        return True
    return not any(marker in status for marker in UNHEALTHY_MARKERS)


def container_is_eligible(container: ContainerInfo) -> bool:
    return status_is_eligible(container.status)
