from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


HYPHEN_SCALE_RE = re.compile(r"^(.+)-(\d+)$")
STACK_MARKERS = frozenset({"local", "docker"})


class NameDialect(str, Enum):
    UNDERSCORE = "underscore"  # stack_service_N (compose v1, swarm stacks)
    HYPHEN = "hyphen"  # stack-service-N (compose v2)
    PLAIN = "plain"


@dataclass(frozen=True)
class ResolvedName:
    service: str
    ordinal: int | None = None


def infer_dialect(name: str) -> NameDialect:
    if "_" in name:
        return NameDialect.UNDERSCORE
    if "-" in name:
        return NameDialect.HYPHEN
    return NameDialect.PLAIN


def _resolve_underscore(name: str) -> ResolvedName:
    ordinal = None
    parts = name.split("_")
    if len(parts) >= 2 and parts[-1].isdecimal():
        ordinal = int(parts[-1])
        name = "_".join(parts[:-1])
    if "_" in name:
        name = name.split("_", 1)[1]
    return ResolvedName(service=name, ordinal=ordinal)


def _resolve_hyphen(name: str) -> ResolvedName:
    ordinal = None
    m = HYPHEN_SCALE_RE.match(name)
    if m:
        name, ordinal = m.group(1), int(m.group(2))
    parts = name.split("-")
    if len(parts) > 1 and parts[0] in STACK_MARKERS:
        name = "-".join(parts[1:])
    return ResolvedName(service=name, ordinal=ordinal)


def resolve_name(name: str, dialect: NameDialect | None = None) -> ResolvedName:
    """Derive the logical service name from an orchestrator-native name.

    ``local_lobby_2`` -> ``lobby`` (ordinal 2), ``stack_lobby`` -> ``lobby``,
    ``docker-micro-battles-1`` -> ``micro-battles`` (ordinal 1).

    Never raises: a name that would be stripped down to nothing is returned
    unchanged.
    """
    if dialect is None:
        dialect = infer_dialect(name)
    if dialect is NameDialect.UNDERSCORE:
        resolved = _resolve_underscore(name)
    elif dialect is NameDialect.HYPHEN:
        resolved = _resolve_hyphen(name)
    else:
        return ResolvedName(service=name)

    if not resolved.service:
        return ResolvedName(service=name)
    return resolved


def container_name(raw: str) -> str:
    """Docker reports container names with a leading slash."""
    return raw[1:] if raw.startswith("/") else raw


def backend_id(service: str, ordinal: int) -> str:
    return f"{service}-{int(ordinal)}"
