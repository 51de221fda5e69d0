"""Dependency records published for the exposition layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Direction(str, Enum):
    """Direction of a dependency relative to this host."""

    UPSTREAM = "upstream"
    DOWNSTREAM = "downstream"


@dataclass(frozen=True)
class ProcessBinding:
    """A process serving on one or more network interfaces."""

    name: str  # e.g. "node_exporter"
    bind: str  # e.g. "0.0.0.0:9100"
    port: int


@dataclass(frozen=True)
class DependencyRecord:
    """One logical dependency between this host and a remote service."""

    direction: Direction
    local_hostgroup: str
    local_address: str
    remote_hostgroup: str
    remote_address: str
    port: int
    protocol: str
    process_name: str

    @property
    def key(self) -> tuple[str, str, str, int, str]:
        """Identity of the logical dependency within one cycle."""
        return (
            self.direction.value,
            self.remote_hostgroup,
            self.remote_address,
            self.port,
            self.protocol,
        )


@dataclass(frozen=True)
class CorrelationResult:
    """Output of one correlation cycle."""

    processes: tuple[ProcessBinding, ...] = field(default_factory=tuple)
    upstreams: tuple[DependencyRecord, ...] = field(default_factory=tuple)
    downstreams: tuple[DependencyRecord, ...] = field(default_factory=tuple)
