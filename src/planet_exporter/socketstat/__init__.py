"""Socket statistics - correlating live sockets into service dependencies."""

from planet_exporter.socketstat.correlator import DependencyCorrelator
from planet_exporter.socketstat.models import (
    CorrelationResult,
    DependencyRecord,
    Direction,
    ProcessBinding,
)
from planet_exporter.socketstat.task import SocketstatTask

__all__ = [
    "CorrelationResult",
    "DependencyCorrelator",
    "DependencyRecord",
    "Direction",
    "ProcessBinding",
    "SocketstatTask",
]
