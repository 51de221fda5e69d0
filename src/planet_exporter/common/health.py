"""Health check contract for the exporter.

Readiness reflects how recently each enabled collection task published a
snapshot.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single component."""

    name: str
    status: HealthStatus
    message: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class HealthResponse:
    """Complete health check response."""

    status: HealthStatus
    timestamp: datetime
    service: str
    version: str
    components: list[ComponentHealth] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        return {
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
            "service": self.service,
            "version": self.version,
            "components": [
                {
                    "name": c.name,
                    "status": c.status.value,
                    "message": c.message,
                    "details": c.details if c.details else None,
                }
                for c in self.components
            ],
        }


def task_freshness(
    name: str,
    last_success: float | None,
    interval: float,
    stale_after_intervals: int = 3,
    last_error: str | None = None,
) -> ComponentHealth:
    """Classify a collection task by the age of its last success.

    Never succeeded is unhealthy; older than ``stale_after_intervals``
    intervals is degraded, since stale data is still served.
    """
    if last_success is None:
        return ComponentHealth(
            name=name,
            status=HealthStatus.UNHEALTHY,
            message="No successful collection yet",
            details={"last_error": last_error} if last_error else {},
        )

    age = time.time() - last_success
    details: dict[str, Any] = {"age_seconds": round(age, 2)}
    if last_error:
        details["last_error"] = last_error

    if age > interval * stale_after_intervals:
        return ComponentHealth(
            name=name,
            status=HealthStatus.DEGRADED,
            message="Serving stale data",
            details=details,
        )
    return ComponentHealth(name=name, status=HealthStatus.HEALTHY, details=details)


class HealthChecker:
    """Health check manager for the exporter."""

    def __init__(self, service_name: str, version: str) -> None:
        self.service_name = service_name
        self.version = version
        self._checks: list[tuple[str, Callable[[], ComponentHealth]]] = []

    def register_check(self, name: str, check_func: Callable[[], ComponentHealth]) -> None:
        """Register a health check function.

        Args:
            name: Name of the component being checked.
            check_func: Function that returns ComponentHealth.
        """
        self._checks.append((name, check_func))

    def liveness(self) -> HealthResponse:
        """Liveness probe - is the process alive?"""
        return HealthResponse(
            status=HealthStatus.HEALTHY,
            timestamp=datetime.now(timezone.utc),
            service=self.service_name,
            version=self.version,
        )

    def readiness(self) -> HealthResponse:
        """Readiness probe - is fresh data being served?"""
        components = []
        overall_status = HealthStatus.HEALTHY

        for name, check_func in self._checks:
            try:
                component_health = check_func()
            except Exception as e:
                component_health = ComponentHealth(
                    name=name,
                    status=HealthStatus.UNHEALTHY,
                    message=f"Check failed: {str(e)}",
                )
            components.append(component_health)

            if component_health.status == HealthStatus.UNHEALTHY:
                overall_status = HealthStatus.UNHEALTHY
            elif (
                component_health.status == HealthStatus.DEGRADED
                and overall_status == HealthStatus.HEALTHY
            ):
                overall_status = HealthStatus.DEGRADED

        return HealthResponse(
            status=overall_status,
            timestamp=datetime.now(timezone.utc),
            service=self.service_name,
            version=self.version,
            components=components,
        )
