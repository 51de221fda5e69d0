"""Exporter service entry point.

FastAPI application serving the Prometheus exposition and health probes,
with the collection scheduler running in its lifespan.
"""

from __future__ import annotations

import sys
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from typing import Any, NoReturn

from fastapi import FastAPI, Response
from fastapi.responses import HTMLResponse, JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, CollectorRegistry, generate_latest

from planet_exporter.common.config import Settings, SocketstatSettings, get_settings
from planet_exporter.common.health import ComponentHealth, HealthChecker, HealthStatus, task_freshness
from planet_exporter.common.logging import get_logger, setup_logging
from planet_exporter.common.metrics import set_app_info
from planet_exporter.exporter.collector import PlanetCollector
from planet_exporter.exporter.scheduler import PeriodicTask, Scheduler
from planet_exporter.inventory.models import Host
from planet_exporter.inventory.store import InventoryStore
from planet_exporter.network.local import default_local_address

logger = get_logger(__name__)

LANDING_PAGE = """<html>
<head><title>Planet Exporter</title></head>
<body>
<h1>Planet Exporter</h1>
<p><a href="/metrics">Metrics</a></p>
</body>
</html>
"""


def _freshness_check(task: PeriodicTask, enabled: bool) -> Callable[[], ComponentHealth]:
    def check() -> ComponentHealth:
        if not enabled:
            return ComponentHealth(name=task.name, status=HealthStatus.HEALTHY, message="Disabled")
        return task_freshness(
            task.name,
            last_success=task.last_success,
            interval=task.interval,
            last_error=task.last_error,
        )
    return check


def _local_host_resolver(settings: SocketstatSettings) -> Callable[[InventoryStore], Host]:
    def resolve(store: InventoryStore) -> Host:
        return store.get_local(
            resolver=lambda: default_local_address(settings.probe_address, settings.probe_port),
        )
    return resolve


def create_app(
    settings: Settings | None = None,
    scheduler: Scheduler | None = None,
) -> FastAPI:
    """Create FastAPI application instance."""
    settings = settings or get_settings()
    scheduler = scheduler or Scheduler(settings)

    registry = CollectorRegistry()
    registry.register(PlanetCollector(
        scheduler.socketstat.get,
        scheduler.inventory.get,
        local_host_resolver=_local_host_resolver(settings.socketstat),
    ))

    health_checker = HealthChecker(service_name=settings.app_name, version=settings.app_version)
    enabled = {
        scheduler.inventory.name: scheduler.inventory.enabled,
        scheduler.socketstat.name: scheduler.socketstat.enabled,
    }
    for task in scheduler.periodic_tasks:
        health_checker.register_check(task.name, _freshness_check(task, enabled[task.name]))

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        setup_logging(settings)
        set_app_info(version=settings.app_version, environment=settings.environment)

        logger.info(
            "Starting Planet Exporter",
            version=settings.app_version,
            environment=settings.environment,
            listen=f"{settings.exporter.host}:{settings.exporter.port}",
        )
        await scheduler.start()

        yield

        logger.info("Shutting down Planet Exporter")
        await scheduler.stop()

    app = FastAPI(
        title="Planet Exporter",
        version=settings.app_version,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.scheduler = scheduler
    app.state.registry = registry

    @app.get("/", response_class=HTMLResponse)
    async def root() -> str:
        return LANDING_PAGE

    @app.get("/metrics")
    async def metrics() -> Response:
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_latest(REGISTRY) + generate_latest(registry),
            media_type=CONTENT_TYPE_LATEST,
        )

    @app.get("/health/live")
    async def liveness() -> dict[str, Any]:
        return health_checker.liveness().to_dict()

    @app.get("/health/ready")
    async def readiness() -> Response:
        result = health_checker.readiness()
        status_code = 503 if result.status == HealthStatus.UNHEALTHY else 200
        return JSONResponse(content=result.to_dict(), status_code=status_code)

    return app


def run() -> NoReturn:
    """Run the exporter."""
    import uvicorn

    settings = get_settings()

    try:
        uvicorn.run(
            "planet_exporter.exporter.main:create_app",
            factory=True,
            host=settings.exporter.host,
            port=settings.exporter.port,
            log_level="info",
            access_log=False,  # We use our own logging
        )
        sys.exit(0)
    except KeyboardInterrupt:
        sys.exit(0)
    except Exception as e:
        logger.error("Exporter failed to start", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    run()
