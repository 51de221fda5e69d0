"""Prometheus metrics describing the exporter itself.

Dependency records are exposed by the planet collector; these metrics
cover task health and inventory size.
"""

from prometheus_client import Counter, Gauge, Histogram, Info

# Application info
APP_INFO = Info(
    "planet_exporter",
    "Planet Exporter application information",
)

# Collection task metrics
TASK_RUNS = Counter(
    "planet_exporter_task_runs_total",
    "Total number of collection task cycles",
    ["task", "status"],
)

TASK_SKIPPED = Counter(
    "planet_exporter_task_skipped_total",
    "Collection cycles skipped because the previous cycle was still running",
    ["task"],
)

TASK_DURATION = Histogram(
    "planet_exporter_task_duration_seconds",
    "Time to complete a collection cycle",
    ["task"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

TASK_LAST_SUCCESS = Gauge(
    "planet_exporter_task_last_success_timestamp_seconds",
    "Unix time of the last successful collection cycle",
    ["task"],
)

# Inventory metrics
INVENTORY_HOSTS = Gauge(
    "planet_exporter_inventory_hosts",
    "Number of inventory entries in the current generation",
    ["kind"],
)

INVENTORY_ENTRIES_SKIPPED = Counter(
    "planet_exporter_inventory_entries_skipped_total",
    "Inventory entries skipped during decoding or build",
    ["reason"],
)

# Correlation metrics
DEPENDENCIES = Gauge(
    "planet_exporter_dependencies",
    "Number of dependency records in the current snapshot",
    ["direction"],
)


def set_app_info(version: str, environment: str) -> None:
    """Set application info metric.

    Args:
        version: Application version.
        environment: Deployment environment.
    """
    APP_INFO.info({
        "version": version,
        "environment": environment,
    })
