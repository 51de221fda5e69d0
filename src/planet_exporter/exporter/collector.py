"""Prometheus collector rendering the published snapshots.

Scrapes only read the latest snapshots; nothing is recomputed per scrape
except the hostmeta lookup, which is a single inventory lookup.
"""

from __future__ import annotations

import socket
import time
from collections.abc import Callable, Iterable, Iterator

from prometheus_client.core import GaugeMetricFamily, Metric
from prometheus_client.registry import Collector

from planet_exporter.common.logging import get_logger
from planet_exporter.inventory.models import Host
from planet_exporter.inventory.store import InventoryStore
from planet_exporter.socketstat.models import CorrelationResult, DependencyRecord

logger = get_logger(__name__)

NAMESPACE = "planet"

DEPENDENCY_LABELS = [
    "local_hostgroup",
    "remote_hostgroup",
    "local_address",
    "remote_address",
    "port",
    "protocol",
    "process_name",
]

SubCollector = Callable[[], Iterable[Metric]]


def _dependency_family(name: str, documentation: str, records: Iterable[DependencyRecord]) -> GaugeMetricFamily:
    family = GaugeMetricFamily(f"{NAMESPACE}_{name}", documentation, labels=DEPENDENCY_LABELS)
    for r in records:
        family.add_metric(
            [
                r.local_hostgroup,
                r.remote_hostgroup,
                r.local_address,
                r.remote_address,
                str(r.port),
                r.protocol,
                r.process_name,
            ],
            1,
        )
    return family


class PlanetCollector(Collector):
    """Collector running every registered sub-collector on each scrape.

    A failing sub-collector is logged and reported through
    ``planet_scrape_collector_success`` without affecting the others.
    """

    def __init__(
        self,
        dependencies: Callable[[], CorrelationResult],
        inventory: Callable[[], InventoryStore],
        hostname: Callable[[], str] = socket.gethostname,
        local_host_resolver: Callable[[InventoryStore], Host] | None = None,
    ) -> None:
        self._dependencies = dependencies
        self._inventory = inventory
        self._hostname = hostname
        self._local_host_resolver = local_host_resolver or (lambda store: store.get_local())

        self.collectors: dict[str, SubCollector] = {
            "network_dependency": self.collect_network_dependency,
            "hostmeta": self.collect_hostmeta,
        }

    def collect_network_dependency(self) -> list[Metric]:
        result = self._dependencies()

        processes = GaugeMetricFamily(
            f"{NAMESPACE}_server_process",
            "Server process that are listening on network interfaces",
            labels=["bind", "process_name", "port"],
        )
        for p in result.processes:
            processes.add_metric([p.bind, p.name, str(p.port)], 1)

        return [
            _dependency_family("upstream", "Upstream dependency of this machine", result.upstreams),
            _dependency_family("downstream", "Downstream dependency of this machine", result.downstreams),
            processes,
        ]

    def collect_hostmeta(self) -> list[Metric]:
        hostname = self._hostname()
        local = self._local_host_resolver(self._inventory())

        family = GaugeMetricFamily(
            f"{NAMESPACE}_hostname",
            "Hostname of the collected machine",
            labels=["local_hostgroup", "hostname", "domain", "ip"],
        )
        family.add_metric([local.hostgroup, hostname, local.domain, local.address], 1)
        return [family]

    def describe(self) -> list[Metric]:
        # Label sets are dynamic, so nothing is declared up front
        return []

    def collect(self) -> Iterator[Metric]:
        duration = GaugeMetricFamily(
            f"{NAMESPACE}_scrape_collector_duration_seconds",
            "planet_exporter: Duration of a collector scrape.",
            labels=["collector"],
        )
        success = GaugeMetricFamily(
            f"{NAMESPACE}_scrape_collector_success",
            "planet_exporter: Whether a collector succeeded.",
            labels=["collector"],
        )

        for name, sub_collector in self.collectors.items():
            start = time.perf_counter()
            try:
                families = list(sub_collector())
            except Exception as e:
                elapsed = time.perf_counter() - start
                logger.error(
                    "Collector failed",
                    collector=name,
                    duration_seconds=elapsed,
                    error=str(e),
                )
                duration.add_metric([name], elapsed)
                success.add_metric([name], 0)
                continue

            elapsed = time.perf_counter() - start
            logger.debug("Collector succeeded", collector=name, duration_seconds=elapsed)
            duration.add_metric([name], elapsed)
            success.add_metric([name], 1)
            yield from families

        yield duration
        yield success
