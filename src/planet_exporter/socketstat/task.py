"""Periodic socket correlation."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

from planet_exporter.common.config import SocketstatSettings, get_settings
from planet_exporter.common.exceptions import EnumerationError
from planet_exporter.common.logging import get_logger
from planet_exporter.common.metrics import DEPENDENCIES
from planet_exporter.common.snapshot import SnapshotCell
from planet_exporter.inventory.store import InventoryStore
from planet_exporter.network.enumerator import NetworkEnumerator
from planet_exporter.network.local import default_local_address
from planet_exporter.socketstat.correlator import DependencyCorrelator
from planet_exporter.socketstat.models import CorrelationResult

logger = get_logger(__name__)


class SocketstatTask:
    """Enumerates local sockets and publishes correlated dependencies.

    A failed or timed out cycle leaves the previously published result in
    place; readers never see an empty result because of one bad cycle.
    """

    name = "socketstat"

    def __init__(
        self,
        inventory: Callable[[], InventoryStore],
        settings: SocketstatSettings | None = None,
        enumerator: NetworkEnumerator | None = None,
        correlator: DependencyCorrelator | None = None,
        local_address: Callable[[], str] | None = None,
        cell: SnapshotCell[CorrelationResult] | None = None,
    ) -> None:
        """Initialize the task.

        Args:
            inventory: Returns the current inventory generation.
            settings: Socketstat settings.
            enumerator: Socket enumerator.
            correlator: Dependency correlator.
            local_address: Returns the host's default local address.
            cell: Where results are published.
        """
        self._settings = settings or get_settings().socketstat
        self._inventory = inventory
        self._enumerator = enumerator or NetworkEnumerator(self._settings)
        self._correlator = correlator or DependencyCorrelator()
        self._local_address = local_address or (
            lambda: default_local_address(
                self._settings.probe_address,
                self._settings.probe_port,
            )
        )
        self._cell = cell or SnapshotCell(CorrelationResult())

    @property
    def enabled(self) -> bool:
        return self._settings.enabled

    @property
    def cell(self) -> SnapshotCell[CorrelationResult]:
        return self._cell

    def get(self) -> CorrelationResult:
        """Return the latest published correlation result."""
        return self._cell.get()

    async def collect(self) -> CorrelationResult | None:
        """Run one correlation cycle.

        Returns:
            The newly published result, or None when the task is disabled.

        Raises:
            EnumerationError: Enumeration failed or exceeded its deadline.
            LocalAddressError: The default local address is unavailable.
        """
        if not self._settings.enabled:
            return None

        start = time.perf_counter()
        try:
            snapshot = await asyncio.wait_for(
                asyncio.to_thread(self._enumerator.enumerate),
                timeout=self._settings.deadline_seconds,
            )
        except asyncio.TimeoutError as e:
            raise EnumerationError(
                "Socket enumeration exceeded its deadline",
                details={"deadline_seconds": self._settings.deadline_seconds},
                cause=e,
            ) from e

        local_address = self._local_address()
        result = self._correlator.correlate(snapshot, self._inventory(), local_address)
        self._cell.set(result)

        DEPENDENCIES.labels(direction="upstream").set(len(result.upstreams))
        DEPENDENCIES.labels(direction="downstream").set(len(result.downstreams))

        logger.debug(
            "Socketstat collected",
            listening=len(snapshot.listening),
            peered=len(snapshot.peered),
            upstreams=len(result.upstreams),
            downstreams=len(result.downstreams),
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return result
