"""Periodic inventory refresh."""

from __future__ import annotations

import asyncio
import time

from planet_exporter.common.config import InventorySettings, get_settings
from planet_exporter.common.exceptions import ConfigurationError, InventoryFetchError
from planet_exporter.common.logging import get_logger
from planet_exporter.common.metrics import INVENTORY_HOSTS
from planet_exporter.common.snapshot import SnapshotCell
from planet_exporter.inventory.client import InventoryClient
from planet_exporter.inventory.store import InventoryStore

logger = get_logger(__name__)


class InventoryTask:
    """Fetches the inventory feed and publishes a new store generation.

    A failed cycle leaves the previously published store in place.
    """

    name = "inventory"

    def __init__(
        self,
        settings: InventorySettings | None = None,
        client: InventoryClient | None = None,
        cell: SnapshotCell[InventoryStore] | None = None,
    ) -> None:
        self._settings = settings or get_settings().inventory
        self._client = client or InventoryClient(self._settings)
        self._cell = cell or SnapshotCell(InventoryStore())

    @property
    def enabled(self) -> bool:
        return self._settings.enabled

    @property
    def cell(self) -> SnapshotCell[InventoryStore]:
        return self._cell

    def get(self) -> InventoryStore:
        """Return the latest published inventory."""
        return self._cell.get()

    async def collect(self) -> InventoryStore | None:
        """Run one refresh cycle.

        Returns:
            The newly published store, or None when the task is disabled.

        Raises:
            ConfigurationError: No inventory URL is configured.
            InventoryFetchError: The feed could not be fetched in time.
            InventoryDecodeError: The feed document is unusable.
        """
        if not self._settings.enabled:
            return None

        if not self._settings.url:
            raise ConfigurationError("Inventory address is empty")

        start = time.perf_counter()
        try:
            hosts = await asyncio.wait_for(
                self._client.fetch_hosts(),
                timeout=self._settings.deadline_seconds,
            )
        except asyncio.TimeoutError as e:
            raise InventoryFetchError(
                "Inventory request exceeded its deadline",
                details={"deadline_seconds": self._settings.deadline_seconds},
                cause=e,
            ) from e

        store = InventoryStore.build(hosts)
        self._cell.set(store)

        INVENTORY_HOSTS.labels(kind="address").set(store.address_count)
        INVENTORY_HOSTS.labels(kind="network").set(store.network_count)

        logger.debug(
            "Inventory collected",
            hosts=len(hosts),
            addresses=store.address_count,
            networks=store.network_count,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return store
