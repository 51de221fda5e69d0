"""Inventory feed HTTP client."""

from __future__ import annotations

import httpx

from planet_exporter.common.config import InventorySettings, get_settings
from planet_exporter.common.exceptions import ConfigurationError, InventoryFetchError
from planet_exporter.common.logging import get_logger
from planet_exporter.inventory.models import Host
from planet_exporter.inventory.parser import parse_hosts

logger = get_logger(__name__)


class InventoryClient:
    """Lightweight client for the operator-configured inventory endpoint."""

    def __init__(
        self,
        settings: InventorySettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings().inventory
        self._transport = transport

    async def _get(self, url: str) -> str:
        timeout = httpx.Timeout(self._settings.request_timeout_seconds)
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            response = await client.get(url, headers={"Accept": "application/json"})
            response.raise_for_status()
            return response.text

    async def fetch_hosts(self) -> list[Host]:
        """Request the inventory and decode it into hosts.

        Raises:
            ConfigurationError: No inventory URL is configured.
            InventoryFetchError: The request failed.
        """
        url = self._settings.url
        if not url:
            raise ConfigurationError("Inventory address is empty")

        try:
            body = await self._get(url)
        except httpx.HTTPError as e:
            raise InventoryFetchError(
                f"Error requesting inventory: {e}",
                details={"url": url},
                cause=e,
            ) from e

        return parse_hosts(self._settings.format, body)
