"""Address to identity lookup table.

An InventoryStore is built wholesale from a host list and never mutated
afterwards; a refresh builds a new generation and swaps it in.

Lookup priority for an address:

1. exact match on the address string,
2. the containing network with the longest prefix,
3. no match.

Two networks of equal prefix length that both contain an address are the
same network, so ties can only come from duplicate network entries. Those
are collapsed at build time with the later entry replacing the earlier
one, the same rule the exact table uses.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from ipaddress import IPv4Network, IPv6Network, ip_address, ip_network

from planet_exporter.common.exceptions import LocalAddressError
from planet_exporter.common.logging import get_logger
from planet_exporter.common.metrics import INVENTORY_ENTRIES_SKIPPED
from planet_exporter.inventory.models import UNKNOWN_HOST, Host
from planet_exporter.network.local import default_local_address

logger = get_logger(__name__)

Network = IPv4Network | IPv6Network


class InventoryStore:
    """Immutable-per-generation table of address to host mappings."""

    def __init__(
        self,
        addresses: dict[str, Host] | None = None,
        networks: list[tuple[Network, Host]] | None = None,
    ) -> None:
        self._addresses: dict[str, Host] = dict(addresses or {})
        self._networks: tuple[tuple[Network, Host], ...] = tuple(networks or ())

    @classmethod
    def build(cls, hosts: Iterable[Host]) -> InventoryStore:
        """Build a store from an inventory host list.

        Entries without domain and hostgroup are dropped, as are entries
        whose CIDR address does not parse. One bad entry never fails the
        whole build.
        """
        addresses: dict[str, Host] = {}
        networks: dict[Network, Host] = {}

        for host in hosts:
            if host.is_unknown:
                logger.debug("Skipping unknown inventory host", address=host.address)
                INVENTORY_ENTRIES_SKIPPED.labels(reason="unknown_host").inc()
                continue

            if "/" not in host.address:
                addresses[host.address] = host
                continue

            try:
                network = ip_network(host.address, strict=False)
            except ValueError as e:
                logger.warning(
                    "Skipping inventory host with invalid CIDR",
                    address=host.address,
                    error=str(e),
                )
                INVENTORY_ENTRIES_SKIPPED.labels(reason="invalid_cidr").inc()
                continue

            if network in networks:
                logger.warning(
                    "Duplicate inventory network, later entry wins",
                    network=str(network),
                    previous_hostgroup=networks[network].hostgroup,
                    hostgroup=host.hostgroup,
                )
            networks[network] = host

        return cls(addresses, list(networks.items()))

    def lookup(self, address: str) -> tuple[Host, bool]:
        """Resolve an address to its host.

        Returns:
            Tuple of (host, found). A miss returns an empty Host.
        """
        host = self._addresses.get(address)
        if host is not None:
            return host, True

        try:
            ip = ip_address(address)
        except ValueError:
            return UNKNOWN_HOST, False

        best: Host | None = None
        best_prefix = -1
        for network, candidate in self._networks:
            if network.prefixlen > best_prefix and ip in network:
                best = candidate
                best_prefix = network.prefixlen

        # A /0 match still counts as found
        if best is None:
            return UNKNOWN_HOST, False
        return best, True

    def get_local(
        self,
        resolver: Callable[[], str] = default_local_address,
    ) -> Host:
        """Return the inventory host of this machine.

        An empty Host means the identity is unknown; it is not an error.
        """
        try:
            address = resolver()
        except LocalAddressError as e:
            logger.debug("Default local address unavailable", error=str(e))
            return UNKNOWN_HOST

        host, _ = self.lookup(address)
        return host

    @property
    def address_count(self) -> int:
        return len(self._addresses)

    @property
    def network_count(self) -> int:
        return len(self._networks)

    def __len__(self) -> int:
        return self.address_count + self.network_count
