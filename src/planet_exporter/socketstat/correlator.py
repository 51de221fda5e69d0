"""Dependency correlation.

Turns one socket snapshot and the current inventory into deduplicated
upstream and downstream dependency records.

A peered socket whose local port is one of our listening ports is a
downstream dependency (a remote peer connected to a service we run).
Anything else is an upstream dependency we initiated, unless the remote
side resolves to localhost. Ephemeral ports collapse: at most one record
exists per (direction, remote hostgroup, remote address, port, protocol).
"""

from __future__ import annotations

from planet_exporter.common.logging import get_logger
from planet_exporter.inventory.models import Host
from planet_exporter.inventory.store import InventoryStore
from planet_exporter.network.models import ListeningSocket, NetworkSnapshot, PeeredSocket
from planet_exporter.socketstat.models import (
    CorrelationResult,
    DependencyRecord,
    Direction,
    ProcessBinding,
)

logger = get_logger(__name__)

LOOPBACK_ADDRESS = "127.0.0.1"
LOCALHOST = "localhost"

LOOPBACK_HOST = Host(domain=LOCALHOST, hostgroup=LOCALHOST, address=LOOPBACK_ADDRESS)


def _peer_order(peer: PeeredSocket) -> tuple:
    # Named sockets first so that a record carries a process name whenever
    # any socket behind it has one.
    return (
        peer.process_name == "",
        peer.process_name,
        peer.local_address,
        peer.local_port,
        peer.remote_address,
        peer.remote_port,
        peer.protocol,
    )


def _listener_order(listener: ListeningSocket) -> tuple:
    return (
        listener.local_port,
        listener.process_name == "",
        listener.process_name,
        listener.local_address,
    )


class DependencyCorrelator:
    """Builds dependency records from socket state and inventory.

    The correlator is stateless; every call works on its arguments only
    and the result does not depend on the order of the input sockets.
    """

    def resolve(self, inventory: InventoryStore, address: str) -> tuple[str, str]:
        """Resolve an address to (hostgroup, display address).

        The display address is the inventory domain when known, otherwise
        the raw address.
        """
        if address == LOOPBACK_ADDRESS:
            host = LOOPBACK_HOST
        else:
            host, _ = inventory.lookup(address)

        return host.hostgroup, host.domain or address

    def index_listeners(
        self,
        listening: tuple[ListeningSocket, ...] | list[ListeningSocket],
    ) -> dict[int, ListeningSocket]:
        """Index listening sockets by local port.

        A server bound to several addresses on one port counts as a single
        listener; the one carrying a process name is preferred.
        """
        index: dict[int, ListeningSocket] = {}
        for listener in sorted(listening, key=_listener_order):
            index.setdefault(listener.local_port, listener)
        return index

    def correlate(
        self,
        snapshot: NetworkSnapshot,
        inventory: InventoryStore,
        local_address: str,
    ) -> CorrelationResult:
        """Correlate one socket snapshot against the inventory.

        Args:
            snapshot: Listening and peered sockets of this host.
            inventory: Current inventory generation.
            local_address: The host's externally routable address, used in
                place of loopback for locally bound peers.

        Returns:
            Process bindings plus deduplicated upstream and downstream records.
        """
        # Pre-fork servers list one shared LISTEN socket under every worker pid
        processes = tuple(dict.fromkeys(
            ProcessBinding(
                name=listener.process_name,
                bind=f"{listener.local_address}:{listener.local_port}",
                port=listener.local_port,
            )
            for listener in snapshot.listening
        ))
        for binding in processes:
            logger.debug("Server listening", bind=binding.bind, process=binding.name)

        listeners = self.index_listeners(snapshot.listening)

        seen: set[tuple[str, str, str, int, str]] = set()
        upstreams: list[DependencyRecord] = []
        downstreams: list[DependencyRecord] = []

        for peer in sorted(snapshot.peered, key=_peer_order):
            peer_local = peer.local_address
            if peer_local == LOOPBACK_ADDRESS:
                peer_local = local_address

            local_hostgroup, local_display = self.resolve(inventory, peer_local)
            remote_hostgroup, remote_display = self.resolve(inventory, peer.remote_address)

            listener = listeners.get(peer.local_port)
            if listener is not None:
                # TIME_WAIT sockets lose their pid, so credit whoever holds the port
                record = DependencyRecord(
                    direction=Direction.DOWNSTREAM,
                    local_hostgroup=local_hostgroup,
                    local_address=local_display,
                    remote_hostgroup=remote_hostgroup,
                    remote_address=remote_display,
                    port=peer.local_port,
                    protocol=peer.protocol,
                    process_name=peer.process_name or listener.process_name,
                )
                target = downstreams
            elif remote_display != LOCALHOST:
                record = DependencyRecord(
                    direction=Direction.UPSTREAM,
                    local_hostgroup=local_hostgroup,
                    local_address=local_display,
                    remote_hostgroup=remote_hostgroup,
                    remote_address=remote_display,
                    port=peer.remote_port,
                    protocol=peer.protocol,
                    process_name=peer.process_name,
                )
                target = upstreams
            else:
                continue

            if record.key in seen:
                continue
            seen.add(record.key)
            target.append(record)

        return CorrelationResult(
            processes=processes,
            upstreams=tuple(upstreams),
            downstreams=tuple(downstreams),
        )
