"""Socket enumeration backed by psutil.

Produces a NetworkSnapshot of listening sockets and peer tuples in
ESTABLISHED or TIME_WAIT state. The call is blocking; async callers run
it in a worker thread under a deadline.
"""

from __future__ import annotations

import socket
from collections import Counter
from ipaddress import IPv6Address, ip_address

import psutil

from planet_exporter.common.config import SocketstatSettings, get_settings
from planet_exporter.common.exceptions import EnumerationError
from planet_exporter.common.logging import get_logger
from planet_exporter.network.models import ListeningSocket, NetworkSnapshot, PeeredSocket

logger = get_logger(__name__)

PEERED_STATUSES = frozenset({psutil.CONN_ESTABLISHED, psutil.CONN_TIME_WAIT})

PROTOCOLS = {
    socket.SOCK_STREAM: "tcp",
    socket.SOCK_DGRAM: "udp",
}


def normalize_address(address: str) -> str:
    """Return IPv4-mapped IPv6 addresses in dotted IPv4 form.

    Dual-stack sockets report peers as ``::ffff:a.b.c.d``; inventory
    entries and the loopback rules use the plain IPv4 form.
    """
    try:
        parsed = ip_address(address)
    except ValueError:
        return address
    if isinstance(parsed, IPv6Address) and parsed.ipv4_mapped is not None:
        return str(parsed.ipv4_mapped)
    return address


def process_table() -> dict[int, str]:
    """Map running process ids to their executable names."""
    table: dict[int, str] = {}
    for proc in psutil.process_iter(["pid", "name"]):
        name = proc.info.get("name")
        if name:
            table[proc.info["pid"]] = name
    return table


class NetworkEnumerator:
    """Enumerates this host's listening and peered sockets."""

    def __init__(self, settings: SocketstatSettings | None = None) -> None:
        self._settings = settings or get_settings().socketstat

    def enumerate(self) -> NetworkSnapshot:
        """Take a snapshot of the host's inet sockets.

        psutil reads the whole socket table in one call and has no per-process
        bound, so ``max_connections_per_process`` is applied as a filter on
        that table: at most that many sockets per owning process reach the
        snapshot and the correlator. Sockets without an owner are not capped.

        Raises:
            EnumerationError: The OS refused or failed the enumeration.
        """
        try:
            connections = psutil.net_connections(kind="inet")
            names = process_table()
        except (psutil.Error, OSError) as e:
            raise EnumerationError(
                f"Error enumerating sockets: {e}",
                cause=e,
            ) from e

        cap = self._settings.max_connections_per_process
        per_process: Counter[int] = Counter()
        capped: set[int] = set()

        listening: list[ListeningSocket] = []
        peered: list[PeeredSocket] = []

        for conn in connections:
            if conn.pid is not None:
                if per_process[conn.pid] >= cap:
                    capped.add(conn.pid)
                    continue
                per_process[conn.pid] += 1

            if not conn.laddr:
                continue
            process_name = names.get(conn.pid, "") if conn.pid is not None else ""

            if conn.status == psutil.CONN_LISTEN:
                listening.append(ListeningSocket(
                    local_address=normalize_address(conn.laddr.ip),
                    local_port=conn.laddr.port,
                    process_id=conn.pid,
                    process_name=process_name,
                ))
            elif conn.status in PEERED_STATUSES and conn.raddr:
                peered.append(PeeredSocket(
                    local_address=normalize_address(conn.laddr.ip),
                    local_port=conn.laddr.port,
                    remote_address=normalize_address(conn.raddr.ip),
                    remote_port=conn.raddr.port,
                    protocol=PROTOCOLS.get(conn.type, ""),
                    process_name=process_name,
                ))

        if capped:
            logger.debug(
                "Socket enumeration capped for busy processes",
                pids=sorted(capped),
                cap=cap,
            )

        return NetworkSnapshot(listening=tuple(listening), peered=tuple(peered))
