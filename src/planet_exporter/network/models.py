"""Point-in-time socket state of this host."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ListeningSocket:
    """A socket in LISTEN state, i.e. a server endpoint on this host."""

    local_address: str
    local_port: int
    process_id: int | None = None
    process_name: str = ""


@dataclass(frozen=True)
class PeeredSocket:
    """A socket in ESTABLISHED or TIME_WAIT state.

    ``process_name`` is empty when the OS no longer associates the socket
    with a process, which is typical for TIME_WAIT.
    """

    local_address: str
    local_port: int
    remote_address: str
    remote_port: int
    protocol: str
    process_name: str = ""


@dataclass(frozen=True)
class NetworkSnapshot:
    """Sockets returned by one enumeration call."""

    listening: tuple[ListeningSocket, ...] = field(default_factory=tuple)
    peered: tuple[PeeredSocket, ...] = field(default_factory=tuple)
