"""Inventory data types."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict


@dataclass(frozen=True)
class Host:
    """Logical identity assigned to an address or network."""

    domain: str = ""
    hostgroup: str = ""
    address: str = ""

    @property
    def is_unknown(self) -> bool:
        """A host without domain and hostgroup carries no information."""
        return not self.domain and not self.hostgroup


# Returned by lookups that find nothing
UNKNOWN_HOST = Host()


class HostEntry(BaseModel):
    """One inventory entry as it appears on the wire.

    Unknown fields reject the entry.
    """

    model_config = ConfigDict(extra="forbid", strict=True)

    ip_address: str
    domain: str = ""
    hostgroup: str = ""

    def to_host(self) -> Host:
        return Host(domain=self.domain, hostgroup=self.hostgroup, address=self.ip_address)
