"""Inventory resolution - mapping addresses to logical hosts."""

from planet_exporter.inventory.client import InventoryClient
from planet_exporter.inventory.models import UNKNOWN_HOST, Host, HostEntry
from planet_exporter.inventory.parser import parse_hosts
from planet_exporter.inventory.store import InventoryStore
from planet_exporter.inventory.task import InventoryTask

__all__ = [
    "Host",
    "HostEntry",
    "InventoryClient",
    "InventoryStore",
    "InventoryTask",
    "UNKNOWN_HOST",
    "parse_hosts",
]
