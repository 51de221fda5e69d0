"""Pytest configuration and fixtures for Planet Exporter tests."""

import pytest

from planet_exporter.common.config import (
    InventorySettings,
    Settings,
    SocketstatSettings,
)
from planet_exporter.inventory.models import Host
from planet_exporter.inventory.store import InventoryStore


@pytest.fixture
def test_settings() -> Settings:
    """Settings with both collection tasks disabled."""
    return Settings(
        environment="development",
        inventory={"enabled": False},
        socketstat={"enabled": False},
        logging={"format": "console", "level": "DEBUG"},
    )


@pytest.fixture
def inventory_settings() -> InventorySettings:
    """Inventory settings pointing at a fake feed."""
    return InventorySettings(
        enabled=True,
        url="http://inventory.test/hosts",
        format="arrayjson",
        request_timeout_seconds=1.0,
        deadline_seconds=1.0,
    )


@pytest.fixture
def socketstat_settings() -> SocketstatSettings:
    """Socketstat settings with a short deadline."""
    return SocketstatSettings(enabled=True, deadline_seconds=1.0)


# =============================================================================
# Sample Data Fixtures
# =============================================================================


@pytest.fixture
def sample_hosts() -> list[Host]:
    """A small inventory mixing exact addresses and networks."""
    return [
        Host(domain="self.local", hostgroup="self", address="10.0.0.5"),
        Host(domain="a.local", hostgroup="svc-a", address="10.0.0.1"),
        Host(domain="db.local", hostgroup="db", address="10.0.1.20"),
        Host(domain="", hostgroup="subnet", address="10.0.0.0/24"),
    ]


@pytest.fixture
def sample_inventory(sample_hosts: list[Host]) -> InventoryStore:
    """Inventory store built from sample_hosts."""
    return InventoryStore.build(sample_hosts)
