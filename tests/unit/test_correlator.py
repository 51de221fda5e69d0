"""Unit tests for dependency correlation."""

import random

import pytest

from planet_exporter.inventory.models import Host
from planet_exporter.inventory.store import InventoryStore
from planet_exporter.network.models import ListeningSocket, NetworkSnapshot, PeeredSocket
from planet_exporter.socketstat.correlator import DependencyCorrelator
from planet_exporter.socketstat.models import DependencyRecord, Direction, ProcessBinding

LOCAL = "10.0.0.5"


@pytest.fixture
def correlator() -> DependencyCorrelator:
    return DependencyCorrelator()


@pytest.mark.unit
class TestResolve:
    """Test cases for DependencyCorrelator.resolve."""

    def test_known_host(self, correlator: DependencyCorrelator, sample_inventory: InventoryStore):
        assert correlator.resolve(sample_inventory, "10.0.0.1") == ("svc-a", "a.local")

    def test_network_without_domain_keeps_address(
        self,
        correlator: DependencyCorrelator,
        sample_inventory: InventoryStore,
    ):
        """Test an empty domain falls back to the raw address."""
        assert correlator.resolve(sample_inventory, "10.0.0.77") == ("subnet", "10.0.0.77")

    def test_unknown_host(self, correlator: DependencyCorrelator, sample_inventory: InventoryStore):
        assert correlator.resolve(sample_inventory, "8.8.4.4") == ("", "8.8.4.4")

    def test_loopback(self, correlator: DependencyCorrelator):
        """Test loopback resolves to localhost without an inventory entry."""
        assert correlator.resolve(InventoryStore(), "127.0.0.1") == ("localhost", "localhost")


@pytest.mark.unit
class TestIndexListeners:
    """Test cases for DependencyCorrelator.index_listeners."""

    def test_named_listener_preferred(self, correlator: DependencyCorrelator):
        """Test a port bound twice keeps the listener with a process name."""
        named = ListeningSocket("0.0.0.0", 8080, process_id=10, process_name="api")
        index = correlator.index_listeners([
            ListeningSocket("::", 8080),
            named,
            ListeningSocket("0.0.0.0", 22, process_id=1, process_name="sshd"),
        ])

        assert set(index) == {22, 8080}
        assert index[8080] == named


@pytest.mark.unit
class TestCorrelate:
    """Test cases for DependencyCorrelator.correlate."""

    def test_downstream_from_listener(
        self,
        correlator: DependencyCorrelator,
        sample_inventory: InventoryStore,
    ):
        """Test a peer on a listening port yields one downstream record."""
        snapshot = NetworkSnapshot(
            listening=(ListeningSocket("0.0.0.0", 8080, process_id=10, process_name="api"),),
            peered=(
                PeeredSocket(LOCAL, 8080, "10.0.0.1", 51000, "tcp", "api"),
                PeeredSocket(LOCAL, 8080, "10.0.0.1", 51001, "tcp", "api"),
                PeeredSocket(LOCAL, 8080, "10.0.0.1", 51002, "tcp"),
            ),
        )

        result = correlator.correlate(snapshot, sample_inventory, LOCAL)

        assert result.upstreams == ()
        assert result.downstreams == (
            DependencyRecord(
                direction=Direction.DOWNSTREAM,
                local_hostgroup="self",
                local_address="self.local",
                remote_hostgroup="svc-a",
                remote_address="a.local",
                port=8080,
                protocol="tcp",
                process_name="api",
            ),
        )

    def test_upstream_ephemeral_ports_collapse(
        self,
        correlator: DependencyCorrelator,
        sample_inventory: InventoryStore,
    ):
        """Test outgoing connections collapse on the remote port."""
        snapshot = NetworkSnapshot(
            peered=(
                PeeredSocket(LOCAL, 40001, "10.0.1.20", 5432, "tcp", "app"),
                PeeredSocket(LOCAL, 40002, "10.0.1.20", 5432, "tcp", "app"),
                PeeredSocket(LOCAL, 40003, "10.0.1.20", 5432, "tcp", "app"),
            ),
        )

        result = correlator.correlate(snapshot, sample_inventory, LOCAL)

        assert result.downstreams == ()
        assert result.upstreams == (
            DependencyRecord(
                direction=Direction.UPSTREAM,
                local_hostgroup="self",
                local_address="self.local",
                remote_hostgroup="db",
                remote_address="db.local",
                port=5432,
                protocol="tcp",
                process_name="app",
            ),
        )

    def test_time_wait_downstream_takes_listener_name(
        self,
        correlator: DependencyCorrelator,
        sample_inventory: InventoryStore,
    ):
        """Test a peer without a process is credited to the listener."""
        snapshot = NetworkSnapshot(
            listening=(ListeningSocket("0.0.0.0", 443, process_id=7, process_name="nginx"),),
            peered=(PeeredSocket(LOCAL, 443, "10.0.0.1", 60000, "tcp"),),
        )

        result = correlator.correlate(snapshot, sample_inventory, LOCAL)

        assert len(result.downstreams) == 1
        assert result.downstreams[0].process_name == "nginx"

    def test_localhost_upstream_excluded(
        self,
        correlator: DependencyCorrelator,
        sample_inventory: InventoryStore,
    ):
        """Test outgoing connections to localhost are not dependencies."""
        snapshot = NetworkSnapshot(
            peered=(PeeredSocket("127.0.0.1", 40000, "127.0.0.1", 6379, "tcp", "app"),),
        )

        result = correlator.correlate(snapshot, sample_inventory, LOCAL)

        assert result.upstreams == ()
        assert result.downstreams == ()

    def test_loopback_downstream_uses_local_address(
        self,
        correlator: DependencyCorrelator,
        sample_inventory: InventoryStore,
    ):
        """Test a loopback peer to a local server is a localhost downstream."""
        snapshot = NetworkSnapshot(
            listening=(ListeningSocket("127.0.0.1", 6379, process_id=3, process_name="redis"),),
            peered=(PeeredSocket("127.0.0.1", 6379, "127.0.0.1", 40000, "tcp", "redis"),),
        )

        result = correlator.correlate(snapshot, sample_inventory, LOCAL)

        assert result.upstreams == ()
        assert len(result.downstreams) == 1
        record = result.downstreams[0]
        assert record.local_hostgroup == "self"
        assert record.local_address == "self.local"
        assert record.remote_hostgroup == "localhost"
        assert record.remote_address == "localhost"
        assert record.port == 6379

    def test_unknown_remote_uses_raw_address(
        self,
        correlator: DependencyCorrelator,
        sample_inventory: InventoryStore,
    ):
        snapshot = NetworkSnapshot(
            peered=(PeeredSocket(LOCAL, 41000, "93.184.216.34", 443, "tcp", "curl"),),
        )

        result = correlator.correlate(snapshot, sample_inventory, LOCAL)

        assert len(result.upstreams) == 1
        assert result.upstreams[0].remote_hostgroup == ""
        assert result.upstreams[0].remote_address == "93.184.216.34"

    def test_protocol_distinguishes_records(
        self,
        correlator: DependencyCorrelator,
        sample_inventory: InventoryStore,
    ):
        snapshot = NetworkSnapshot(
            peered=(
                PeeredSocket(LOCAL, 41000, "10.0.1.20", 53, "tcp", "dig"),
                PeeredSocket(LOCAL, 41001, "10.0.1.20", 53, "udp", "dig"),
            ),
        )

        result = correlator.correlate(snapshot, sample_inventory, LOCAL)

        assert sorted(r.protocol for r in result.upstreams) == ["tcp", "udp"]

    def test_process_bindings(
        self,
        correlator: DependencyCorrelator,
        sample_inventory: InventoryStore,
    ):
        """Test each listening socket becomes a process binding."""
        snapshot = NetworkSnapshot(
            listening=(
                ListeningSocket("0.0.0.0", 22, process_id=1, process_name="sshd"),
                ListeningSocket("::", 22, process_id=1, process_name="sshd"),
            ),
        )

        result = correlator.correlate(snapshot, sample_inventory, LOCAL)

        assert result.processes == (
            ProcessBinding(name="sshd", bind="0.0.0.0:22", port=22),
            ProcessBinding(name="sshd", bind=":::22", port=22),
        )

    def test_shared_listen_socket_is_one_binding(
        self,
        correlator: DependencyCorrelator,
        sample_inventory: InventoryStore,
    ):
        """Test a socket listed under several worker pids yields one binding."""
        snapshot = NetworkSnapshot(
            listening=(
                ListeningSocket("0.0.0.0", 80, process_id=100, process_name="nginx"),
                ListeningSocket("0.0.0.0", 80, process_id=101, process_name="nginx"),
                ListeningSocket("0.0.0.0", 80, process_id=102, process_name="nginx"),
                ListeningSocket("0.0.0.0", 9000, process_id=200, process_name="php-fpm"),
            ),
        )

        result = correlator.correlate(snapshot, sample_inventory, LOCAL)

        assert result.processes == (
            ProcessBinding(name="nginx", bind="0.0.0.0:80", port=80),
            ProcessBinding(name="php-fpm", bind="0.0.0.0:9000", port=9000),
        )

    def test_empty_snapshot(self, correlator: DependencyCorrelator):
        result = correlator.correlate(NetworkSnapshot(), InventoryStore(), LOCAL)

        assert result.processes == ()
        assert result.upstreams == ()
        assert result.downstreams == ()

    def test_idempotent(
        self,
        correlator: DependencyCorrelator,
        sample_inventory: InventoryStore,
    ):
        """Test correlating the same input twice gives the same result."""
        snapshot = NetworkSnapshot(
            listening=(ListeningSocket("0.0.0.0", 8080, process_id=10, process_name="api"),),
            peered=(
                PeeredSocket(LOCAL, 8080, "10.0.0.1", 51000, "tcp", "api"),
                PeeredSocket(LOCAL, 40001, "10.0.1.20", 5432, "tcp", "api"),
            ),
        )

        first = correlator.correlate(snapshot, sample_inventory, LOCAL)
        second = correlator.correlate(snapshot, sample_inventory, LOCAL)

        assert first == second

    def test_order_independent(
        self,
        correlator: DependencyCorrelator,
        sample_inventory: InventoryStore,
    ):
        """Test shuffled sockets give the same records."""
        listening = [
            ListeningSocket("::", 8080),
            ListeningSocket("0.0.0.0", 8080, process_id=10, process_name="api"),
        ]
        peered = [
            PeeredSocket(LOCAL, 8080, "10.0.0.1", 51000, "tcp"),
            PeeredSocket(LOCAL, 8080, "10.0.0.1", 51001, "tcp", "api"),
            PeeredSocket(LOCAL, 40001, "10.0.1.20", 5432, "tcp"),
            PeeredSocket(LOCAL, 40002, "10.0.1.20", 5432, "tcp", "worker"),
            PeeredSocket(LOCAL, 40003, "10.0.0.99", 9000, "tcp", "worker"),
        ]
        baseline = correlator.correlate(
            NetworkSnapshot(tuple(listening), tuple(peered)), sample_inventory, LOCAL
        )

        rng = random.Random(42)
        for _ in range(10):
            rng.shuffle(listening)
            rng.shuffle(peered)
            result = correlator.correlate(
                NetworkSnapshot(tuple(listening), tuple(peered)), sample_inventory, LOCAL
            )
            assert set(result.upstreams) == set(baseline.upstreams)
            assert set(result.downstreams) == set(baseline.downstreams)

        assert {r.process_name for r in baseline.downstreams} == {"api"}
        assert {r.process_name for r in baseline.upstreams} == {"worker"}
