"""Unit tests for the snapshot cell and the task scheduler."""

import asyncio
import threading

import pytest

from planet_exporter.common.config import Settings
from planet_exporter.common.exceptions import InventoryFetchError
from planet_exporter.common.snapshot import SnapshotCell
from planet_exporter.exporter.scheduler import PeriodicTask, Scheduler


@pytest.mark.unit
class TestSnapshotCell:
    """Test cases for SnapshotCell."""

    def test_initial_value(self):
        cell = SnapshotCell([])

        assert cell.get() == []
        assert cell.updated_at is None

    def test_set_replaces_value(self):
        cell = SnapshotCell("old")
        cell.set("new")

        assert cell.get() == "new"
        assert cell.updated_at is not None

    def test_concurrent_readers_see_whole_values(self):
        """Test readers only ever observe a published value."""
        published = [tuple(range(i, i + 50)) for i in range(200)]
        cell = SnapshotCell(published[0])
        observed: list[tuple] = []

        def reader():
            for _ in range(500):
                observed.append(cell.get())

        threads = [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for value in published:
            cell.set(value)
        for t in threads:
            t.join()

        assert cell.get() == published[-1]
        assert all(value in published for value in observed)


@pytest.mark.unit
class TestPeriodicTask:
    """Test cases for PeriodicTask."""

    @pytest.mark.asyncio
    async def test_success_records_timestamp(self):
        calls = []

        async def collect():
            calls.append(1)

        task = PeriodicTask("inventory", 1.0, collect)

        assert await task.run_once() is True
        assert calls == [1]
        assert task.last_success is not None
        assert task.last_error is None

    @pytest.mark.asyncio
    async def test_planet_error_is_contained(self):
        """Test a domain error fails the cycle without raising."""

        async def collect():
            raise InventoryFetchError("feed down")

        task = PeriodicTask("inventory", 1.0, collect)

        assert await task.run_once() is False
        assert task.last_success is None
        assert task.last_error == "feed down"
        assert task.in_flight is False

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self):
        async def collect():
            raise RuntimeError("boom")

        task = PeriodicTask("socketstat", 1.0, collect)

        assert await task.run_once() is False
        assert task.last_error == "boom"

    @pytest.mark.asyncio
    async def test_overlapping_cycle_is_skipped(self):
        """Test a cycle firing while another is in flight does not run."""
        started = asyncio.Event()
        release = asyncio.Event()
        calls = []

        async def collect():
            calls.append(1)
            started.set()
            await release.wait()

        task = PeriodicTask("socketstat", 1.0, collect)
        first = asyncio.create_task(task.run_once())
        await started.wait()

        assert task.in_flight is True
        assert await task.run_once() is False

        release.set()
        assert await first is True
        assert calls == [1]
        assert task.in_flight is False

    @pytest.mark.asyncio
    async def test_run_forever_ticks_until_stopped(self):
        calls = []

        async def collect():
            calls.append(1)

        task = PeriodicTask("socketstat", 0.01, collect)
        stop = asyncio.Event()
        loop = asyncio.create_task(task.run_forever(stop))

        await asyncio.sleep(0.1)
        stop.set()
        await asyncio.wait_for(loop, timeout=1)

        assert len(calls) >= 2


@pytest.mark.unit
class TestScheduler:
    """Test cases for Scheduler."""

    @pytest.mark.asyncio
    async def test_intervals(self, test_settings: Settings):
        """Test inventory refreshes on a multiple of the collect interval."""
        scheduler = Scheduler(test_settings)
        intervals = {t.name: t.interval for t in scheduler.periodic_tasks}

        assert intervals["socketstat"] == test_settings.task.interval_seconds
        assert intervals["inventory"] == (
            test_settings.task.interval_seconds * test_settings.task.inventory_interval_multiplier
        )

    @pytest.mark.asyncio
    async def test_start_runs_tasks_once_and_stop(self, test_settings: Settings):
        """Test start triggers an initial cycle and stop ends the loops."""
        scheduler = Scheduler(test_settings)

        await scheduler.start()
        for task in scheduler.periodic_tasks:
            assert task.last_success is not None
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_socketstat_reads_inventory_cell(self, test_settings: Settings, sample_inventory):
        scheduler = Scheduler(test_settings)
        scheduler.inventory.cell.set(sample_inventory)

        assert scheduler.socketstat._inventory() is sample_inventory
