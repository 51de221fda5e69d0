"""Background scheduling of collection tasks.

Each task runs in its own loop on its own interval. Errors are contained
per cycle: they are logged and counted, and the task's previously
published snapshot stays visible.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

from planet_exporter.common.config import Settings, get_settings
from planet_exporter.common.exceptions import PlanetError
from planet_exporter.common.logging import get_logger, task_context
from planet_exporter.common.metrics import (
    TASK_DURATION,
    TASK_LAST_SUCCESS,
    TASK_RUNS,
    TASK_SKIPPED,
)
from planet_exporter.inventory.task import InventoryTask
from planet_exporter.socketstat.task import SocketstatTask

logger = get_logger(__name__)


class PeriodicTask:
    """Runs one collection coroutine periodically.

    A cycle that fires while the previous one is still in flight is
    skipped, never queued.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        func: Callable[[], Awaitable[Any]],
    ) -> None:
        self.name = name
        self.interval = interval
        self._func = func
        self._in_flight = False
        self._last_success: float | None = None
        self._last_error: str | None = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def last_success(self) -> float | None:
        """Unix time of the last successful cycle."""
        return self._last_success

    @property
    def last_error(self) -> str | None:
        return self._last_error

    async def run_once(self) -> bool:
        """Run a single cycle.

        Returns:
            True if the cycle succeeded, False if it failed or was skipped.
        """
        if self._in_flight:
            logger.warning("Previous cycle still running, skipping", task=self.name)
            TASK_SKIPPED.labels(task=self.name).inc()
            return False

        self._in_flight = True
        start = time.perf_counter()
        try:
            await self._func()
        except PlanetError as e:
            logger.error(f"{self.name.capitalize()} collect failed", task=self.name, **e.to_dict())
            TASK_RUNS.labels(task=self.name, status="error").inc()
            self._last_error = e.message
            return False
        except Exception as e:
            logger.error(
                f"{self.name.capitalize()} collect failed",
                task=self.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            TASK_RUNS.labels(task=self.name, status="error").inc()
            self._last_error = str(e)
            return False
        finally:
            self._in_flight = False
            TASK_DURATION.labels(task=self.name).observe(time.perf_counter() - start)

        self._last_success = time.time()
        self._last_error = None
        TASK_RUNS.labels(task=self.name, status="success").inc()
        TASK_LAST_SUCCESS.labels(task=self.name).set(self._last_success)
        return True

    async def run_forever(self, stop_event: asyncio.Event) -> None:
        """Run cycles until the stop event is set.

        Every log line emitted by the cycle carries the task name.
        """
        with task_context(self.name):
            while not stop_event.is_set():
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
                except asyncio.TimeoutError:
                    logger.debug("Start collect tick")
                    await self.run_once()


class Scheduler:
    """Owns the collection tasks and their background loops."""

    def __init__(
        self,
        settings: Settings | None = None,
        inventory_task: InventoryTask | None = None,
        socketstat_task: SocketstatTask | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.inventory = inventory_task or InventoryTask(self._settings.inventory)
        self.socketstat = socketstat_task or SocketstatTask(
            self.inventory.get,
            self._settings.socketstat,
        )

        self.periodic_tasks = [
            PeriodicTask(
                self.inventory.name,
                self._settings.task.inventory_interval_seconds,
                self.inventory.collect,
            ),
            PeriodicTask(
                self.socketstat.name,
                self._settings.task.interval_seconds,
                self.socketstat.collect,
            ),
        ]

        self._stop_event = asyncio.Event()
        self._loops: list[asyncio.Task] = []

    async def start(self) -> None:
        """Trigger every task once, then start the periodic loops.

        Inventory runs first so that the first correlation already sees it.
        """
        logger.info(
            "Initialize collector tasks",
            inventory=self.inventory.enabled,
            socketstat=self.socketstat.enabled,
            interval_seconds=self._settings.task.interval_seconds,
        )
        self._stop_event.clear()

        for task in self.periodic_tasks:
            await task.run_once()

        self._loops = [
            asyncio.create_task(task.run_forever(self._stop_event), name=f"planet-{task.name}")
            for task in self.periodic_tasks
        ]

    async def stop(self) -> None:
        """Stop the loops, cancelling any in-flight cycle."""
        self._stop_event.set()
        for loop in self._loops:
            loop.cancel()
        for loop in self._loops:
            try:
                await loop
            except asyncio.CancelledError:
                pass
        self._loops = []
        logger.info("Collector tasks stopped")
