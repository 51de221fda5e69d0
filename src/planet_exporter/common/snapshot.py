"""Holder for the latest published result of a collection task.

Writers replace the stored reference wholesale; readers copy the
reference out. Neither side holds the lock for longer than the swap, and
published values are never mutated in place.
"""

import threading
import time
from typing import Generic, TypeVar

T = TypeVar("T")


class SnapshotCell(Generic[T]):
    """Thread-safe cell exposing the most recent computed value.

    Scrapes may run on a different thread than the collection loop, so a
    threading lock guards the swap.
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._updated_at: float | None = None
        self._lock = threading.Lock()

    def get(self) -> T:
        """Return the latest published value."""
        with self._lock:
            return self._value

    def set(self, value: T) -> None:
        """Publish a new value, replacing the previous one."""
        with self._lock:
            self._value = value
            self._updated_at = time.time()

    @property
    def updated_at(self) -> float | None:
        """Unix time of the last publish, None if never published."""
        with self._lock:
            return self._updated_at
