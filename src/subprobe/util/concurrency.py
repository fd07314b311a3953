"""Concurrency primitives for controlled parallel execution.

We want speed but not chaos - a semaphore caps how many domain checks
are in flight, and a locked counter tracks progress across tasks.
"""

import asyncio
import threading
from contextlib import asynccontextmanager


class AtomicCounter:
    """Monotonic counter safe to bump from coroutines and threads alike.

    Only ever incremented - readers see a value that never goes backwards.
    """

    def __init__(self):
        self._value = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        """Add one and return the new value."""
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class ConcurrencyController:
    """Controls concurrent execution with a semaphore.

    Each holder of a slot runs one whole domain check (probe, inspect,
    screenshot, record) before the slot is handed to the next waiter.
    Tracks the current and peak number of busy slots for diagnostics.
    """

    def __init__(self, max_workers: int = 50):
        """Initialize with max concurrent workers."""
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.semaphore = asyncio.Semaphore(max_workers)
        self.max_workers = max_workers
        self.active = 0
        self.peak = 0

    @asynccontextmanager
    async def acquire(self):
        """Acquire a slot before proceeding.

        Usage:
            async with controller.acquire():
                await do_network_call()
        """
        async with self.semaphore:
            self.active += 1
            self.peak = max(self.peak, self.active)
            try:
                yield
            finally:
                self.active -= 1
