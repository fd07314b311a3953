"""Result accumulator - the one place probe results land.

Every task hands its finished Result here exactly once. The lock covers
the append and every counter/tally update together, so a snapshot taken
after the run always satisfies total == alive + dead and the page type
tally sums to the number of results that carried page info.
"""

import threading
from collections import Counter
from typing import List

from subprobe.util.types import Result, RunSummary


class ResultAccumulator:
    """Thread-safe store for completed results and running totals."""

    def __init__(self):
        self._lock = threading.Lock()
        self._results: List[Result] = []
        self._alive = 0
        self._dead = 0
        self._screenshots = 0
        self._page_types: Counter = Counter()

    def add(self, result: Result) -> None:
        """Record a finished result. Ownership passes to the accumulator."""
        with self._lock:
            self._results.append(result)
            if result.alive:
                self._alive += 1
            else:
                self._dead += 1
            if result.page_info is not None:
                self._page_types[result.page_info.type] += 1
            if result.screenshot:
                self._screenshots += 1

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)

    def results(self) -> List[Result]:
        """Results in the order they completed."""
        with self._lock:
            return list(self._results)

    def snapshot(self, duration: float = 0.0) -> RunSummary:
        """Summary over everything added so far.

        Only meaningful once the run has finished - mid-run values are a
        moving target.
        """
        with self._lock:
            return RunSummary(
                total=len(self._results),
                alive=self._alive,
                dead=self._dead,
                page_types=dict(self._page_types),
                screenshots=self._screenshots,
                duration=duration,
            )
