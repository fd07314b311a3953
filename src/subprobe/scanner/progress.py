"""Live progress display while checks are in flight.

The reporter runs as its own asyncio task on a fixed sampling interval,
independent of when checks complete. It only ever reads the shared
counter. It stops when the counter reaches the total or when the runner
calls stop() after the barrier, whichever comes first - and once it has
stopped it never writes again.
"""

import asyncio
import logging
import sys
from typing import IO, List, Optional

from tqdm import tqdm

from subprobe.util.concurrency import AtomicCounter

logger = logging.getLogger(__name__)

BAR_FORMAT = "{desc}: {percentage:.2f}% ({n}/{total}) - elapsed: {elapsed_s:.1f}s"


class ProgressHandle:
    """Control handle for a running reporter."""

    def __init__(self, task: Optional[asyncio.Task] = None,
                 stop_event: Optional[asyncio.Event] = None):
        self._task = task
        self._stop_event = stop_event
        self.samples: List[int] = []

    @property
    def done(self) -> bool:
        return self._task is None or self._task.done()

    async def stop(self) -> None:
        """Ask the reporter to finish and wait until it has."""
        if self._task is None:
            return
        if self._stop_event is not None:
            self._stop_event.set()
        await self._task


class ProgressReporter:
    """Samples a counter periodically and renders it with tqdm.

    Args:
        interval: Seconds between samples
        file: Where the bar is written (default stdout)
        enabled: False gives a handle that is already done
        desc: Label in front of the bar
    """

    def __init__(self, interval: float = 0.5, file: Optional[IO] = None,
                 enabled: bool = True, desc: str = "Progress"):
        self.interval = interval
        self.file = file
        self.enabled = enabled
        self.desc = desc

    def start(self, counter: AtomicCounter, total: int,
              start_time: Optional[float] = None) -> ProgressHandle:
        """Start sampling. Must be called from inside the running event loop.

        start_time is a time.time() value; the elapsed display counts from it.
        """
        if not self.enabled or total <= 0:
            # Nothing to report - and no division by zero
            return ProgressHandle()

        stop_event = asyncio.Event()
        handle = ProgressHandle(stop_event=stop_event)
        handle._task = asyncio.create_task(
            self._run(counter, total, start_time, stop_event, handle.samples)
        )
        return handle

    async def _run(self, counter: AtomicCounter, total: int,
                   start_time: Optional[float], stop_event: asyncio.Event,
                   samples: List[int]) -> None:
        try:
            bar = tqdm(
                total=total,
                desc=self.desc,
                file=self.file if self.file is not None else sys.stdout,
                bar_format=BAR_FORMAT,
                mininterval=0,
                leave=True,
            )
        except (OSError, ValueError) as e:
            logger.debug(f"Progress display unavailable: {type(e).__name__}: {e}")
            return
        if start_time is not None:
            bar.start_t = start_time

        # A broken output stream (closed pipe) ends the display, never the run
        try:
            while True:
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
                    stopped = True
                except asyncio.TimeoutError:
                    stopped = False

                sampled = counter.value
                samples.append(sampled)
                current = min(sampled, total)
                if current != bar.n:
                    bar.n = current
                    try:
                        bar.refresh()
                    except (OSError, ValueError) as e:
                        logger.debug(f"Progress display failed, stopping it: {type(e).__name__}: {e}")
                        break

                if stopped or current >= total:
                    break
        finally:
            try:
                bar.close()
            except (OSError, ValueError) as e:
                logger.debug(f"Progress display failed on close: {type(e).__name__}: {e}")
