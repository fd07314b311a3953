"""Probe runner - drives one probing pass over a domain list.

This is where all the pieces come together. For every input domain,
inside one concurrency slot:
1. Probe (HTTPS, falling back to HTTP)
2. Inspect the page (title + type) if alive and extraction is on
3. Capture a screenshot if the mode asks for it
4. Hand the Result to the accumulator and bump the progress counter

Every domain produces exactly one Result. A crash inside one task is
contained and recorded as a dead Result for that domain; siblings keep going.
"""

import asyncio
import logging
import time
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from subprobe.util.types import (
    ProbeConfig, Result, RunSummary, PageInfo, ScreenshotMode,
)
from subprobe.util.time import monotonic, elapsed_since
from subprobe.util.concurrency import AtomicCounter, ConcurrencyController
from subprobe.scanner.accumulator import ResultAccumulator
from subprobe.scanner.progress import ProgressReporter
from subprobe.scanner.page_inspector import PageInspector
from subprobe.scanner.page_rules import load_rules
from subprobe.scanner.probes.http_probe import HTTPProbe
from subprobe.scanner.probes.screenshot_probe import (
    ScreenshotAgent, NullScreenshotAgent, PlaywrightScreenshotAgent,
)

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """Mutable state owned by one run. Created at start, dropped at the end."""
    counter: AtomicCounter = field(default_factory=AtomicCounter)
    accumulator: ResultAccumulator = field(default_factory=ResultAccumulator)
    start_time: float = field(default_factory=time.time)
    start_mono: float = field(default_factory=monotonic)


class ProbeRunner:
    """Orchestrates a complete probing pass.

    Collaborators can be injected (tests, alternative backends); anything
    not injected is built from the config and closed when the run ends.
    """

    def __init__(self,
                 config: ProbeConfig,
                 probe=None,
                 inspector: Optional[PageInspector] = None,
                 screenshot_agent: Optional[ScreenshotAgent] = None,
                 reporter: Optional[ProgressReporter] = None):
        """Initialize runner with configuration and optional collaborators."""
        self.config = config
        self.probe = probe
        self.screenshot_agent = screenshot_agent
        self.reporter = reporter or ProgressReporter(
            interval=config.progress_interval,
            enabled=config.show_progress
        )

        if inspector is not None:
            self.inspector = inspector
        elif config.extract_info:
            rules = load_rules(config.rules_path) if config.rules_path else None
            self.inspector = PageInspector(rules=rules)
        else:
            self.inspector = None

        self.last_context: Optional[RunContext] = None
        self.peak_concurrency = 0

    async def run(self, domains: Sequence[str]) -> Tuple[List[Result], RunSummary]:
        """Probe every domain once.

        Returns results in completion order plus the run summary.
        """
        domains = list(domains)
        ctx = RunContext()
        self.last_context = ctx

        logger.info("=" * 60)
        logger.info(f"Probing {len(domains)} domains "
                    f"(workers={self.config.workers}, timeout={self.config.timeout}s)")
        logger.info("=" * 60)

        controller = ConcurrencyController(max_workers=self.config.workers)
        progress = self.reporter.start(ctx.counter, len(domains), ctx.start_time)

        try:
            async with AsyncExitStack() as stack:
                probe = self.probe
                if probe is None:
                    probe = await stack.enter_async_context(HTTPProbe(
                        timeout=self.config.timeout,
                        read_body=self.config.extract_info,
                        max_body_bytes=self.config.max_body_bytes,
                        user_agent=self.config.user_agent,
                        connection_limit=self.config.workers
                    ))

                agent = self.screenshot_agent
                if agent is None:
                    agent = await stack.enter_async_context(self._build_screenshot_agent())

                tasks = [
                    self._probe_one(domain, probe, agent, controller, ctx)
                    for domain in domains
                ]

                # Barrier: every task has recorded its result past this point
                outcomes = await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            await progress.stop()

        for domain, outcome in zip(domains, outcomes):
            if isinstance(outcome, BaseException):
                # _probe_one records its own failures; this only fires if
                # recording itself blew up, so the domain has no result yet
                logger.error(f"Task for {domain!r} failed before recording: {outcome!r}")
                self._record(ctx, self._failure_result(domain, outcome, 0.0))

        self.peak_concurrency = controller.peak
        summary = ctx.accumulator.snapshot(duration=elapsed_since(ctx.start_mono))

        logger.info("=" * 60)
        logger.info("Probe Complete!")
        logger.info(f"Duration: {summary.duration:.1f}s")
        logger.info(f"Alive: {summary.alive}/{summary.total}, dead: {summary.dead}")
        logger.info("=" * 60)

        return ctx.accumulator.results(), summary

    def _build_screenshot_agent(self) -> ScreenshotAgent:
        if not self.config.screenshots_enabled:
            return NullScreenshotAgent()
        return PlaywrightScreenshotAgent(
            screenshot_dir=self.config.screenshot_dir,
            timeout=self.config.timeout
        )

    async def _probe_one(self, domain: str, probe, agent: ScreenshotAgent,
                         controller: ConcurrencyController, ctx: RunContext) -> Result:
        """Run the whole pipeline for one domain inside one concurrency slot."""
        async with controller.acquire():
            start = monotonic()
            try:
                result = await self._check(domain, probe, agent)
            except Exception as e:
                logger.error(f"Probe task for {domain!r} crashed: {e}", exc_info=True)
                result = self._failure_result(domain, e, elapsed_since(start))

            self._record(ctx, result)
            return result

    async def _check(self, domain: str, probe, agent: ScreenshotAgent) -> Result:
        outcome = await probe.check(domain)
        result = outcome.result

        if self.inspector is not None and result.alive:
            try:
                result.page_info = self.inspector.inspect(
                    outcome.body or b"",
                    content_type=outcome.content_type,
                    headers=outcome.headers
                )
            except Exception as e:
                logger.debug(f"Page inspection failed for {domain}: {type(e).__name__}: {e}")
                result.page_info = PageInfo()

        if self._wants_screenshot(result):
            try:
                path, ok = await agent.capture(domain, result.url or None)
            except Exception as e:
                logger.debug(f"Screenshot agent raised for {domain}: {type(e).__name__}: {e}")
                path, ok = "", False
            result.screenshot = path if ok else ""

        return result

    def _wants_screenshot(self, result: Result) -> bool:
        mode = self.config.screenshot_mode
        if mode is ScreenshotMode.ALL:
            return True
        if mode is ScreenshotMode.ALIVE:
            return result.alive
        return False

    @staticmethod
    def _record(ctx: RunContext, result: Result) -> None:
        ctx.accumulator.add(result)
        ctx.counter.increment()

    @staticmethod
    def _failure_result(domain: str, exc: BaseException, elapsed: float) -> Result:
        return Result(
            domain=domain,
            alive=False,
            status=0,
            status_text="error",
            response_time=elapsed,
            message=f"internal error: {type(exc).__name__}: {exc}"
        )


def run_probe(domains: Sequence[str], config: Optional[ProbeConfig] = None,
              **collaborators) -> Tuple[List[Result], RunSummary]:
    """Synchronous entry point: run one probing pass in a fresh event loop."""
    config = config or ProbeConfig()
    runner = ProbeRunner(config, **collaborators)
    return asyncio.run(runner.run(domains))
