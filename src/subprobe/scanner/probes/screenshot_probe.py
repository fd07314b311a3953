"""Screenshot probe - pluggable visual capture per domain.

The runner only depends on the ScreenshotAgent contract:

    path, ok = await agent.capture(domain)

A failed capture is ("", False) and never an exception, so a broken
browser can't cost us the probe result. Capture runs inside the calling
task's concurrency slot.
"""

import abc
import logging
import re
from pathlib import Path
from typing import Optional, Set, Tuple

from subprobe.util.io import ensure_dir
from subprobe.scanner.normalization import parse_target

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r'[^A-Za-z0-9._-]+')


def screenshot_filename(domain: str) -> str:
    """Filesystem-safe PNG name derived from the domain."""
    safe = _UNSAFE_CHARS.sub('_', domain.strip()).strip('._') or 'domain'
    return f"{safe[:150]}.png"


class ScreenshotAgent(abc.ABC):
    """Contract every screenshot backend satisfies."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    @abc.abstractmethod
    async def capture(self, domain: str, url: Optional[str] = None) -> Tuple[str, bool]:
        """Capture a snapshot of the domain's page.

        Args:
            domain: Domain as given in the input list
            url: URL the probe ended up at, if any (preferred over guessing)

        Returns (file_path, True) on success, ("", False) on any failure.
        """


class NullScreenshotAgent(ScreenshotAgent):
    """Agent used when screenshots are disabled."""

    async def capture(self, domain: str, url: Optional[str] = None) -> Tuple[str, bool]:
        return "", False


class PlaywrightScreenshotAgent(ScreenshotAgent):
    """Headless Chromium screenshots through Playwright.

    One browser per run, one page per capture. If Playwright is missing or
    Chromium won't launch, every capture reports failure and we warn once.
    Install with: pip install subprobe[screenshot] && playwright install chromium
    """

    def __init__(self, screenshot_dir: str = "screenshots", timeout: float = 10.0,
                 viewport: Tuple[int, int] = (1366, 768)):
        self.screenshot_dir = Path(screenshot_dir)
        self.timeout = timeout
        self.viewport = viewport
        self._playwright = None
        self._browser = None
        self._unavailable = False
        self._used_names: Set[str] = set()

    async def __aenter__(self):
        """Launch the browser once for the whole run."""
        ensure_dir(self.screenshot_dir)
        try:
            from playwright.async_api import async_playwright

            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=True)
        except ImportError:
            logger.warning("playwright not installed - screenshots disabled "
                           "(pip install subprobe[screenshot])")
            self._unavailable = True
        except Exception as e:
            logger.warning(f"Could not launch headless Chromium - screenshots disabled: {e}")
            self._unavailable = True
            await self._shutdown()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self._shutdown()

    async def _shutdown(self):
        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as e:
                logger.debug(f"Error closing browser: {e}")
            self._browser = None
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.debug(f"Error stopping playwright: {e}")
            self._playwright = None

    def reserve_path(self, domain: str) -> Path:
        """Claim a file path for this capture.

        Duplicate input domains get -2, -3, ... suffixes so a later capture
        never overwrites an earlier one. Runs on the event loop thread only.
        """
        name = screenshot_filename(domain)
        stem, suffix = name[:-len(".png")], ".png"
        n = 1
        while name in self._used_names:
            n += 1
            name = f"{stem}-{n}{suffix}"
        self._used_names.add(name)
        return self.screenshot_dir / name

    async def capture(self, domain: str, url: Optional[str] = None) -> Tuple[str, bool]:
        if self._unavailable or self._browser is None:
            return "", False

        if not url:
            target = parse_target(domain)
            if target is None:
                return "", False
            url = target.url()

        path = self.reserve_path(domain)
        context = None
        try:
            context = await self._browser.new_context(
                viewport={'width': self.viewport[0], 'height': self.viewport[1]},
                ignore_https_errors=True
            )
            page = await context.new_page()
            await page.goto(url, timeout=self.timeout * 1000, wait_until="load")
            await page.screenshot(path=str(path))
        except Exception as e:
            logger.debug(f"Screenshot failed for {domain}: {type(e).__name__}: {e}")
            return "", False
        finally:
            if context is not None:
                try:
                    await context.close()
                except Exception as e:
                    logger.debug(f"Error closing browser context for {domain}: {e}")

        if not path.exists():
            return "", False
        logger.debug(f"Screenshot saved for {domain}: {path}")
        return str(path), True
