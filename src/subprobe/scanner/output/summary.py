"""Console summary printed at the end of a run."""

import sys
from typing import IO, Optional

from subprobe.util.types import ProbeConfig, RunSummary, ScreenshotMode


def format_summary(summary: RunSummary, config: ProbeConfig) -> str:
    lines = [
        "",
        "Results (summary):",
        "-" * 40,
        f"Total: {summary.total} domains, {summary.alive} alive, {summary.dead} unreachable",
    ]

    if config.extract_info and summary.page_types:
        lines.append("Page types:")
        for page_type, count in sorted(summary.page_types.items(), key=lambda kv: (-kv[1], kv[0])):
            lines.append(f"  {page_type}: {count}")

    if config.screenshot_mode is ScreenshotMode.ALIVE:
        lines.append(f"Screenshots of alive sites: {summary.screenshots}")
    elif config.screenshot_mode is ScreenshotMode.ALL:
        lines.append(f"Screenshots: {summary.screenshots}")

    lines.append(f"Elapsed: {summary.duration:.2f} s")
    return "\n".join(lines)


def print_summary(summary: RunSummary, config: ProbeConfig, file: Optional[IO] = None) -> None:
    print(format_summary(summary, config), file=file or sys.stdout)
