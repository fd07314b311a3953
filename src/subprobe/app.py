"""Command-line entry point.

Reads the domain list, resolves configuration (CLI flag > environment /
.env > default), runs one probing pass, prints the summary and writes the
requested reports.

Usage:
    subprobe -f domains.txt --info --excel --html
    subprobe -d a.example.com -d b.example.com -w 20 -t 5
"""

import argparse
import asyncio
import dataclasses
import logging
import sys
from pathlib import Path
from typing import List, Optional

from subprobe import __version__
from subprobe.util.config import load_config
from subprobe.util.io import read_text_lines
from subprobe.util.log import setup_logging
from subprobe.util.types import ConfigError, ProbeConfig, ScreenshotMode
from subprobe.scanner.runner import ProbeRunner
from subprobe.scanner.output.summary import print_summary
from subprobe.scanner.output.writer import OutputWriter

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_OUTPUT_ERROR = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="subprobe",
        description="Probe subdomains over HTTP(S), classify pages and write reports.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Settings not given on the command line are read from the environment or a
.env file (WORKERS, HTTP_TIMEOUT, EXTRACT_INFO, SCREENSHOT_MODE, OUT_DIR, ...).

EXAMPLES:
  subprobe -f subdomains.txt --info
  subprobe -f subdomains.txt --screenshot-alive --excel --html --only-alive
        """
    )

    src = ap.add_argument_group("input")
    src.add_argument("-f", "--file", type=str, default=None,
                     help="File with one domain per line ('#' comments allowed).")
    src.add_argument("-d", "--domain", action="append", default=[],
                     help="Domain to probe (repeatable).")

    probe = ap.add_argument_group("probing")
    probe.add_argument("-w", "--workers", type=int, default=None,
                       help="Maximum concurrent checks (default: 50).")
    probe.add_argument("-t", "--timeout", type=float, default=None,
                       help="Per-request timeout in seconds (default: 10).")
    probe.add_argument("--info", action="store_true", default=None,
                       help="Extract page title and page type for alive domains.")
    probe.add_argument("--rules", type=str, default=None,
                       help="JSON file with page type rules (replaces the defaults).")
    shots = probe.add_mutually_exclusive_group()
    shots.add_argument("--screenshot", action="store_const", const=ScreenshotMode.ALL,
                       dest="screenshot_mode", help="Screenshot every domain.")
    shots.add_argument("--screenshot-alive", action="store_const", const=ScreenshotMode.ALIVE,
                       dest="screenshot_mode", help="Screenshot alive domains only.")
    probe.add_argument("--screenshot-dir", type=str, default=None,
                       help="Where screenshots are saved (default: screenshots).")

    out = ap.add_argument_group("output")
    out.add_argument("-o", "--out-dir", type=str, default=None,
                     help="Base output directory (default: out).")
    out.add_argument("--no-csv", action="store_true",
                     help="Don't write results.csv.")
    out.add_argument("--excel", action="store_true", default=None,
                     help="Write results.xlsx.")
    out.add_argument("--html", action="store_true", default=None,
                     help="Write report.html.")
    out.add_argument("--only-alive", action="store_true", default=None,
                     help="Only include alive domains in Excel/HTML output.")

    misc = ap.add_argument_group("misc")
    misc.add_argument("--env-file", type=str, default=None,
                      help="Explicit .env file to load.")
    misc.add_argument("--no-progress", action="store_true",
                      help="Don't show the progress bar.")
    misc.add_argument("--log-file", type=str, default=None,
                      help="Also write logs to this file.")
    misc.add_argument("-v", "--verbose", action="store_true",
                      help="Debug logging.")
    misc.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return ap


def _stdout_is_tty() -> bool:
    """The progress bar only makes sense on an interactive terminal."""
    isatty = getattr(sys.stdout, 'isatty', None)
    try:
        return bool(isatty and isatty())
    except ValueError:
        # closed stream
        return False


def apply_args(config: ProbeConfig, args: argparse.Namespace) -> ProbeConfig:
    """Overlay CLI flags on the env-derived config. Re-validates the result."""
    overrides = {}
    if args.workers is not None:
        overrides['workers'] = args.workers
    if args.timeout is not None:
        overrides['timeout'] = args.timeout
    if args.info:
        overrides['extract_info'] = True
    if args.rules:
        overrides['rules_path'] = args.rules
    if args.screenshot_mode is not None:
        overrides['screenshot_mode'] = args.screenshot_mode
    if args.screenshot_dir:
        overrides['screenshot_dir'] = args.screenshot_dir
    if args.out_dir:
        overrides['out_dir'] = args.out_dir
    if args.no_csv:
        overrides['enable_csv'] = False
    if args.excel:
        overrides['enable_excel'] = True
    if args.html:
        overrides['enable_html'] = True
    if args.only_alive:
        overrides['only_alive'] = True
    if args.no_progress or not _stdout_is_tty():
        overrides['show_progress'] = False

    return dataclasses.replace(config, **overrides)


def collect_domains(args: argparse.Namespace) -> List[str]:
    """Domains from --file then --domain, input order preserved, no dedup."""
    domains = []
    if args.file:
        domains.extend(read_text_lines(Path(args.file)))
    domains.extend(d.strip() for d in args.domain if d.strip())
    return domains


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(
        log_file=Path(args.log_file) if args.log_file else None,
        level=logging.DEBUG if args.verbose else logging.INFO
    )

    if not args.file and not args.domain:
        parser.print_usage(sys.stderr)
        print("Error: give a domain list with -f/--file or at least one -d/--domain", file=sys.stderr)
        return EXIT_USAGE

    try:
        config = apply_args(load_config(args.env_file), args)
    except ConfigError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return EXIT_USAGE

    try:
        domains = collect_domains(args)
    except OSError as e:
        print(f"Error: cannot read domain list: {e}", file=sys.stderr)
        return EXIT_USAGE

    try:
        runner = ProbeRunner(config)
    except (OSError, ValueError) as e:
        print(f"Error: cannot load page rules: {e}", file=sys.stderr)
        return EXIT_USAGE

    results, summary = asyncio.run(runner.run(domains))
    print_summary(summary, config)

    try:
        writer = OutputWriter(out_dir=config.out_dir)
        written = writer.write_all(results, summary, config)
    except OSError as e:
        logger.error(f"Failed to write output: {e}")
        return EXIT_OUTPUT_ERROR

    for path in written:
        print(f"✓ {path}")
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
