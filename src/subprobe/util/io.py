"""File helpers for domain lists and report files.

Reads are strict (a missing domain list is a usage error), writes log and
re-raise so the CLI can turn them into an exit code.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)


def ensure_dir(path: Path) -> Path:
    """Create the directory (and parents) if missing. Returns it as a Path."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def write_json(path: Path, data: Any, indent: int = 2) -> None:
    """Dump data as UTF-8 JSON; non-ASCII titles are kept readable."""
    path = Path(path)
    ensure_dir(path.parent)

    try:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=indent, default=str, ensure_ascii=False)
    except OSError as e:
        logger.error(f"Failed to write JSON to {path}: {e}")
        raise
    logger.debug(f"Wrote JSON to {path}")


def write_csv(path: Path, rows: Sequence[Dict[str, Any]],
              fieldnames: Optional[List[str]] = None) -> None:
    """Write dict rows as CSV.

    Columns come from fieldnames, else from the first row; keys outside the
    columns are dropped. An empty run still gets a header line when the
    columns are known. UTF-8 with BOM so spreadsheet apps detect non-ASCII.
    """
    path = Path(path)
    ensure_dir(path.parent)

    if fieldnames is None:
        if not rows:
            logger.warning(f"No rows and no columns for {path} - nothing written")
            return
        fieldnames = list(rows[0].keys())

    try:
        with open(path, 'w', newline='', encoding='utf-8-sig') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames, extrasaction='ignore')
            writer.writeheader()
            writer.writerows(rows)
    except OSError as e:
        logger.error(f"Failed to write CSV to {path}: {e}")
        raise
    logger.debug(f"Wrote {len(rows)} rows to {path}")


def _domain_lines(lines: Iterable[str]) -> List[str]:
    stripped = (line.strip() for line in lines)
    return [line for line in stripped if line and not line.startswith('#')]


def read_text_lines(path: Path) -> List[str]:
    """Domain list file -> entries in file order.

    Blank lines and '#' comments are skipped, duplicates are kept.
    Raises OSError (FileNotFoundError included) if the file can't be read.
    """
    with open(Path(path), 'r', encoding='utf-8-sig', errors='replace') as f:
        entries = _domain_lines(f)
    logger.debug(f"Read {len(entries)} entries from {path}")
    return entries
