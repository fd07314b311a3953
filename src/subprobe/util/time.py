"""Timestamp and duration utilities.

Simple helpers to keep time handling consistent across the prober.
"""

import time
from datetime import datetime
from typing import Optional


def now_local() -> datetime:
    return datetime.now()


def timestamp_str(dt: Optional[datetime] = None) -> str:
    """Format timestamp for filenames and logs.

    Returns: YYYYMMDD_HHMMSS format (filesystem-safe)
    """
    if dt is None:
        dt = now_local()
    return dt.strftime("%Y%m%d_%H%M%S")


def date_str(dt: Optional[datetime] = None) -> str:
    """Format date for directory names.

    Returns: YYYY-MM-DD format
    """
    if dt is None:
        dt = now_local()
    return dt.strftime("%Y-%m-%d")


def report_time_str(dt: Optional[datetime] = None) -> str:
    """Human-readable timestamp for report headers."""
    if dt is None:
        dt = now_local()
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def monotonic() -> float:
    return time.monotonic()


def elapsed_since(start: float) -> float:
    """Seconds elapsed since a monotonic() reading."""
    return time.monotonic() - start
