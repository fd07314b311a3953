"""Core data types and enums used across the prober.

These types make probe outcomes explicit and consistent.
No magic strings floating around - every failure reason has a defined meaning.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, Optional


class ConfigError(ValueError):
    """Raised when a probe configuration value is out of range."""


class FailureReason(Enum):
    """Standardized diagnostic messages for dead results.

    Makes analysis easier - we can aggregate by reason across all domains.
    """
    INVALID_DOMAIN = "invalid domain"
    TIMEOUT = "timeout"
    DNS_ERROR = "dns error"
    CONNECTION_REFUSED = "connection refused"
    TLS_ERROR = "tls error"
    TOO_MANY_REDIRECTS = "too many redirects"
    CONNECTION_ERROR = "connection error"


class ScreenshotMode(Enum):
    """When the screenshot agent is invoked for a domain."""
    OFF = "off"
    ALL = "all"
    ALIVE = "alive"


UNKNOWN_PAGE_TYPE = "unknown"


@dataclass(frozen=True)
class PageInfo:
    """Extracted title and coarse page classification for an alive domain."""
    type: str = UNKNOWN_PAGE_TYPE
    title: str = ""


@dataclass
class Result:
    """Outcome of probing a single domain.

    This is our atomic unit of measurement. Every input domain produces exactly one.
    alive=False means status is 0 (no response) or outside 200..399, and page_info is None.
    """
    domain: str
    alive: bool = False
    status: int = 0
    status_text: str = ""
    response_time: float = 0.0  # seconds
    page_info: Optional[PageInfo] = None
    screenshot: str = ""
    message: str = ""
    url: str = ""

    @property
    def title(self) -> str:
        return self.page_info.title if self.page_info else ""

    @property
    def page_type(self) -> str:
        return self.page_info.type if self.page_info else ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for CSV/Excel/HTML output."""
        return {
            'domain': self.domain,
            'alive': self.alive,
            'status_text': self.status_text,
            'status': self.status,
            'response_time_ms': round(self.response_time * 1000, 2),
            'page_type': self.page_type,
            'title': self.title,
            'message': self.message,
            'screenshot': self.screenshot,
            'url': self.url,
        }


@dataclass
class RunSummary:
    """Aggregate statistics over a completed batch of results.

    Derived by the accumulator - never mutated outside the accumulation step.
    """
    total: int = 0
    alive: int = 0
    dead: int = 0
    page_types: Dict[str, int] = field(default_factory=dict)
    screenshots: int = 0
    duration: float = 0.0  # seconds

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for run metadata."""
        return {
            'total': self.total,
            'alive': self.alive,
            'dead': self.dead,
            'page_types': dict(self.page_types),
            'screenshots': self.screenshots,
            'duration_seconds': round(self.duration, 2),
        }


@dataclass
class ProbeConfig:
    """Runtime configuration for the prober.

    Values come from .env / environment with sane defaults, CLI flags override.
    """
    workers: int = 50
    timeout: float = 10.0
    extract_info: bool = False
    screenshot_mode: ScreenshotMode = ScreenshotMode.OFF
    screenshot_dir: str = "screenshots"

    # Output
    out_dir: str = "out"
    enable_csv: bool = True
    enable_excel: bool = False
    enable_html: bool = False
    only_alive: bool = False

    # HTTP tuning
    max_body_bytes: int = 2 * 1024 * 1024
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0 Safari/537.36 subprobe/1.0"
    )
    rules_path: Optional[str] = None
    progress_interval: float = 0.5
    show_progress: bool = True

    def __post_init__(self):
        """Normalize the screenshot mode and reject values the runner can't honor."""
        if not isinstance(self.screenshot_mode, ScreenshotMode):
            try:
                self.screenshot_mode = ScreenshotMode(str(self.screenshot_mode).lower())
            except ValueError:
                raise ConfigError(
                    f"screenshot_mode must be one of "
                    f"{[m.value for m in ScreenshotMode]}, got {self.screenshot_mode!r}"
                )
        if self.workers < 1:
            raise ConfigError(f"workers must be >= 1, got {self.workers}")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be > 0, got {self.timeout}")
        if self.progress_interval <= 0:
            raise ConfigError(f"progress_interval must be > 0, got {self.progress_interval}")

    @property
    def screenshots_enabled(self) -> bool:
        return self.screenshot_mode is not ScreenshotMode.OFF

    def to_dict(self) -> dict:
        """Convert config to dict for serialization."""
        return {
            'workers': self.workers,
            'timeout': self.timeout,
            'extract_info': self.extract_info,
            'screenshot_mode': self.screenshot_mode.value,
            'only_alive': self.only_alive,
            'max_body_bytes': self.max_body_bytes,
            'rules_path': self.rules_path,
        }
