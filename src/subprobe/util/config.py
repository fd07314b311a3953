"""Load configuration from .env file and environment.

Single source of truth for defaults. CLI flags are applied on top by the app.
Every setting has a default, so a missing .env is fine.
"""

import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

from .types import ProbeConfig, ConfigError


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


def find_env_file() -> Optional[Path]:
    """Return the first .env found in the working directory or the repo root."""
    candidates = [Path.cwd() / ".env", get_repo_root() / ".env"]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def load_config(env_file: Optional[Path] = None) -> ProbeConfig:
    """Load configuration from .env (if present) and the environment.

    Returns a validated ProbeConfig. Raises ConfigError on malformed values.
    """
    env_file = Path(env_file) if env_file else find_env_file()
    if env_file and env_file.exists():
        load_dotenv(env_file)

    defaults = ProbeConfig()

    return ProbeConfig(
        workers=_env_int("WORKERS", defaults.workers),
        timeout=_env_float("HTTP_TIMEOUT", defaults.timeout),
        extract_info=_env_bool("EXTRACT_INFO", defaults.extract_info),
        screenshot_mode=os.getenv("SCREENSHOT_MODE", defaults.screenshot_mode.value),
        screenshot_dir=os.getenv("SCREENSHOT_DIR", defaults.screenshot_dir),

        out_dir=os.getenv("OUT_DIR", defaults.out_dir),
        enable_csv=_env_bool("ENABLE_CSV", defaults.enable_csv),
        enable_excel=_env_bool("ENABLE_EXCEL", defaults.enable_excel),
        enable_html=_env_bool("ENABLE_HTML", defaults.enable_html),
        only_alive=_env_bool("ONLY_ALIVE", defaults.only_alive),

        max_body_bytes=_env_int("MAX_BODY_BYTES", defaults.max_body_bytes),
        user_agent=os.getenv("USER_AGENT") or defaults.user_agent,
        rules_path=os.getenv("PAGE_RULES_FILE") or None,
        progress_interval=_env_float("PROGRESS_INTERVAL", defaults.progress_interval),
    )


def get_repo_root() -> Path:
    """Return the repository root directory."""
    return Path(__file__).parent.parent.parent.parent
