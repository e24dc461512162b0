"""
dags/curated_sync/config.py

Run configuration for the curated catalog sync.

Everything the scheduler and the Nexus client need is carried in one
SyncConfig value and passed in explicitly. load_config() builds it from
environment variables so the same code runs from the CLI script and from
the Airflow DAG (where the variables come from docker-compose).
"""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

# ── Logging ──────────────────────────────────────────────────────────────────
logger = logging.getLogger(__name__)

# ── Defaults ─────────────────────────────────────────────────────────────────
DEFAULT_BASE_URL = "https://api.nexusmods.com/v1"
DEFAULT_GAME_DOMAIN = "nomanssky"
DEFAULT_OVERLAY_PATH = "mod_warnings.json"
DEFAULT_CATALOG_PATH = "curated/curated_list.json"
DEFAULT_BATCH_SIZE = 5  # Mods fetched concurrently per batch
DEFAULT_BATCH_DELAY_SEC = 1.0  # Pause between batches (not after the last)
DEFAULT_RECENCY_WINDOW = "1w"  # Window for the updated.json change signal
DEFAULT_REQUEST_TIMEOUT = 30

# Nexus only accepts these period values on /mods/updated.json.
# The long forms are accepted for readability in env files.
RECENCY_WINDOWS = {
    "1d": "1d",
    "1 day": "1d",
    "1w": "1w",
    "1 week": "1w",
    "1m": "1m",
    "1 month": "1m",
}
DISABLED_WINDOW_VALUES = {"", "none", "off", "disabled"}


class ConfigError(Exception):
    """Raised when required configuration or the curation input is unusable."""


@dataclass(frozen=True)
class SyncConfig:
    api_key: str
    game_domain: str = DEFAULT_GAME_DOMAIN
    overlay_path: Path = Path(DEFAULT_OVERLAY_PATH)
    catalog_path: Path = Path(DEFAULT_CATALOG_PATH)
    batch_size: int = DEFAULT_BATCH_SIZE
    inter_batch_delay: float = DEFAULT_BATCH_DELAY_SEC
    recency_window: Optional[str] = DEFAULT_RECENCY_WINDOW
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    base_url: str = DEFAULT_BASE_URL

    def __post_init__(self):
        if not self.api_key or not self.api_key.strip():
            raise ConfigError("NEXUS_API_KEY environment variable not set!")
        if self.batch_size < 1:
            raise ConfigError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.inter_batch_delay < 0:
            raise ConfigError(
                f"inter_batch_delay must be >= 0, got {self.inter_batch_delay}"
            )
        # Normalize here so callers can pass "1 week" as well as "1w".
        object.__setattr__(
            self, "recency_window", normalize_recency_window(self.recency_window)
        )

    def with_overrides(self, **changes) -> "SyncConfig":
        """Return a copy with some fields replaced (the DAG pins container paths this way)."""
        return replace(self, **changes)


def normalize_recency_window(value: Optional[str]) -> Optional[str]:
    """
    Map a user-supplied recency window to the Nexus period code.
    Returns None when the change signal is disabled.
    """
    if value is None:
        return None
    key = str(value).strip().lower()
    if key in DISABLED_WINDOW_VALUES:
        return None
    if key not in RECENCY_WINDOWS:
        raise ConfigError(
            f"Unsupported recency window '{value}'. "
            f"Use one of: {', '.join(sorted(RECENCY_WINDOWS))} or 'none'."
        )
    return RECENCY_WINDOWS[key]


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got '{raw}'")


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got '{raw}'")


def load_config(environ: Optional[Mapping[str, str]] = None) -> SyncConfig:
    """
    Build a SyncConfig from environment variables.
    Raises ConfigError when NEXUS_API_KEY is missing or a value is malformed.
    """
    env = os.environ if environ is None else environ

    config = SyncConfig(
        api_key=env.get("NEXUS_API_KEY", ""),
        game_domain=env.get("NEXUS_GAME_DOMAIN") or DEFAULT_GAME_DOMAIN,
        overlay_path=Path(env.get("CURATED_OVERLAY_PATH") or DEFAULT_OVERLAY_PATH),
        catalog_path=Path(env.get("CURATED_CATALOG_PATH") or DEFAULT_CATALOG_PATH),
        batch_size=_int_env(env, "SYNC_BATCH_SIZE", DEFAULT_BATCH_SIZE),
        inter_batch_delay=_float_env(env, "SYNC_BATCH_DELAY_SEC", DEFAULT_BATCH_DELAY_SEC),
        recency_window=env.get("SYNC_RECENCY_WINDOW", DEFAULT_RECENCY_WINDOW),
        request_timeout=_float_env(env, "SYNC_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
        base_url=(env.get("NEXUS_BASE_URL") or DEFAULT_BASE_URL).rstrip("/"),
    )
    logger.debug(
        "Loaded config: game=%s batch_size=%d delay=%.2fs window=%s",
        config.game_domain, config.batch_size,
        config.inter_batch_delay, config.recency_window,
    )
    return config
