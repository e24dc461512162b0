"""
dags/curated_sync/nexus_client.py

Nexus Mods API access for the curated catalog sync.

Per-mod reads (info, files, changelogs) go through NexusClient, an async
wrapper around one aiohttp session so a batch of mods can be fetched
concurrently. The once-per-run change-signal query (mods/updated.json)
is a plain blocking requests call made before any batch starts.

Failure policy:
    info        → None on any failure; run_sync keeps the previous record or drops the mod
    files       → degraded to []
    changelogs  → degraded to {}
    HTTP 429    → RateLimitError on any call, never retried here
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

import aiohttp
import requests

from curated_sync.config import SyncConfig

# ── Logging ──────────────────────────────────────────────────────────────────
logger = logging.getLogger(__name__)

# ── Request settings ─────────────────────────────────────────────────────────
HEADERS = {
    "Accept": "application/json",
    "User-Agent": "curated-sync/1.0",
}
RATE_LIMIT_STATUS = 429


class RateLimitError(Exception):
    """Upstream answered 429. The run must stop; the caller decides what to flush."""

    def __init__(self, url: str):
        super().__init__(f"Rate limited by Nexus API on {url}")
        self.url = url


@dataclass(frozen=True)
class FetchResult:
    """Either the fetched value (ok=True) or the degraded default with the error."""
    value: Any
    ok: bool = True
    error: Optional[str] = None


@dataclass(frozen=True)
class FetchedRecord:
    mod_id: str
    info: dict
    files: FetchResult
    changelogs: FetchResult


def _auth_headers(api_key: str) -> dict:
    return {**HEADERS, "apikey": api_key}


class NexusClient:
    """
    Async Nexus client. Use as an async context manager; a session can be
    injected for tests, in which case the caller owns its lifecycle.
    """

    def __init__(self, config: SyncConfig, session=None):
        self._config = config
        self._session = session
        self._owns_session = session is None
        self.call_count = 0

    async def __aenter__(self) -> "NexusClient":
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self._config.request_timeout)
            self._session = aiohttp.ClientSession(
                headers=_auth_headers(self._config.api_key),
                timeout=timeout,
            )
        return self

    async def __aexit__(self, *exc) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _mod_url(self, mod_id: str, suffix: str = "") -> str:
        return (
            f"{self._config.base_url}/games/{self._config.game_domain}"
            f"/mods/{mod_id}{suffix}.json"
        )

    async def _get_json(self, url: str) -> tuple[Optional[Any], Optional[str]]:
        """
        GET url and decode JSON. Returns (payload, None) on success or
        (None, reason) on failure. Raises RateLimitError on 429.
        """
        self.call_count += 1
        try:
            async with self._session.get(url) as resp:
                if resp.status == RATE_LIMIT_STATUS:
                    raise RateLimitError(url)
                if resp.status != 200:
                    return None, f"HTTP {resp.status}"
                return await resp.json(content_type=None), None
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            return None, f"{type(exc).__name__}: {exc}"

    async def fetch_info(self, mod_id: str) -> Optional[dict]:
        """Mod summary (name, version, timestamps, ...) or None on failure."""
        payload, error = await self._get_json(self._mod_url(mod_id))
        if error:
            logger.error("[Mod %s] Info fetch failed: %s", mod_id, error)
            return None
        if not isinstance(payload, dict):
            logger.error("[Mod %s] Info fetch returned a malformed body.", mod_id)
            return None
        return payload

    async def fetch_files(self, mod_id: str) -> FetchResult:
        """File listing; degrades to [] on failure."""
        payload, error = await self._get_json(self._mod_url(mod_id, "/files"))
        if error is None and isinstance(payload, dict) and isinstance(payload.get("files"), list):
            return FetchResult(payload["files"])
        error = error or "malformed files body"
        logger.warning("[Mod %s] Files fetch failed: %s", mod_id, error)
        return FetchResult([], ok=False, error=error)

    async def fetch_changelogs(self, mod_id: str) -> FetchResult:
        """Changelog map keyed by version; degrades to {} on failure."""
        payload, error = await self._get_json(self._mod_url(mod_id, "/changelogs"))
        if error is None:
            if isinstance(payload, dict):
                return FetchResult(payload)
            # Mods without any changelog come back as an empty JSON array.
            if payload == []:
                return FetchResult({})
            error = "malformed changelogs body"
        logger.warning("[Mod %s] Changelog fetch failed: %s", mod_id, error)
        return FetchResult({}, ok=False, error=error)

    async def fetch_record(self, mod_id: str) -> Optional[FetchedRecord]:
        """
        Info first; files and changelogs only when info succeeded, issued
        concurrently. Returns None when info failed.
        """
        info = await self.fetch_info(mod_id)
        if info is None:
            return None

        files, changelogs = await asyncio.gather(
            self.fetch_files(mod_id),
            self.fetch_changelogs(mod_id),
            return_exceptions=True,
        )
        # Let both calls settle before surfacing a rate limit.
        for outcome in (files, changelogs):
            if isinstance(outcome, BaseException):
                raise outcome
        return FetchedRecord(mod_id=mod_id, info=info, files=files, changelogs=changelogs)


# ══════════════════════════════════════════════════════════════════════════════
# Change signal
# ══════════════════════════════════════════════════════════════════════════════

def fetch_change_signal(config: SyncConfig) -> Optional[set[str]]:
    """
    Ids of mods changed upstream within config.recency_window.

    Returns set() when the window is disabled, None when the query failed
    (the classifier then refreshes every cached mod). Raises RateLimitError
    on 429.
    """
    if config.recency_window is None:
        logger.info("Change signal disabled — only new or incomplete mods will be fetched.")
        return set()

    url = f"{config.base_url}/games/{config.game_domain}/mods/updated.json"
    try:
        resp = requests.get(
            url,
            params={"period": config.recency_window},
            headers=_auth_headers(config.api_key),
            timeout=config.request_timeout,
        )
    except requests.exceptions.RequestException as exc:
        logger.warning("Change signal request failed: %s — refreshing all cached mods.", exc)
        return None

    if resp.status_code == RATE_LIMIT_STATUS:
        raise RateLimitError(url)
    if resp.status_code != 200:
        logger.warning(
            "Change signal HTTP %d — refreshing all cached mods.", resp.status_code
        )
        return None

    try:
        data = resp.json()
    except ValueError as exc:
        logger.warning("Change signal body is not JSON (%s) — refreshing all cached mods.", exc)
        return None

    if not isinstance(data, list):
        logger.warning("Change signal body is not a list — refreshing all cached mods.")
        return None

    changed = {
        str(item["mod_id"]).strip()
        for item in data
        if isinstance(item, dict) and item.get("mod_id") is not None
    }
    logger.info("Change signal (%s): %d mods updated upstream.", config.recency_window, len(changed))
    return changed
