"""
Shared fixtures and fakes for the curated_sync tests.

No network: NexusClient is exercised through FakeSession (an aiohttp
stand-in) and run_sync through FakeClient (a NexusClient stand-in).
"""

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "dags"))

from curated_sync.config import SyncConfig
from curated_sync.nexus_client import FetchedRecord, FetchResult, RateLimitError

BASE = "https://api.nexusmods.com/v1/games/nomanssky/mods"


# ══════════════════════════════════════════════════════════════════════════════
# aiohttp stand-ins
# ══════════════════════════════════════════════════════════════════════════════

class FakeResponse:
    def __init__(self, status: int, payload=None):
        self.status = status
        self._payload = payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def json(self, content_type=None):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """routes: url → (status, payload) or an exception raised on get()."""

    def __init__(self, routes: dict):
        self.routes = routes
        self.requested: list[str] = []

    def get(self, url):
        self.requested.append(url)
        route = self.routes.get(url)
        if isinstance(route, Exception):
            raise route
        if route is None:
            return FakeResponse(404)
        status, payload = route
        return FakeResponse(status, payload)


# ══════════════════════════════════════════════════════════════════════════════
# NexusClient stand-in
# ══════════════════════════════════════════════════════════════════════════════

class FakeClient:
    """
    infos: mod_id → info dict (missing → info fetch fails).
    Counts calls like the real client: 1 for info, +2 when info succeeds.
    """

    def __init__(self, infos=None, files=None, changelogs=None, rate_limit_on=()):
        self.infos = infos or {}
        self.files = files or {}
        self.changelogs = changelogs or {}
        self.rate_limit_on = set(rate_limit_on)
        self.call_count = 0
        self.fetched: list[str] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def fetch_record(self, mod_id):
        self.fetched.append(mod_id)
        self.call_count += 1
        if mod_id in self.rate_limit_on:
            raise RateLimitError(f"{BASE}/{mod_id}.json")
        info = self.infos.get(mod_id)
        if info is None:
            return None
        self.call_count += 2
        return FetchedRecord(
            mod_id=mod_id,
            info=info,
            files=FetchResult(self.files.get(mod_id, [])),
            changelogs=FetchResult(self.changelogs.get(mod_id, {})),
        )


# ══════════════════════════════════════════════════════════════════════════════
# Builders & fixtures
# ══════════════════════════════════════════════════════════════════════════════

def make_info(mod_id, **overrides) -> dict:
    """A Nexus mod info payload with the fields the catalog keeps plus noise."""
    base = {
        "mod_id": int(mod_id),
        "name": f"Mod {mod_id}",
        "summary": "A test mod",
        "version": "1.0",
        "picture_url": f"https://staticdelivery.nexusmods.com/{mod_id}.png",
        "author": "tester",
        "mod_downloads": 100,
        "endorsement_count": 10,
        "updated_timestamp": 5,
        "created_timestamp": 1,
        "description": "Long description",
        "uploaded_by": "ignored",
    }
    base.update(overrides)
    return base


def make_record(mod_id, **overrides) -> dict:
    """A complete catalog record as a previous run would have written it."""
    info = make_info(mod_id)
    info.pop("uploaded_by")
    record = {
        **info,
        "state": "normal",
        "warningMessage": "",
        "files": [{"file_id": 1, "name": "main"}],
        "changelogs": {"1.0": ["Initial release"]},
    }
    record.update(overrides)
    return record


def write_json(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def config(tmp_path) -> SyncConfig:
    return SyncConfig(
        api_key="test-key",
        overlay_path=tmp_path / "mod_warnings.json",
        catalog_path=tmp_path / "curated" / "curated_list.json",
        inter_batch_delay=0,
    )
