"""
dags/curated_sync/overlay.py

Curation overlay — the operator-maintained list of tracked mods.

Input file (mod_warnings.json):
[
    {"id": "10"},
    {"id": 20, "state": "broken", "warningMessage": "Crashes on load"},
    {"id": "", "state": "normal"}          ← template row, ignored
]

Only `id` is required. Ids are normalized with str() + strip() so numeric
ids from hand-edited files key the same way as the catalog's mod_id.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from curated_sync.config import ConfigError

# ── Logging ──────────────────────────────────────────────────────────────────
logger = logging.getLogger(__name__)

DEFAULT_STATE = "normal"
DEFAULT_WARNING_MESSAGE = ""


@dataclass(frozen=True)
class TrackedEntry:
    mod_id: str
    state: str = DEFAULT_STATE
    warning_message: str = DEFAULT_WARNING_MESSAGE


def _normalize_id(raw) -> str:
    """str() + strip(); None becomes the empty string."""
    if raw is None:
        return ""
    return str(raw).strip()


def _entry_from_dict(item: dict) -> Optional[TrackedEntry]:
    mod_id = _normalize_id(item.get("id"))
    if not mod_id:
        return None
    state = item.get("state")
    message = item.get("warningMessage")
    return TrackedEntry(
        mod_id=mod_id,
        state=str(state) if state else DEFAULT_STATE,
        warning_message=str(message) if message else DEFAULT_WARNING_MESSAGE,
    )


def load_overlay(path: Path) -> list[TrackedEntry]:
    """
    Load the tracked-mod list. Raises ConfigError if the file is missing,
    not valid JSON, or not a JSON list. Blank ids and non-object rows are
    skipped; a repeated id keeps its first occurrence.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Curation file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as fh:
            raw = json.load(fh)
    except ValueError as exc:  # JSONDecodeError, UnicodeDecodeError
        raise ConfigError(f"Curation file {path} is not valid UTF-8 JSON: {exc}")
    except OSError as exc:
        raise ConfigError(f"Could not read curation file {path}: {exc}")

    if not isinstance(raw, list):
        raise ConfigError(f"Curation file {path} must contain a JSON list")

    entries: list[TrackedEntry] = []
    seen: set[str] = set()
    skipped = 0

    for item in raw:
        if not isinstance(item, dict):
            skipped += 1
            continue
        entry = _entry_from_dict(item)
        if entry is None:
            skipped += 1
            continue
        if entry.mod_id in seen:
            logger.warning("Duplicate mod id %s in %s — keeping the first entry.", entry.mod_id, path)
            continue
        seen.add(entry.mod_id)
        entries.append(entry)

    if skipped:
        logger.debug("Skipped %d blank or malformed curation rows.", skipped)
    logger.info("Loaded %d tracked mods from %s", len(entries), path)
    return entries


def index_overlay(entries: list[TrackedEntry]) -> dict[str, TrackedEntry]:
    """Map mod_id → TrackedEntry."""
    return {e.mod_id: e for e in entries}


def lookup(index: dict[str, TrackedEntry], mod_id) -> Optional[TrackedEntry]:
    """Return the tracked entry for mod_id (numeric ids allowed), or None."""
    return index.get(_normalize_id(mod_id))
