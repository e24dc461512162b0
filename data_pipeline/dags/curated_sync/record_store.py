"""
dags/curated_sync/record_store.py

Record store — the previous run's curated_list.json, used as the cache.

Storage: local JSON file (curated/curated_list.json), a list of final
records. The whole list is rewritten at the end of every run; there are
no partial writes.
"""

import json
import logging
from pathlib import Path

# ── Logging ──────────────────────────────────────────────────────────────────
logger = logging.getLogger(__name__)

FILES_KEY = "files"
CHANGELOGS_KEY = "changelogs"


def load_records(path: Path) -> dict[str, dict]:
    """
    Return the cached catalog keyed by str(mod_id).
    A missing or unreadable file is not an error: first runs start empty.
    """
    path = Path(path)
    if not path.exists():
        logger.info("No previous cache found at %s — doing full fetch.", path)
        return {}

    try:
        with open(path, "r", encoding="utf-8") as fh:
            raw = json.load(fh)
    except (ValueError, OSError) as exc:  # JSONDecodeError, UnicodeDecodeError
        logger.warning("Could not read cache %s (%s) — doing full fetch.", path, exc)
        return {}

    if not isinstance(raw, list):
        logger.warning("Cache %s is not a JSON list — doing full fetch.", path)
        return {}

    records: dict[str, dict] = {}
    for record in raw:
        if not isinstance(record, dict) or record.get("mod_id") is None:
            continue
        records[str(record["mod_id"]).strip()] = record

    logger.info("Loaded %d mods from previous cache.", len(records))
    return records


def save_records(path: Path, records: list[dict]) -> None:
    """Persist the full catalog, creating the parent directory if needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(records, fh, indent=2, ensure_ascii=False)
    logger.debug("Catalog saved to %s", path)


def is_complete(record: dict) -> bool:
    """
    A cached record is complete when both the file listing and the
    changelog keys are present and not null. An empty list or dict means
    the upstream had nothing; a missing key means the record was written
    by an older or interrupted run.
    """
    return record.get(FILES_KEY) is not None and record.get(CHANGELOGS_KEY) is not None
