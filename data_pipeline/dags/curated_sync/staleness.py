"""
dags/curated_sync/staleness.py

Decides, for every tracked mod, whether the cached record can be reused
or the mod has to be fetched again.

Change detection uses the upstream change signal (mods/updated.json for a
recency window): one call per run instead of one info call per tracked
mod. Rules, first match wins:

    1. no cached record                       → fetch, reason "new"
    2. cached record missing files/changelogs → fetch, reason "missing-data"
    3. id in the change signal                → fetch, reason "updated-upstream"
    4. otherwise                              → reuse

An incomplete record is reported as "missing-data" even when the signal
also lists it; both reasons lead to the same three calls.

When the change signal could not be obtained (changed_ids is None) every
cached record is treated as updated upstream, so a failed signal query
never hides a real update.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

from curated_sync.overlay import TrackedEntry
from curated_sync.record_store import is_complete

# ── Logging ──────────────────────────────────────────────────────────────────
logger = logging.getLogger(__name__)

REUSE = "reuse"
FETCH = "fetch"

REASON_NEW = "new"
REASON_UPDATED = "updated-upstream"
REASON_MISSING_DATA = "missing-data"


@dataclass(frozen=True)
class Decision:
    mod_id: str
    action: str
    reason: Optional[str] = None


@dataclass
class Partition:
    """Reuse and fetch decisions, each in overlay order."""
    reuse: list[Decision] = field(default_factory=list)
    fetch: list[Decision] = field(default_factory=list)

    def reason_counts(self) -> dict[str, int]:
        return dict(Counter(d.reason for d in self.fetch))


def classify(
    entry: TrackedEntry,
    cached: Optional[dict],
    changed_ids: Optional[set[str]],
) -> Decision:
    """Classify one tracked mod against its cached record and the change signal."""
    if cached is None:
        return Decision(entry.mod_id, FETCH, REASON_NEW)
    if not is_complete(cached):
        return Decision(entry.mod_id, FETCH, REASON_MISSING_DATA)
    if changed_ids is None or entry.mod_id in changed_ids:
        return Decision(entry.mod_id, FETCH, REASON_UPDATED)
    return Decision(entry.mod_id, REUSE)


def partition(
    entries: list[TrackedEntry],
    records: dict[str, dict],
    changed_ids: Optional[set[str]],
) -> Partition:
    """Split the tracked mods into reuse and fetch sets."""
    result = Partition()
    for entry in entries:
        decision = classify(entry, records.get(entry.mod_id), changed_ids)
        if decision.action == REUSE:
            logger.debug("[Mod %s] Using cached data.", entry.mod_id)
            result.reuse.append(decision)
        else:
            logger.info("[Mod %s] Fresh fetch required (%s).", entry.mod_id, decision.reason)
            result.fetch.append(decision)

    logger.info(
        "Classified %d mods: %d reuse, %d fetch %s",
        len(entries), len(result.reuse), len(result.fetch), result.reason_counts(),
    )
    return result
