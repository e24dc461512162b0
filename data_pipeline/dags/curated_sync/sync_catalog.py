"""
dags/curated_sync/sync_catalog.py

Entry point for one curated catalog sync. Called by the CLI script and by
curated_sync_dag.

Flow:
    load curation file + previous catalog
      → query the change signal (one call)
      → classify every tracked mod: reuse / fetch (new, missing-data, updated-upstream)
      → fetch the fetch set in rate-limited batches
      → merge with current curation fields
      → rewrite curated_list.json

Output order: reused mods in curation-file order, then fetched mods batch
by batch. Consumers must not rely on it.

A mod whose info fetch fails is dropped from this run's catalog, even if
the previous catalog had a record for it.

On a 429 the run stops, but the work already done is not thrown away: the
catalog is written with the reused mods plus the mods merged from batches
that completed before the failing one, and RateLimitError is re-raised.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from typing import Callable, Optional

from curated_sync.batch_scheduler import run_batches
from curated_sync.config import SyncConfig
from curated_sync.merge import build_final_record, refresh_curation
from curated_sync.nexus_client import NexusClient, RateLimitError, fetch_change_signal
from curated_sync.overlay import index_overlay, load_overlay
from curated_sync.record_store import load_records, save_records
from curated_sync.staleness import Decision, partition

# ── Logging ──────────────────────────────────────────────────────────────────
logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    tracked: int = 0
    reused: int = 0
    fetched: int = 0
    dropped: int = 0
    api_calls: int = 0
    reasons: dict = field(default_factory=dict)
    output_path: str = ""
    partial: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def _log_summary(summary: RunSummary) -> None:
    logger.info(
        "------------------------------------------------\n"
        "Summary%s:\n"
        "- Total Mods:           %d\n"
        "- Reused from cache:    %d\n"
        "- Fetched:              %d\n"
        "- Dropped:              %d\n"
        "- Total API Calls:      %d\n"
        "- Output saved to:      %s\n"
        "------------------------------------------------",
        " (PARTIAL, rate limited)" if summary.partial else "",
        summary.tracked, summary.reused, summary.fetched,
        summary.dropped, summary.api_calls, summary.output_path,
    )


async def run_sync(
    config: SyncConfig,
    client_factory: Callable[[SyncConfig], NexusClient] = NexusClient,
    signal_fetcher: Callable[[SyncConfig], Optional[set[str]]] = fetch_change_signal,
    sleep=asyncio.sleep,
) -> RunSummary:
    """
    Run one sync. Raises ConfigError before any network activity if the
    curation file is unusable, and RateLimitError (after writing a partial
    catalog) if Nexus rate-limits the run.
    """
    logger.info("Starting smart update (info + files + changelogs)...")

    # ── 1. Load inputs ───────────────────────────────────────────────────────
    entries = load_overlay(config.overlay_path)
    index = index_overlay(entries)
    cached = load_records(config.catalog_path)

    summary = RunSummary(tracked=len(entries), output_path=str(config.catalog_path))

    # ── 2. Classify ─────────────────────────────────────────────────────────
    changed_ids = signal_fetcher(config)
    if config.recency_window is not None:
        summary.api_calls += 1
    plan = partition(entries, cached, changed_ids)
    summary.reasons = plan.reason_counts()

    final_records = [refresh_curation(cached[d.mod_id], index.get(d.mod_id)) for d in plan.reuse]
    summary.reused = len(final_records)

    # ── 3. Fetch in batches ─────────────────────────────────────────────────
    def collect(record: dict) -> None:
        final_records.append(record)
        summary.fetched += 1

    logger.info(
        "Processing %d mods in batches of %d...", len(plan.fetch), config.batch_size
    )

    try:
        async with client_factory(config) as client:

            async def fetch_one(decision: Decision) -> Optional[dict]:
                fetched = await client.fetch_record(decision.mod_id)
                if fetched is None:
                    logger.warning("[Mod %s] Dropped — info fetch failed this run.", decision.mod_id)
                    return None

                record = build_final_record(
                    fetched.info, index.get(decision.mod_id),
                    fetched.files.value, fetched.changelogs.value,
                )
                if record["mod_id"] is None:
                    record["mod_id"] = decision.mod_id
                return record

            try:
                await run_batches(
                    plan.fetch,
                    fetch_one,
                    batch_size=config.batch_size,
                    delay_seconds=config.inter_batch_delay,
                    on_result=collect,
                    sleep=sleep,
                )
            finally:
                summary.api_calls += client.call_count

    except RateLimitError:
        # Only reused mods and fully completed batches are written.
        summary.partial = True
        summary.dropped = len(plan.fetch) - summary.fetched
        save_records(config.catalog_path, final_records)
        logger.error("Rate limited by Nexus — partial catalog written, aborting run.")
        _log_summary(summary)
        raise

    summary.dropped = len(plan.fetch) - summary.fetched

    # ── 4. Persist ───────────────────────────────────────────────────────────
    save_records(config.catalog_path, final_records)
    _log_summary(summary)
    return summary


def sync(config: SyncConfig) -> RunSummary:
    """Blocking wrapper around run_sync for scripts and Airflow tasks."""
    return asyncio.run(run_sync(config))
