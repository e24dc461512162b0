"""
dags/curated_sync/validation.py

Structural checks for the curated catalog, shared by
scripts/validate_catalog.py and the validate_catalog task of
curated_sync_dag.
"""

import logging
from collections import Counter

# ── Logging ──────────────────────────────────────────────────────────────────
logger = logging.getLogger(__name__)

# ── Required fields per record ────────────────────────────────────────────────
REQUIRED_FIELDS = {
    "mod_id", "name", "summary", "version", "picture_url", "author",
    "mod_downloads", "endorsement_count", "updated_timestamp",
    "created_timestamp", "description", "state", "warningMessage",
}


def validate_records(catalog) -> dict:
    """Validate an in-memory catalog and return a metrics dict."""
    errors = []
    warnings = []

    if not isinstance(catalog, list):
        return {"valid": False, "errors": 1, "error_details": ["Catalog root is not a list"]}

    state_counts = Counter()
    seen_ids = set()
    incomplete = 0
    without_files = 0
    with_warning_message = 0
    total_files = 0

    for i, record in enumerate(catalog):
        prefix = f"Record [{i}]"

        if not isinstance(record, dict):
            errors.append(f"{prefix}: not an object")
            continue

        missing = REQUIRED_FIELDS - set(record.keys())
        if missing:
            errors.append(f"{prefix}: missing fields {sorted(missing)}")
            continue

        # Check for duplicate mod_id
        mod_id = str(record["mod_id"])
        if mod_id in seen_ids:
            errors.append(f"{prefix}: duplicate mod_id '{mod_id}'")
        seen_ids.add(mod_id)

        state = record["state"]
        if not isinstance(state, str) or not state.strip():
            errors.append(f"{prefix}: invalid state {state!r}")
        else:
            state_counts[state] += 1

        if record["warningMessage"]:
            with_warning_message += 1

        # ── Files / changelogs ────────────────────────────────────────────────
        # A missing key is legal (older or interrupted run) and gets refetched
        # next time; a wrong type is not.
        if record.get("files") is None or record.get("changelogs") is None:
            incomplete += 1
            warnings.append(f"{prefix}: mod {mod_id} has no files/changelogs yet")
            continue

        files = record["files"]
        if not isinstance(files, list):
            errors.append(f"{prefix}: files is not a list")
        else:
            total_files += len(files)
            if not files:
                without_files += 1
                warnings.append(f"{prefix}: mod {mod_id} has an empty file listing")

        if not isinstance(record["changelogs"], dict):
            errors.append(f"{prefix}: changelogs is not an object")

    metrics = {
        "valid":                len(errors) == 0,
        "total_mods":           len(catalog),
        "state_breakdown":      dict(state_counts),
        "with_warning_message": with_warning_message,
        "incomplete_mods":      incomplete,
        "mods_without_files":   without_files,
        "total_files":          total_files,
        "errors":               len(errors),
        "warnings":             len(warnings),
    }

    # Log summary
    logger.info("── Validation Summary ──")
    logger.info("  Total mods       : %d", len(catalog))
    logger.info("  States           : %s", dict(state_counts))
    logger.info("  Incomplete mods  : %d", incomplete)
    logger.info("  Without files    : %d", without_files)
    logger.info("  Errors           : %d", len(errors))
    logger.info("  Warnings         : %d", len(warnings))

    if errors:
        logger.error("── Errors ──")
        for e in errors[:20]:  # Cap at 20 to avoid log flood
            logger.error("  %s", e)
        if len(errors) > 20:
            logger.error("  ... and %d more errors", len(errors) - 20)

    if warnings:
        logger.warning("── Warnings ──")
        for w in warnings[:10]:
            logger.warning("  %s", w)
        if len(warnings) > 10:
            logger.warning("  ... and %d more warnings", len(warnings) - 10)

    return metrics
