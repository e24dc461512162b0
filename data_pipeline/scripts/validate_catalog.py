"""
scripts/validate_catalog.py

Validates curated/curated_list.json after each sync run.
Generates catalog_metrics.json so run-over-run drift is easy to spot.

Run standalone:  python scripts/validate_catalog.py
Called by Airflow: curated_sync_dag (task: validate_catalog)
"""

import json
import logging
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "dags"))

from curated_sync.validation import validate_records

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)

# ── Paths ─────────────────────────────────────────────────────────────────────
CATALOG_PATH = Path(os.getenv("CURATED_CATALOG_PATH", "curated/curated_list.json"))
METRICS_PATH = Path(os.getenv("CURATED_METRICS_PATH", "curated/catalog_metrics.json"))


def validate() -> dict:
    """Load CATALOG_PATH and validate it."""
    if not CATALOG_PATH.exists():
        logger.error("Catalog file not found: %s", CATALOG_PATH)
        return {"valid": False, "errors": 1, "error_details": ["Catalog file missing"]}

    try:
        with open(CATALOG_PATH, "r", encoding="utf-8") as f:
            catalog = json.load(f)
    except json.JSONDecodeError as e:
        logger.error("Invalid JSON in catalog: %s", e)
        return {"valid": False, "errors": 1, "error_details": [f"Invalid JSON: {e}"]}

    return validate_records(catalog)


def main():
    metrics = validate()

    METRICS_PATH.parent.mkdir(parents=True, exist_ok=True)
    with open(METRICS_PATH, "w", encoding="utf-8") as f:
        json.dump(metrics, f, indent=2)
    logger.info("Metrics written to %s", METRICS_PATH)

    # Exit with error code if validation failed
    if not metrics["valid"]:
        logger.error("VALIDATION FAILED — %d error(s) found", metrics["errors"])
        sys.exit(1)

    logger.info("VALIDATION PASSED")


if __name__ == "__main__":
    main()
