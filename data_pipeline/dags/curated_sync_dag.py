"""
dags/curated_sync_dag.py

Airflow DAG — curated_sync_dag
Scheduled: every day at 05:00 UTC

Pipeline flow:
  sync_catalog → validate_catalog → log_summary

The sync itself lives in dags/curated_sync/ so it can be unit-tested and
run from scripts/sync_catalog.py without Airflow.
"""

import json
import logging
from datetime import datetime
from pathlib import Path

from airflow import DAG
from airflow.providers.standard.operators.python import PythonOperator

from curated_sync.config import load_config
from curated_sync.sync_catalog import sync
from curated_sync.validation import validate_records

logger = logging.getLogger(__name__)

# ── Paths (inside Docker container) ──────────────────────────────────────────
OVERLAY_PATH = "/opt/airflow/dags/data/mod_warnings.json"
CATALOG_PATH = "/opt/airflow/dags/data/curated/curated_list.json"
METRICS_PATH = "/opt/airflow/dags/data/curated/catalog_metrics.json"

# ── DAG default args ──────────────────────────────────────────────────────────
# No retries: a rate-limited run must not immediately hit the API again.
DEFAULT_ARGS = {
    "owner":            "curated-sync",
    "depends_on_past":  False,
    "retries":          0,
    "email_on_failure": False,
    "email_on_retry":   False,
}


# ══════════════════════════════════════════════════════════════════════════════
# Task functions
# ══════════════════════════════════════════════════════════════════════════════

def task_sync_catalog(**context) -> dict:
    """
    Task 1 — Run one incremental sync and rewrite the catalog.
    Pushes the run summary to XCom. ConfigError and RateLimitError fail
    the task (a partial catalog is already on disk for the latter).
    """
    config = load_config().with_overrides(
        overlay_path=Path(OVERLAY_PATH),
        catalog_path=Path(CATALOG_PATH),
    )
    summary = sync(config).to_dict()
    context["ti"].xcom_push(key="sync_summary", value=summary)
    return summary


def task_validate_catalog(**context) -> dict:
    """
    Task 2 — Validate the freshly written catalog and save metrics.
    Fails the task when the catalog has structural errors.
    """
    catalog_path = Path(CATALOG_PATH)
    if not catalog_path.exists():
        raise FileNotFoundError(f"Catalog not found at {CATALOG_PATH}")

    with open(catalog_path, "r", encoding="utf-8") as f:
        catalog = json.load(f)

    metrics = validate_records(catalog)

    metrics_path = Path(METRICS_PATH)
    metrics_path.parent.mkdir(parents=True, exist_ok=True)
    with open(metrics_path, "w", encoding="utf-8") as f:
        json.dump(metrics, f, indent=2)

    context["ti"].xcom_push(key="validation_metrics", value=metrics)

    if not metrics["valid"]:
        raise ValueError(f"Catalog validation failed with {metrics['errors']} error(s)")
    return metrics


def task_log_summary(**context) -> None:
    """Task 3 — Write the audit-style summary to the Airflow log."""
    ti      = context["ti"]
    summary = ti.xcom_pull(task_ids="sync_catalog", key="sync_summary")
    metrics = ti.xcom_pull(task_ids="validate_catalog", key="validation_metrics")

    if summary is None:
        logger.warning("No sync summary available.")
        return

    logger.info(
        "══ Curated Sync Summary ══\n"
        "  Tracked mods        : %d\n"
        "  Reused from cache   : %d\n"
        "  Fetched             : %d\n"
        "  Dropped             : %d\n"
        "  API calls           : %d\n"
        "  Fetch reasons       : %s",
        summary["tracked"], summary["reused"], summary["fetched"],
        summary["dropped"],
        summary["api_calls"], summary["reasons"],
    )

    if metrics:
        logger.info(
            "══ Validation Metrics ══\n"
            "  Total mods      : %d\n"
            "  States          : %s\n"
            "  Incomplete mods : %d\n"
            "  Without files   : %d\n"
            "  Valid           : %s",
            metrics.get("total_mods", 0),
            metrics.get("state_breakdown", {}),
            metrics.get("incomplete_mods", 0),
            metrics.get("mods_without_files", 0),
            metrics.get("valid", False),
        )


# ══════════════════════════════════════════════════════════════════════════════
# DAG definition
# ══════════════════════════════════════════════════════════════════════════════

with DAG(
    dag_id="curated_sync_dag",
    description="Daily incremental sync of the curated Nexus mod catalog",
    schedule="0 5 * * *",            # Every day at 05:00 UTC
    start_date=datetime(2024, 1, 1),
    default_args=DEFAULT_ARGS,
    catchup=False,
    max_active_runs=1,               # Single writer of curated_list.json
    tags=["curated", "nexus", "sync"],
) as dag:

    t1_sync = PythonOperator(
        task_id="sync_catalog",
        python_callable=task_sync_catalog,
    )

    t2_validate = PythonOperator(
        task_id="validate_catalog",
        python_callable=task_validate_catalog,
    )

    t3_summary = PythonOperator(
        task_id="log_summary",
        python_callable=task_log_summary,
    )

    # ── Task dependencies ─────────────────────────────────────────────────────
    t1_sync >> t2_validate >> t3_summary
