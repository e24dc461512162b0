"""
scripts/sync_catalog.py

Runs one curated catalog sync outside Airflow (CI job or by hand).

Run standalone:  NEXUS_API_KEY=... python scripts/sync_catalog.py

Exit codes:
    0  catalog written
    1  configuration or curation-file error (nothing fetched, nothing written)
    2  rate limited by Nexus (partial catalog written)
    3  any other failure
"""

import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "dags"))

from curated_sync.config import ConfigError, load_config
from curated_sync.nexus_client import RateLimitError
from curated_sync.sync_catalog import sync

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_RATE_LIMITED = 2
EXIT_FAILED = 3


def main() -> int:
    try:
        config = load_config()
        sync(config)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG_ERROR
    except RateLimitError as exc:
        logger.error("Script failed: %s", exc)
        return EXIT_RATE_LIMITED
    except Exception:
        logger.exception("Script failed")
        return EXIT_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
