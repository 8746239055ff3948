"""
Fill in missing job descriptions from each posting's detail page.

Usage:
    python backend/scripts/enrich_jobs.py           # interactive run
    python backend/scripts/enrich_jobs.py --auto    # quiet, for cron
"""

import argparse
import asyncio
import logging
import sys

from jobharvest.core.config import get_db_path, get_runtime_config
from jobharvest.db.conn import connect
from jobharvest.db.schema import init_db
from jobharvest.services.enricher import EnrichmentWorker

logger = logging.getLogger("enricher")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Enrich stored jobs with full descriptions")
    parser.add_argument("--auto", action="store_true", help="quiet mode for scheduled runs")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.WARNING if args.auto else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    if not args.auto:
        print("=" * 60)
        print("Job Harvest - Job Enricher")
        print("=" * 60)

    db_path = get_db_path()
    try:
        init_db(db_path)
        con = connect(db_path)
        try:
            summary = asyncio.run(EnrichmentWorker(con, cfg=get_runtime_config()).enrich())
        finally:
            con.close()
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1

    if not args.auto:
        print("=" * 60)
        print(f"Total jobs processed: {summary.total}")
        print(f"Successfully enriched: {summary.enriched}")
        print(f"Failed: {summary.failed}")
        print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
