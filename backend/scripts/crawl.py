"""
Drive a search crawl to completion in a local Chromium.

For LinkedIn, point CRAWL_USER_DATA_DIR at a profile that is already logged
in and run with BROWSER_HEADLESS=0 the first time to sign in by hand.

    python backend/scripts/crawl.py --keywords "SOC Analyst" "Pentester" --states texas
"""

import argparse
import asyncio
import logging
import sys

from jobharvest.core.config import get_db_path, get_runtime_config
from jobharvest.core.locations import select_locations
from jobharvest.db.conn import connect
from jobharvest.db.schema import init_db
from jobharvest.services.browser import BrowserSession
from jobharvest.services.crawler import STATE_COMPLETE, CrawlOptions, CrawlScheduler
from jobharvest.services.ingest import IngestionGateway

logger = logging.getLogger("crawler")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Crawl a job site over locations x keywords")
    parser.add_argument("--keywords", nargs="+", required=True)
    parser.add_argument("--states", nargs="*", help="state keys from the locations catalogue (default: all)")
    parser.add_argument("--source", default="LinkedIn")
    parser.add_argument("--remote-only", action="store_true")
    parser.add_argument("--easy-apply-only", action="store_true")
    parser.add_argument("--no-ingest", action="store_true", help="collect only, do not store")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")

    cfg = get_runtime_config()
    locations = select_locations(args.states or None)
    if not locations:
        logger.error("No locations selected; check LOCATIONS_PATH and --states")
        return 1

    db_path = get_db_path()
    init_db(db_path)
    con = connect(db_path)
    try:
        crawler = CrawlScheduler(
            gateway=IngestionGateway(con, retention_days=cfg.retention_days),
            cfg=cfg,
            session_factory=lambda: BrowserSession(
                headless=cfg.headless,
                user_data_dir=cfg.crawl_user_data_dir,
                nav_timeout_ms=cfg.nav_timeout_ms,
            ),
        )
        crawler.start(
            locations,
            args.keywords,
            CrawlOptions(
                source=args.source,
                remote_only=args.remote_only,
                easy_apply_only=args.easy_apply_only,
                auto_ingest=not args.no_ingest,
            ),
        )
        try:
            state = asyncio.run(crawler.run_with_browser())
        except KeyboardInterrupt:
            logger.warning("Interrupted; collected results were not stored")
            return 1
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1
    finally:
        con.close()

    status = crawler.status()
    logger.info(
        f"Crawl {status['state']}: {status['job_count']} jobs collected, "
        f"{status['errors']} failed searches, {status['last_ingested']} added"
    )
    return 0 if state.phase == STATE_COMPLETE else 1


if __name__ == "__main__":
    sys.exit(main())
