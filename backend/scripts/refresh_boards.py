import argparse
import asyncio
import json
import logging
import sys

from jobharvest.core.config import get_db_path, get_runtime_config
from jobharvest.db.conn import connect
from jobharvest.db.schema import init_db
from jobharvest.services.boards import refresh_boards
from jobharvest.services.ingest import IngestionGateway

logger = logging.getLogger("boards")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Scrape the remote job boards once and store new jobs")
    parser.add_argument("--terms", nargs="*", help="search terms (default: BOARD_SEARCH_TERMS)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")

    cfg = get_runtime_config()
    db_path = get_db_path()
    try:
        init_db(db_path)
        con = connect(db_path)
        try:
            gateway = IngestionGateway(con, retention_days=cfg.retention_days)
            result = asyncio.run(refresh_boards(gateway, args.terms or None, cfg=cfg))
        finally:
            con.close()
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
