from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Union

logger = logging.getLogger("retention")


def _now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def purge_expired_jobs(con, *, grace_days: int = 0) -> int:
    """
    Delete rows whose expires_at is older than now - grace_days.

    Reads already hide expired rows, so this only reclaims space.
    """
    cutoff = (datetime.now(timezone.utc) - timedelta(days=int(grace_days))).isoformat()
    cur = con.execute(
        """
        DELETE FROM jobs
        WHERE COALESCE(expires_at, '') <> ''
          AND julianday(expires_at) < julianday(?)
        """,
        (cutoff,),
    )
    con.commit()
    return int(cur.rowcount or 0)


def count_expired_jobs(con) -> int:
    row = con.execute(
        "SELECT COUNT(*) AS c FROM jobs WHERE julianday(expires_at) <= julianday(?)",
        (_now_utc_iso(),),
    ).fetchone()
    return int(row["c"]) if row else 0


def apply_retention(con, *, grace_days: int = 0) -> Dict[str, Union[int, str]]:
    expired_before = count_expired_jobs(con)
    purged = purge_expired_jobs(con, grace_days=grace_days)
    if purged:
        logger.info("[retention] purged %s expired jobs (grace_days=%s)", purged, grace_days)
    return {
        "expired": int(expired_before),
        "purged": int(purged),
        "enforced_at": _now_utc_iso(),
    }
