from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from jobharvest.core.models import (
    PLACEHOLDER_DESCRIPTION_PREFIX,
    PLACEHOLDER_DESCRIPTIONS,
    EnrichmentTask,
    StoredJob,
)

JOB_COLUMNS = (
    "id, title, company, location, type, salary, salary_min, salary_max, "
    "easy_apply, description, url, image, source, added_at, expires_at"
)

SORT_COLUMNS = {
    "posted_at": "added_at",
    "salary": "salary_max",
    "company": "LOWER(company)",
    "title": "LOWER(title)",
}


def now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class JobFilters:
    search: Optional[str] = None
    locations: Sequence[str] = field(default_factory=tuple)
    company: Optional[str] = None
    job_type: Optional[str] = None
    remote_only: bool = False
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    posted_after: Optional[str] = None
    sort: str = "posted_at"
    order: str = "desc"
    limit: int = 25
    offset: int = 0


# -------------------------
# Writes
# -------------------------
def insert_job_if_absent(con: sqlite3.Connection, row: Dict[str, Any]) -> bool:
    """
    Insert one job unless a row with the same id exists, or a row from the
    same source already points at the same real url. Check and insert are one
    statement, so concurrent producers cannot both insert.
    """
    cur = con.execute(
        """
        INSERT INTO jobs(
            id, title, company, location, type, salary, salary_min, salary_max,
            easy_apply, description, url, image, source, added_at, expires_at
        )
        SELECT
            :id, :title, :company, :location, :type, :salary, :salary_min, :salary_max,
            :easy_apply, :description, :url, :image, :source, :added_at, :expires_at
        WHERE NOT EXISTS (
            SELECT 1 FROM jobs
            WHERE source = :source
              AND url = :url
              AND :url NOT IN ('', '#')
        )
        ON CONFLICT(id) DO NOTHING
        """,
        row,
    )
    con.commit()
    return int(cur.rowcount or 0) == 1


def update_description(con: sqlite3.Connection, job_id: str, description: str) -> bool:
    cur = con.execute(
        "UPDATE jobs SET description = ? WHERE id = ?",
        (description, job_id),
    )
    con.commit()
    return int(cur.rowcount or 0) == 1


# -------------------------
# Reads
# -------------------------
def job_exists(con: sqlite3.Connection, job_id: str) -> bool:
    row = con.execute("SELECT 1 FROM jobs WHERE id = ?", (job_id,)).fetchone()
    return row is not None


def get_job(con: sqlite3.Connection, job_id: str, *, include_expired: bool = False) -> Optional[StoredJob]:
    sql = f"SELECT {JOB_COLUMNS} FROM jobs WHERE id = :id"
    params: Dict[str, Any] = {"id": job_id}
    if not include_expired:
        sql += " AND julianday(expires_at) > julianday(:now)"
        params["now"] = now_utc_iso()
    row = con.execute(sql, params).fetchone()
    return StoredJob.from_row(row) if row else None


def _candidate_where(min_length: int) -> Tuple[str, Dict[str, Any]]:
    placeholders = ", ".join(f":ph{i}" for i in range(len(PLACEHOLDER_DESCRIPTIONS)))
    params: Dict[str, Any] = {f"ph{i}": p for i, p in enumerate(PLACEHOLDER_DESCRIPTIONS)}
    params.update(
        {
            "prefix": PLACEHOLDER_DESCRIPTION_PREFIX + "%",
            "min_length": int(min_length),
            "now": now_utc_iso(),
        }
    )
    where = f"""
        WHERE url IS NOT NULL
          AND url NOT IN ('', '#')
          AND julianday(expires_at) > julianday(:now)
          AND (
            description IS NULL
            OR description = ''
            OR description IN ({placeholders})
            OR description LIKE :prefix
            OR LENGTH(description) < :min_length
          )
    """
    return where, params


def list_enrichment_candidates(
    con: sqlite3.Connection,
    *,
    min_length: int,
    limit: int,
) -> List[EnrichmentTask]:
    where, params = _candidate_where(min_length)
    rows = con.execute(
        "SELECT id, url, source, title, company, description FROM jobs"
        + where
        + " ORDER BY added_at DESC LIMIT :limit",
        {**params, "limit": int(limit)},
    ).fetchall()
    return [
        EnrichmentTask(
            id=r["id"],
            url=r["url"],
            source=r["source"],
            title=r["title"] or "",
            company=r["company"] or "",
            description=r["description"],
        )
        for r in rows
    ]


def count_enrichment_candidates(con: sqlite3.Connection, *, min_length: int) -> int:
    where, params = _candidate_where(min_length)
    row = con.execute("SELECT COUNT(*) AS c FROM jobs" + where, params).fetchone()
    return int(row["c"]) if row else 0


def _build_where(filters: JobFilters) -> Tuple[str, Dict[str, Any]]:
    where = ["julianday(expires_at) > julianday(:now)"]
    params: Dict[str, Any] = {"now": now_utc_iso()}

    if filters.search and filters.search.strip():
        where.append(
            """(
              LOWER(title) LIKE :q OR
              LOWER(company) LIKE :q OR
              LOWER(COALESCE(description, '')) LIKE :q
            )"""
        )
        params["q"] = f"%{filters.search.strip().lower()}%"

    locs = [l.strip().lower() for l in (filters.locations or ()) if l and l.strip()]
    if locs:
        parts = []
        for i, loc in enumerate(locs):
            parts.append(f"LOWER(location) LIKE :loc{i}")
            params[f"loc{i}"] = f"%{loc}%"
        where.append("(" + " OR ".join(parts) + ")")

    if filters.company and filters.company.strip():
        where.append("LOWER(company) LIKE :company")
        params["company"] = f"%{filters.company.strip().lower()}%"

    if filters.job_type and filters.job_type.strip():
        where.append("LOWER(COALESCE(type, '')) LIKE :job_type")
        params["job_type"] = f"%{filters.job_type.strip().lower()}%"

    if filters.remote_only:
        where.append(
            "(LOWER(location) LIKE '%remote%' OR LOWER(COALESCE(type, '')) LIKE '%remote%')"
        )

    # overlap semantics: the job's range must reach into the requested one
    if filters.salary_min is not None:
        where.append("salary_max IS NOT NULL AND salary_max >= :salary_min")
        params["salary_min"] = float(filters.salary_min)
    if filters.salary_max is not None:
        where.append("salary_min IS NOT NULL AND salary_min <= :salary_max")
        params["salary_max"] = float(filters.salary_max)

    if filters.posted_after:
        where.append("julianday(added_at) >= julianday(:posted_after)")
        params["posted_after"] = filters.posted_after

    return " WHERE " + " AND ".join(where), params


def _order_by(filters: JobFilters) -> str:
    col = SORT_COLUMNS.get(filters.sort, "added_at")
    direction = "ASC" if (filters.order or "").lower() == "asc" else "DESC"
    # unparsed salaries sort last in either direction
    nulls = f"{col} IS NULL, " if filters.sort == "salary" else ""
    return f" ORDER BY {nulls}{col} {direction}, id ASC"


def list_jobs(con: sqlite3.Connection, filters: JobFilters) -> Tuple[List[StoredJob], int]:
    where_sql, params = _build_where(filters)

    total_row = con.execute("SELECT COUNT(*) AS c FROM jobs" + where_sql, params).fetchone()
    total = int(total_row["c"]) if total_row else 0

    rows = con.execute(
        f"SELECT {JOB_COLUMNS} FROM jobs"
        + where_sql
        + _order_by(filters)
        + " LIMIT :limit OFFSET :offset",
        {**params, "limit": int(filters.limit), "offset": int(filters.offset)},
    ).fetchall()

    return [StoredJob.from_row(r) for r in rows], total
