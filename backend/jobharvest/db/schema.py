import os
import sqlite3
from pathlib import Path


DEFAULT_MIGRATION = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "..", "..", "migrations", "001_init.sql")
)


def _has_column(con: sqlite3.Connection, table: str, column: str) -> bool:
    rows = con.execute(f"PRAGMA table_info({table})").fetchall()
    return any(r[1] == column for r in rows)  # r[1] = name


def _has_table(con: sqlite3.Connection, table: str) -> bool:
    row = con.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
        (table,),
    ).fetchone()
    return bool(row)


def _ensure_schema(con: sqlite3.Connection) -> None:
    """Idempotent upgrades for older DBs."""

    if not _has_table(con, "jobs"):
        return

    # jobs.easy_apply (added after the first LinkedIn scrapes)
    if not _has_column(con, "jobs", "easy_apply"):
        con.execute("ALTER TABLE jobs ADD COLUMN easy_apply INTEGER NOT NULL DEFAULT 0")

    # jobs.image (company logo from search cards)
    if not _has_column(con, "jobs", "image"):
        con.execute("ALTER TABLE jobs ADD COLUMN image TEXT")

    # numeric salary bounds for read-side filtering
    if not _has_column(con, "jobs", "salary_min"):
        con.execute("ALTER TABLE jobs ADD COLUMN salary_min REAL")
    if not _has_column(con, "jobs", "salary_max"):
        con.execute("ALTER TABLE jobs ADD COLUMN salary_max REAL")

    con.execute("CREATE INDEX IF NOT EXISTS idx_jobs_source_url ON jobs(source, url)")


def init_db(db_path: str, migration_sql_path: str = DEFAULT_MIGRATION) -> None:
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    con = sqlite3.connect(db_path)
    try:
        with open(migration_sql_path, "r", encoding="utf-8") as f:
            con.executescript(f.read())

        _ensure_schema(con)

        con.commit()
    finally:
        con.close()
