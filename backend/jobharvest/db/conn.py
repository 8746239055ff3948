import sqlite3

# CLI scripts may write while the API process holds the same file.
BUSY_TIMEOUT_S = 15.0


def connect(db_path: str, *, wal: bool = True) -> sqlite3.Connection:
    """Shared connection for the API and background tasks (one per process)."""
    con = sqlite3.connect(db_path, check_same_thread=False, timeout=BUSY_TIMEOUT_S)
    con.row_factory = sqlite3.Row
    if wal:
        con.execute("PRAGMA journal_mode=WAL")
    return con
