"""
Ingestion gateway: merges scraped or uploaded job records into the store.

Existing rows are never updated from a re-scrape. A record is inserted only
when neither its id nor (for real links) its ``(source, url)`` pair is
already stored, which keeps replays of the same batch idempotent.
"""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Mapping, Optional

from jobharvest.core.errors import InvalidPayloadError
from jobharvest.core.models import (
    SALARY_NOT_LISTED,
    SOURCE_EXTERNAL,
    UNKNOWN_COMPANY,
    UNKNOWN_TITLE,
    RawJobRecord,
    normalize_source,
)
from jobharvest.db.repo_jobs import insert_job_if_absent
from jobharvest.services.extractors.base import random_id
from jobharvest.services.extractors.salary import parse_salary_bounds

logger = logging.getLogger("ingest")

DEFAULT_LOCATION = "Remote"
DEFAULT_TYPE = "Full-time"


def sha1_text(s: str) -> str:
    return hashlib.sha1(s.encode("utf-8", errors="ignore")).hexdigest()


def _text(value: Any, default: Optional[str] = None) -> Optional[str]:
    if value is None:
        return default
    s = str(value).strip()
    return s or default


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return bool(value)


def _fallback_id(url: str) -> str:
    if url and url != "#":
        return "ext-" + sha1_text(url)[:12]
    return random_id("ext-")


def normalize_incoming(obj: Any) -> Dict[str, Any]:
    """
    Coerce one loosely-typed job object (dict or RawJobRecord) into a row
    for the jobs table, applying the documented defaults.
    """
    if isinstance(obj, RawJobRecord):
        data: Mapping[str, Any] = obj.to_dict()
    elif isinstance(obj, Mapping):
        data = obj
    else:
        raise TypeError(f"job record must be an object, got {type(obj).__name__}")

    url = _text(data.get("url"), "") or ""
    salary = _text(data.get("salary"), SALARY_NOT_LISTED)
    salary_min, salary_max = parse_salary_bounds(salary)

    easy = data.get("easyApply")
    if easy is None:
        easy = data.get("easy_apply", False)

    return {
        "id": _text(data.get("id")) or _fallback_id(url),
        "title": _text(data.get("title"), UNKNOWN_TITLE),
        "company": _text(data.get("company"), UNKNOWN_COMPANY),
        "location": _text(data.get("location"), DEFAULT_LOCATION),
        "type": _text(data.get("type"), DEFAULT_TYPE),
        "salary": salary,
        "salary_min": salary_min,
        "salary_max": salary_max,
        "easy_apply": 1 if _as_bool(easy) else 0,
        "description": _text(data.get("description")),
        "url": url,
        "image": _text(data.get("image")),
        "source": normalize_source(_text(data.get("source"), SOURCE_EXTERNAL)),
    }


class IngestionGateway:
    def __init__(self, con, *, retention_days: int = 30):
        self.con = con
        self.retention_days = int(retention_days)

    def ingest(self, records: Iterable[Any]) -> int:
        """Store records not seen before; return how many were newly inserted."""
        if isinstance(records, (str, bytes, Mapping)) or not isinstance(records, (list, tuple)):
            raise InvalidPayloadError("expected an array of job objects")

        added = 0
        skipped = 0
        failed = 0

        for idx, obj in enumerate(records):
            try:
                row = normalize_incoming(obj)
                now = datetime.now(timezone.utc)
                row["added_at"] = now.isoformat()
                row["expires_at"] = (now + timedelta(days=self.retention_days)).isoformat()

                if insert_job_if_absent(self.con, row):
                    added += 1
                else:
                    skipped += 1
            except Exception as e:
                failed += 1
                logger.warning(f"[ingest] record #{idx} skipped: {e}", exc_info=True)

        logger.info(
            f"[ingest] received={len(records)} added={added} existing={skipped} failed={failed}"
        )
        return added
