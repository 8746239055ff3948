from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

# Canonical source names stored in the jobs table.
SOURCE_LINKEDIN = "LinkedIn"
SOURCE_INDEED = "Indeed"
SOURCE_WWR = "WeWorkRemotely"
SOURCE_REMOTEOK = "RemoteOK"
SOURCE_GENERIC = "Generic"
SOURCE_EXTERNAL = "External"

KNOWN_SOURCES = (SOURCE_LINKEDIN, SOURCE_INDEED, SOURCE_WWR, SOURCE_REMOTEOK, SOURCE_GENERIC)

_SOURCE_ALIASES = {
    "linkedin": SOURCE_LINKEDIN,
    "indeed": SOURCE_INDEED,
    "weworkremotely": SOURCE_WWR,
    "we work remotely": SOURCE_WWR,
    "wwr": SOURCE_WWR,
    "remoteok": SOURCE_REMOTEOK,
    "remote ok": SOURCE_REMOTEOK,
    "generic": SOURCE_GENERIC,
    "external": SOURCE_EXTERNAL,
}

# Sentinels used when a field cannot be extracted.
UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_COMPANY = "Unknown Company"
UNKNOWN_LOCATION = "Remote/Unknown"
SALARY_NOT_LISTED = "Not listed"

# Short descriptions written by scrapers before enrichment.
PLACEHOLDER_DESCRIPTIONS = (
    "View posting for details",
    "Description not available",
)
PLACEHOLDER_DESCRIPTION_PREFIX = "Job scraped from"


def normalize_source(value: Optional[str]) -> str:
    raw = (value or "").strip()
    if not raw:
        return SOURCE_EXTERNAL
    return _SOURCE_ALIASES.get(raw.lower(), raw)


def is_placeholder_description(text: Optional[str]) -> bool:
    t = (text or "").strip()
    if not t:
        return True
    return t in PLACEHOLDER_DESCRIPTIONS or t.startswith(PLACEHOLDER_DESCRIPTION_PREFIX)


@dataclass
class RawJobRecord:
    id: str
    title: str
    company: str = UNKNOWN_COMPANY
    location: str = UNKNOWN_LOCATION
    salary: str = SALARY_NOT_LISTED
    easy_apply: bool = False
    url: str = ""
    image: Optional[str] = None
    source: str = SOURCE_GENERIC
    type: Optional[str] = None
    description: Optional[str] = None
    # False when the id was minted randomly and cannot dedupe future scrapes.
    durable_id: bool = True

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["easyApply"] = d.pop("easy_apply")
        d.pop("durable_id", None)
        return d


@dataclass
class StoredJob:
    id: str
    title: str
    company: str
    location: str
    salary: str
    easy_apply: bool
    url: str
    source: str
    added_at: str
    expires_at: str
    image: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = None
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None

    @classmethod
    def from_row(cls, row) -> "StoredJob":
        return cls(
            id=row["id"],
            title=row["title"],
            company=row["company"],
            location=row["location"],
            salary=row["salary"],
            easy_apply=bool(int(row["easy_apply"] or 0)),
            url=row["url"] or "",
            source=row["source"],
            added_at=row["added_at"],
            expires_at=row["expires_at"],
            image=row["image"],
            type=row["type"],
            description=row["description"],
            salary_min=row["salary_min"],
            salary_max=row["salary_max"],
        )

    def to_dict(self, *, full_description: bool = True) -> Dict[str, Any]:
        description = self.description
        if not full_description and description and len(description) > 300:
            description = description[:300] + "..."
        return {
            "id": self.id,
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "salary": self.salary,
            "salary_min": self.salary_min,
            "salary_max": self.salary_max,
            "type": self.type,
            "source": self.source,
            "url": self.url,
            "image": self.image,
            "easyApply": self.easy_apply,
            "description": description,
            "postedAt": self.added_at,
            "expiresAt": self.expires_at,
        }


@dataclass(frozen=True)
class Location:
    name: str
    geo_id: Optional[str] = None
    state: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "geoId": self.geo_id, "state": self.state}


@dataclass(frozen=True)
class EnrichmentTask:
    id: str
    url: str
    source: str
    title: str = ""
    company: str = ""
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "source": self.source,
            "title": self.title,
            "company": self.company,
            "description_length": len(self.description or ""),
        }


@dataclass
class EnrichmentSummary:
    total: int = 0
    enriched: int = 0
    failed: int = 0
    failed_ids: list = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"total": self.total, "enriched": self.enriched, "failed": self.failed}
