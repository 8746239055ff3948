import hashlib
import json
import re
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from jobharvest.core.models import SOURCE_GENERIC, RawJobRecord
from jobharvest.services.extractors.base import (
    UNKNOWN_COMPANY,
    UNKNOWN_LOCATION,
    UNKNOWN_TITLE,
    SourceAdapter,
    element_text,
    first_element,
    normalize_whitespace,
    random_id,
)
from jobharvest.services.extractors.salary import find_salary

JOB_HREF_RE = re.compile(
    r"/job/(\d+)/?|/jobs/view/(\d+)|/careers/job/(\d+)|/positions/(\d+)|/job-search/(\d+)",
    re.IGNORECASE,
)

TILE_SELECTORS = (
    "li[data-qa='searchResultItem']",
    "[class*='job-card']",
    "[class*='job-tile']",
    "[class*='search-result']",
)

TILE_TITLE_SELECTORS = (
    ".job-tile__title",
    "span[class*='title']",
    "h2",
    "h3",
)

TILE_COMPANY_SELECTORS = (
    "[class*='company']",
    "[class*='employer']",
)

TILE_LOCATION_SELECTORS = (
    "posting-locations span",
    ".posting-locations span",
    "[class*='locations'] span",
    "[class*='location']",
)


def sha1_text(s: str) -> str:
    return hashlib.sha1((s or "").encode("utf-8", errors="ignore")).hexdigest()


def _durable_segment(url: str) -> Optional[str]:
    m = JOB_HREF_RE.search(urlparse(url or "").path)
    if not m:
        return None
    return next(g for g in m.groups() if g)


def generic_job_id(url: str) -> Tuple[str, bool]:
    """Numeric job segment, else a hash of the URL, else random."""
    seg = _durable_segment(url)
    if seg:
        return f"gen-{seg}", True
    if url and url != "#":
        return f"gen-{sha1_text(url)[:12]}", True
    return random_id("gen-"), False


def _jsonld_location(job_loc: Any) -> str:
    if isinstance(job_loc, list) and job_loc:
        job_loc = job_loc[0]
    if not isinstance(job_loc, dict):
        return ""
    addr = job_loc.get("address") or {}
    if not isinstance(addr, dict):
        return ""
    city = addr.get("addressLocality") or ""
    region = addr.get("addressRegion") or ""
    country = addr.get("addressCountry") or ""
    if isinstance(country, dict):
        country = country.get("name") or ""
    return normalize_whitespace(f"{city}, {region} {country}".strip(" ,"))


def _jsonld_salary(node: Dict[str, Any]) -> Optional[str]:
    base = node.get("baseSalary")
    if not isinstance(base, dict):
        return None
    value = base.get("value")
    if not isinstance(value, dict):
        return None
    lo = value.get("minValue")
    hi = value.get("maxValue")
    if lo is None and hi is None:
        single = value.get("value")
        return f"${single}" if single is not None else None
    if lo is not None and hi is not None:
        return f"${lo} - ${hi}"
    return f"${lo if lo is not None else hi}"


class GenericAdapter(SourceAdapter):
    """
    Fallback for career pages without a dedicated selector table.

    Structured data wins: schema.org ``JobPosting`` JSON-LD blocks are read
    first, and only when a page carries none are listing tiles scanned for
    job-detail links.
    """

    name = SOURCE_GENERIC
    id_prefix = "gen-"
    card_selectors = TILE_SELECTORS

    def extract(self, html: str, base_url: Optional[str] = None) -> List[RawJobRecord]:
        base = base_url or self.base_url
        jobs = self.extract_jsonld(html, base)
        if jobs:
            self.logger.info(f"[extract:{self.name}] {len(jobs)} jobs from JSON-LD")
            return jobs
        return super().extract(html, base)

    def extract_jsonld(self, html: str, base_url: str) -> List[RawJobRecord]:
        soup = BeautifulSoup(html or "", "html.parser")
        out: List[RawJobRecord] = []

        for s in soup.find_all("script", attrs={"type": "application/ld+json"}):
            try:
                data = json.loads(s.get_text(strip=True) or "{}")
            except Exception:
                continue

            nodes = data if isinstance(data, list) else [data]
            for node in list(nodes):
                if isinstance(node, dict) and isinstance(node.get("@graph"), list):
                    nodes.extend(node["@graph"])

            for node in nodes:
                try:
                    record = self._record_from_jsonld(node, base_url)
                except Exception as e:
                    self.logger.warning(f"[extract:{self.name}] bad JobPosting block: {e}")
                    continue
                if record is not None:
                    out.append(record)

        return out

    def _record_from_jsonld(self, node: Any, base_url: str) -> Optional[RawJobRecord]:
        if not isinstance(node, dict):
            return None
        t = node.get("@type")
        is_job = ("JobPosting" in t) if isinstance(t, list) else (t == "JobPosting")
        if not is_job:
            return None

        title = normalize_whitespace(str(node.get("title") or node.get("name") or ""))
        if not title:
            return None

        url = node.get("url") or ""
        if isinstance(url, dict):
            url = url.get("@id") or ""
        abs_url = urljoin(base_url, str(url)) if url else (base_url or "")

        org = node.get("hiringOrganization")
        company = org.get("name") if isinstance(org, dict) else (org if isinstance(org, str) else "")

        emp_type = node.get("employmentType")
        if isinstance(emp_type, list):
            emp_type = ", ".join(str(x) for x in emp_type)

        if str(node.get("jobLocationType") or "").upper() == "TELECOMMUTE":
            location = "Remote"
        else:
            location = _jsonld_location(node.get("jobLocation"))

        job_id, durable = generic_job_id(abs_url)
        return RawJobRecord(
            id=job_id,
            title=title,
            company=normalize_whitespace(str(company or "")) or UNKNOWN_COMPANY,
            location=location or UNKNOWN_LOCATION,
            salary=_jsonld_salary(node) or "Not listed",
            url=abs_url,
            source=self.name,
            type=str(emp_type) if emp_type else None,
            description=str(node.get("description") or "") or None,
            durable_id=durable,
        )

    def parse_card(self, card: Tag, base_url: str) -> Optional[RawJobRecord]:
        anchor = card.find("a", href=True)
        if anchor is None:
            return None
        href = (anchor.get("href") or "").strip()
        if not href:
            return None
        abs_url = urljoin(base_url, href)

        path = urlparse(abs_url).path
        if not JOB_HREF_RE.search(path) and "/job/" not in path.lower():
            return None

        title_el = first_element(card, TILE_TITLE_SELECTORS)
        title = element_text(title_el) if title_el is not None else element_text(anchor)

        location = ""
        loc_el = first_element(card, TILE_LOCATION_SELECTORS)
        if loc_el is not None:
            location = element_text(loc_el)

        company_el = first_element(card, TILE_COMPANY_SELECTORS)
        job_id, durable = generic_job_id(abs_url)

        return RawJobRecord(
            id=job_id,
            title=title or UNKNOWN_TITLE,
            company=element_text(company_el) if company_el is not None else UNKNOWN_COMPANY,
            location=location or UNKNOWN_LOCATION,
            salary=find_salary(element_text(card)) or "Not listed",
            url=abs_url,
            source=self.name,
            durable_id=durable,
        )
