import re
from typing import Optional

from bs4 import Tag

from jobharvest.core.models import SOURCE_REMOTEOK, RawJobRecord
from jobharvest.services.extractors.base import (
    SourceAdapter,
    absolute_url,
    element_text,
    random_id,
)

REMOTEOK_ORIGIN = "https://remoteok.com"

ROW_ID_RE = re.compile(r"/(?:l|remote-jobs)/(\d+)")

PLACEHOLDER = "Job scraped from RemoteOK. Click Apply to see full details."


def build_search_url(term: str) -> str:
    slug = re.sub(r"\s+", "-", (term or "").strip().lower())
    return f"{REMOTEOK_ORIGIN}/remote-{slug}-jobs"


def _row_url(row: Tag) -> str:
    for attr in ("data-href", "data-url"):
        href = (row.get(attr) or "").strip()
        if href:
            return absolute_url(href, REMOTEOK_ORIGIN)

    anchor = row.select_one(".preventLink")
    if anchor is not None and (anchor.get("href") or "").strip():
        return absolute_url(anchor.get("href"), REMOTEOK_ORIGIN)

    row_id = (row.get("data-id") or "").strip()
    if row_id:
        return f"{REMOTEOK_ORIGIN}/l/{row_id}"
    return ""


class RemoteOKAdapter(SourceAdapter):
    name = SOURCE_REMOTEOK
    id_prefix = "rok-"
    base_url = REMOTEOK_ORIGIN
    card_selectors = ("tr.job",)

    def parse_card(self, card: Tag, base_url: str) -> Optional[RawJobRecord]:
        # closed/hidden postings
        if "do-not-expand" in (card.get("class") or []):
            return None

        title_el = card.select_one(".company_and_position h2")
        company_el = card.select_one(".company_and_position h3")
        if title_el is None or company_el is None:
            return None

        salary = "Competitive"
        locations = []
        for tag in card.select(".location"):
            text = element_text(tag)
            if "$" in text:
                salary = text
            elif text:
                locations.append(text)

        url = _row_url(card)

        row_id = (card.get("data-id") or "").strip()
        durable = True
        if row_id:
            job_id = self.id_prefix + row_id
        else:
            m = ROW_ID_RE.search(url)
            if m:
                job_id = self.id_prefix + m.group(1)
            else:
                job_id, durable = random_id(self.id_prefix), False

        return RawJobRecord(
            id=job_id,
            title=element_text(title_el),
            company=element_text(company_el),
            location=locations[0] if locations else "Remote",
            salary=salary,
            url=url,
            source=self.name,
            type="Contract/Full-time",
            description=PLACEHOLDER,
            durable_id=durable,
        )
