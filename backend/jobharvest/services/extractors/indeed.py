import re
from typing import Optional

from bs4 import Tag

from jobharvest.core.models import SOURCE_INDEED, RawJobRecord
from jobharvest.services.extractors.base import (
    SALARY_NOT_LISTED,
    UNKNOWN_COMPANY,
    UNKNOWN_LOCATION,
    UNKNOWN_TITLE,
    SourceAdapter,
    absolute_url,
    element_text,
    first_element,
    first_text,
    random_id,
)

INDEED_ORIGIN = "https://www.indeed.com"

JK_RE = re.compile(r"[?&]jk=([0-9A-Za-z]+)")

CARD_SELECTORS = (
    ".job_seen_beacon",
    ".resultContent",
    "div.cardOutline",
)

TITLE_SELECTORS = (
    ".jobTitle a",
    "a.jcs-JobTitle",
    "h2.jobTitle a",
)

COMPANY_SELECTORS = (
    '[data-testid="company-name"]',
    ".companyName",
)

LOCATION_SELECTORS = (
    '[data-testid="text-location"]',
    ".companyLocation",
)

METADATA_ITEMS = ".metadataContainer li, .salary-snippet-container"

DEFAULT_TYPE = "Full-time"
CARD_DESCRIPTION = "View posting for details"


def _resolve_id(card: Tag, title_el: Optional[Tag], link: str):
    if title_el is not None:
        jk = (title_el.get("data-jk") or "").strip()
        if jk:
            return jk, True
        el_id = (title_el.get("id") or "").strip()
        if el_id:
            return el_id.replace("job_", "", 1), True

    jk = (card.get("data-jk") or "").strip()
    if jk:
        return jk, True
    holder = card.select_one("[data-jk]")
    if holder is not None and (holder.get("data-jk") or "").strip():
        return holder.get("data-jk").strip(), True

    m = JK_RE.search(link or "")
    if m:
        return m.group(1), True

    return random_id("ind-"), False


class IndeedAdapter(SourceAdapter):
    name = SOURCE_INDEED
    id_prefix = "ind-"
    base_url = INDEED_ORIGIN
    card_selectors = CARD_SELECTORS

    def parse_card(self, card: Tag, base_url: str) -> Optional[RawJobRecord]:
        title = UNKNOWN_TITLE
        link = "#"

        title_el = first_element(card, TITLE_SELECTORS)
        if title_el is not None:
            title = element_text(title_el)
            # hrefs on result cards are site-relative ("/rc/clk?jk=...")
            link = absolute_url(title_el.get("href"), INDEED_ORIGIN)

        job_id, durable = _resolve_id(card, title_el, link)

        job_type = DEFAULT_TYPE
        salary = SALARY_NOT_LISTED
        for item in card.select(METADATA_ITEMS):
            text = element_text(item)
            lowered = text.lower()
            if "$" in lowered or "year" in lowered or "hour" in lowered:
                salary = text
            if "full-time" in lowered or "contract" in lowered or "part-time" in lowered:
                job_type = text

        return RawJobRecord(
            id=job_id,
            title=title,
            company=first_text(card, COMPANY_SELECTORS, UNKNOWN_COMPANY),
            location=first_text(card, LOCATION_SELECTORS, UNKNOWN_LOCATION),
            salary=salary,
            easy_apply="easily apply" in element_text(card).lower(),
            url=link,
            source=self.name,
            type=job_type,
            description=CARD_DESCRIPTION,
            durable_id=durable,
        )
