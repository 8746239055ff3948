import re
from typing import Optional
from urllib.parse import quote_plus

from bs4 import Tag

from jobharvest.core.models import SOURCE_WWR, RawJobRecord
from jobharvest.services.extractors.base import (
    SourceAdapter,
    absolute_url,
    element_text,
    resolve_job_id,
)

WWR_ORIGIN = "https://weworkremotely.com"
WWR_SEARCH_URL = WWR_ORIGIN + "/remote-jobs/search"

SLUG_RE = re.compile(r"/remote-jobs/([^/?#]+)")

PLACEHOLDER = "Job scraped from We Work Remotely. Click Apply to see full details."


def build_search_url(term: str) -> str:
    return f"{WWR_SEARCH_URL}?term={quote_plus(term or '')}"


class WeWorkRemotelyAdapter(SourceAdapter):
    """
    Search result lists look like::

        <section class="jobs"><article><ul>
          <li><a href="/remote-jobs/acme-senior-engineer">
            <span class="company">Acme</span>
            <span class="title">Senior Engineer</span>
            <span class="region">Anywhere in the World</span>
          </a></li>
    """

    name = SOURCE_WWR
    id_prefix = "wwr-"
    base_url = WWR_ORIGIN
    card_selectors = ("section.jobs article li",)

    def parse_card(self, card: Tag, base_url: str) -> Optional[RawJobRecord]:
        # "view all" / feature rows have no posting anchor
        anchor = card.find("a", href=True)
        if anchor is None:
            return None

        title_el = card.select_one(".title")
        company_el = card.select_one(".company")
        if title_el is None or company_el is None:
            return None

        region = element_text(card.select_one(".region"))
        url = absolute_url(anchor.get("href"), WWR_ORIGIN)

        job_id, durable = resolve_job_id(
            card,
            url,
            attrs=(),
            url_patterns=(SLUG_RE,),
            prefix=self.id_prefix,
            id_prefix_durable=self.id_prefix,
        )

        return RawJobRecord(
            id=job_id,
            title=element_text(title_el),
            company=element_text(company_el),
            location=region or "Remote",
            salary="See details",
            url=url,
            source=self.name,
            type="Full-Time",
            description=PLACEHOLDER,
            durable_id=durable,
        )
