import re
from typing import Optional

from bs4 import Tag

from jobharvest.core.models import SOURCE_LINKEDIN, RawJobRecord
from jobharvest.services.extractors.base import (
    SALARY_NOT_LISTED,
    UNKNOWN_COMPANY,
    UNKNOWN_LOCATION,
    UNKNOWN_TITLE,
    SourceAdapter,
    absolute_url,
    any_text_matches,
    element_text,
    first_element,
    first_text,
    resolve_job_id,
)
from jobharvest.services.extractors.salary import first_salary

JOB_VIEW_RE = re.compile(r"/jobs/view/(\d+)")
CURRENT_JOB_RE = re.compile(r"[?&]currentJobId=(\d+)")

CARD_SELECTORS = (
    ".job-card-container",  # classic view
    ".jobs-search-results__list-item",
    ".scaffold-layout__list-item",
    "li.jobs-search-results__list-item",
    "div[data-job-id]",
)

TITLE_SELECTORS = (
    ".job-card-list__title--link",
    ".job-card-list__title",
    ".job-card-container__link",
    ".disabled-ember-anchor",
    "a.job-card-container__link",
    ".base-card__full-link",
    ".base-search-card__title",
    'a[data-tracking-control-name*="job"]',
)

COMPANY_SELECTORS = (
    ".artdeco-entity-lockup__subtitle",
    ".job-card-container__company-name",
    ".base-search-card__subtitle",
    "a.job-card-container__company-link",
    ".job-card-container__primary-description",
)

LOCATION_SELECTORS = (
    ".job-card-container__metadata-wrapper li",
    ".job-card-container__metadata-item",
    ".base-search-card__metadata",
    ".job-search-card__location",
)

IMAGE_SELECTORS = (
    ".job-card-list__logo img",
    ".ivm-view-attr__img--centered",
    "img.artdeco-entity-image",
    ".job-card-square-logo img",
)

# Salary tiers, most specific first.
SALARY_METADATA = ".artdeco-entity-lockup__metadata"
SALARY_SPANS = 'span[dir="ltr"]'
SALARY_ITEMS = ".job-card-container__metadata-wrapper li, .artdeco-entity-lockup__metadata li"

FOOTER_SPANS = (
    '.job-card-container__footer-wrapper span[dir="ltr"], '
    '.job-card-list__footer-wrapper span[dir="ltr"]'
)
FOOTER_ITEMS = ".job-card-container__footer-wrapper li, .job-card-list__footer-wrapper li"

EASY_APPLY = "easy apply"


def extract_salary(card: Tag) -> str:
    """
    Three-tier salary search: metadata block, then every ltr span, then
    metadata/footer list items. The first tier that matches wins.
    """
    metadata = card.select_one(SALARY_METADATA)
    if metadata is not None:
        found = first_salary([element_text(metadata)])
        if found:
            return found

    found = first_salary(element_text(span) for span in card.select(SALARY_SPANS))
    if found:
        return found

    found = first_salary(element_text(li) for li in card.select(SALARY_ITEMS))
    if found:
        return found

    return SALARY_NOT_LISTED


def detect_easy_apply(card: Tag) -> bool:
    if any_text_matches(card.select(FOOTER_SPANS), lambda t: t == EASY_APPLY):
        return True
    if any_text_matches(card.select(FOOTER_ITEMS), lambda t: EASY_APPLY in t):
        return True
    return EASY_APPLY in element_text(card).lower()


class LinkedInAdapter(SourceAdapter):
    name = SOURCE_LINKEDIN
    id_prefix = "li-"
    base_url = "https://www.linkedin.com"
    card_selectors = CARD_SELECTORS

    def parse_card(self, card: Tag, base_url: str) -> Optional[RawJobRecord]:
        title = UNKNOWN_TITLE
        link = "#"

        title_el = first_element(card, TITLE_SELECTORS)
        if title_el is not None:
            title = element_text(title_el)
            if title_el.name == "a":
                link = absolute_url(title_el.get("href"), base_url)
            else:
                anchor = card.select_one('a[href*="/jobs/view/"]')
                if anchor is not None:
                    link = absolute_url(anchor.get("href"), base_url)

        img = first_element(card, IMAGE_SELECTORS, require_text=False)
        image = (img.get("src") or "").strip() if img is not None else ""

        job_id, durable = resolve_job_id(
            card,
            link,
            attrs=("data-job-id", "data-occludable-job-id"),
            url_patterns=(JOB_VIEW_RE, CURRENT_JOB_RE),
            prefix=self.id_prefix,
        )
        if not durable:
            self.logger.debug(f"[extract:{self.name}] no durable id for {title!r}, minted {job_id}")

        return RawJobRecord(
            id=job_id,
            title=title,
            company=first_text(card, COMPANY_SELECTORS, UNKNOWN_COMPANY),
            location=first_text(card, LOCATION_SELECTORS, UNKNOWN_LOCATION),
            salary=extract_salary(card),
            easy_apply=detect_easy_apply(card),
            url=link,
            image=image or None,
            source=self.name,
            durable_id=durable,
        )
