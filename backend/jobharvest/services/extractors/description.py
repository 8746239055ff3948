"""
Per-source description extractors for job detail pages.

Each extractor works against an async Playwright ``Page`` (only
``wait_for_selector``, ``query_selector`` and ``inner_text`` are used, so
tests can hand in a small fake). Extractors return ``None`` when nothing
usable was found; they never raise for a missing selector.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from jobharvest.core.models import (
    SOURCE_INDEED,
    SOURCE_LINKEDIN,
    SOURCE_REMOTEOK,
    SOURCE_WWR,
    normalize_source,
)

logger = logging.getLogger("extract.description")

GENERIC_SELECTORS = (
    '[class*="description"]',
    '[id*="description"]',
    '[class*="job-detail"]',
    '[class*="content"]',
    "article",
    "main",
)
GENERIC_MIN_TEXT = 200
BODY_TEXT_LIMIT = 2000


async def _element_text(page: Any, selector: str) -> str:
    el = await page.query_selector(selector)
    if el is None:
        return ""
    return ((await el.inner_text()) or "").strip()


@dataclass(frozen=True)
class DescriptionExtractor:
    source: str
    # union selector waited on before reading anything
    ready_selector: str
    selectors: Sequence[str]

    async def extract(self, page: Any, *, wait_ms: int = 10000) -> Optional[str]:
        try:
            await page.wait_for_selector(self.ready_selector, timeout=wait_ms)
        except Exception as e:
            logger.info(f"[extract:{self.source}] description container never appeared: {e}")
            return None

        for sel in self.selectors:
            text = await _element_text(page, sel)
            if text:
                return text
        return None


EXTRACTORS = {
    SOURCE_LINKEDIN: DescriptionExtractor(
        source=SOURCE_LINKEDIN,
        ready_selector=".show-more-less-html__markup, .description__text, .jobs-description",
        selectors=(
            ".show-more-less-html__markup",
            ".description__text",
            ".jobs-description__content",
            ".jobs-box__html-content",
            "article.jobs-description",
        ),
    ),
    SOURCE_INDEED: DescriptionExtractor(
        source=SOURCE_INDEED,
        ready_selector="#jobDescriptionText, .jobsearch-jobDescriptionText, .job-description",
        selectors=(
            "#jobDescriptionText",
            ".jobsearch-jobDescriptionText",
            ".job-description",
            '[id*="jobdescription"]',
            '[class*="jobdescription"]',
        ),
    ),
    SOURCE_WWR: DescriptionExtractor(
        source=SOURCE_WWR,
        ready_selector=".listing-container, .job-description",
        selectors=(
            ".listing-container .listing-container-description",
            ".job-description",
            ".listing-job-description",
            "article .content",
        ),
    ),
    SOURCE_REMOTEOK: DescriptionExtractor(
        source=SOURCE_REMOTEOK,
        ready_selector=".description, .markdown",
        selectors=(
            "td.description .markdown",
            ".description .markdown",
            ".description",
            ".markdown",
        ),
    ),
}


async def extract_generic_description(page: Any) -> Optional[str]:
    """First broad content container with real text, else the start of <body>."""
    for sel in GENERIC_SELECTORS:
        text = await _element_text(page, sel)
        if len(text) > GENERIC_MIN_TEXT:
            return text

    body = ((await page.inner_text("body")) or "").strip()
    return body[:BODY_TEXT_LIMIT] or None


async def extract_description(page: Any, source: Optional[str], *, wait_ms: int = 10000) -> Optional[str]:
    extractor = EXTRACTORS.get(normalize_source(source))
    if extractor is None:
        return await extract_generic_description(page)
    return await extractor.extract(page, wait_ms=wait_ms)
