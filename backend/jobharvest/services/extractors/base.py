"""
Field extraction primitives shared by every source adapter.

Site markup is treated as a moving target: every field is read through an
ordered selector cascade and the first candidate that yields a non-empty
value wins. A miss is never an error, it resolves to a sentinel instead.
"""

from __future__ import annotations

import logging
import re
import uuid
from typing import Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from jobharvest.core.models import (
    SALARY_NOT_LISTED,
    UNKNOWN_COMPANY,
    UNKNOWN_LOCATION,
    UNKNOWN_TITLE,
    RawJobRecord,
)


def normalize_whitespace(s: str) -> str:
    return re.sub(r"\s+", " ", (s or "").strip())


def element_text(el: Optional[Tag]) -> str:
    if el is None:
        return ""
    return normalize_whitespace(el.get_text(" ", strip=True))


def first_element(node: Tag, selectors: Sequence[str], *, require_text: bool = True) -> Optional[Tag]:
    """First element matched by the earliest selector in the cascade."""
    for sel in selectors:
        el = node.select_one(sel)
        if el is None:
            continue
        if require_text and not element_text(el):
            continue
        return el
    return None


def first_text(node: Tag, selectors: Sequence[str], default: str) -> str:
    el = first_element(node, selectors)
    return element_text(el) if el is not None else default


def select_cards(soup: Tag, selectors: Sequence[str]) -> Tuple[List[Tag], Optional[str]]:
    """
    Return the cards matched by the first selector that yields anything.

    Results are never merged across selectors: a broad later selector would
    re-match cards already found by an earlier one.
    """
    for sel in selectors:
        cards = soup.select(sel)
        if cards:
            return cards, sel
    return [], None


def random_id(prefix: str) -> str:
    return f"{prefix}{uuid.uuid4().hex[:9]}"


def resolve_job_id(
    card: Tag,
    url: str,
    *,
    attrs: Sequence[str],
    url_patterns: Sequence[re.Pattern],
    prefix: str,
    id_prefix_durable: str = "",
) -> Tuple[str, bool]:
    """
    Resolve a stable id for a card: attribute on the card, then on a
    descendant, then a durable segment parsed out of the detail URL. Only if
    all of those miss is a random id minted (durable=False).
    """
    for attr in attrs:
        val = (card.get(attr) or "").strip()
        if val:
            return id_prefix_durable + val, True

    for attr in attrs:
        el = card.select_one(f"[{attr}]")
        if el is not None:
            val = (el.get(attr) or "").strip()
            if val:
                return id_prefix_durable + val, True

    for pattern in url_patterns:
        m = pattern.search(url or "")
        if m:
            return id_prefix_durable + m.group(1), True

    return random_id(prefix), False


def absolute_url(href: Optional[str], base: str) -> str:
    href = (href or "").strip()
    if not href or href == "#":
        return "#"
    return urljoin(base, href)


def any_text_matches(elements: Iterable[Tag], predicate) -> bool:
    for el in elements:
        if predicate(element_text(el).lower()):
            return True
    return False


class SourceAdapter:
    """
    Common extraction contract: ``extract(html) -> list[RawJobRecord]``.

    Subclasses set the card selector cascade and implement ``parse_card``.
    ``extract`` never raises for a bad card: the card is logged and skipped.
    """

    name = "Generic"
    id_prefix = "gen-"
    base_url = ""
    card_selectors: Sequence[str] = ()

    def __init__(self):
        self.logger = logging.getLogger(f"extract.{self.name.lower()}")

    def extract(self, html: str, base_url: Optional[str] = None) -> List[RawJobRecord]:
        soup = BeautifulSoup(html or "", "html.parser")
        base = base_url or self.base_url
        cards = self.find_cards(soup)
        if not cards:
            self.logger.info(f"[extract:{self.name}] no job cards found with any known selectors")
            return []

        jobs: List[RawJobRecord] = []
        for card in cards:
            try:
                record = self.parse_card(card, base)
            except Exception as e:
                self.logger.warning(f"[extract:{self.name}] error parsing a job card: {e}")
                continue
            if record is None:
                continue
            if not record.title or record.title == UNKNOWN_TITLE:
                continue
            jobs.append(record)

        self.logger.info(f"[extract:{self.name}] scraped {len(jobs)} jobs from {len(cards)} cards")
        return jobs

    def find_cards(self, soup: BeautifulSoup) -> List[Tag]:
        cards, sel = select_cards(soup, self.card_selectors)
        if sel:
            self.logger.debug(f"[extract:{self.name}] found {len(cards)} cards using selector: {sel}")
        return cards

    def parse_card(self, card: Tag, base_url: str) -> Optional[RawJobRecord]:
        raise NotImplementedError


__all__ = [
    "SALARY_NOT_LISTED",
    "UNKNOWN_COMPANY",
    "UNKNOWN_LOCATION",
    "UNKNOWN_TITLE",
    "SourceAdapter",
    "absolute_url",
    "any_text_matches",
    "element_text",
    "first_element",
    "first_text",
    "normalize_whitespace",
    "random_id",
    "resolve_job_id",
    "select_cards",
]
