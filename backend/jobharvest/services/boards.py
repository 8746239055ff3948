import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional

from jobharvest.core.config import RuntimeConfig, get_runtime_config
from jobharvest.core.models import SOURCE_REMOTEOK, SOURCE_WWR
from jobharvest.services.browser import fetch_html
from jobharvest.services.extractors import remoteok, weworkremotely
from jobharvest.services.extractors.registry import get_adapter

logger = logging.getLogger("boards")

BOARDS = {
    SOURCE_WWR: weworkremotely.build_search_url,
    SOURCE_REMOTEOK: remoteok.build_search_url,
}

Fetcher = Callable[[str], Awaitable[str]]


async def refresh_boards(
    gateway,
    terms: Optional[Iterable[str]] = None,
    *,
    cfg: Optional[RuntimeConfig] = None,
    fetcher: Optional[Fetcher] = None,
) -> Dict[str, Any]:
    """
    Fetch each (board, term) search page, extract it and ingest the result.
    One board failing never stops the others.
    """
    cfg = cfg or get_runtime_config()
    terms = [t.strip() for t in (terms or cfg.board_search_terms) if t and t.strip()]

    if fetcher is None:
        async def fetcher(url: str) -> str:
            return await fetch_html(url, mode=cfg.board_fetch_mode, headless=cfg.headless)

    fetched = 0
    added = 0
    errors: Dict[str, str] = {}

    for term in terms:
        for board, build_url in BOARDS.items():
            key = f"{board}:{term}"
            url = build_url(term)
            try:
                logger.info(f"[boards] scraping {board} for {term!r}: {url}")
                html = await fetcher(url)
                jobs = get_adapter(board).extract(html, url)
                logger.info(f"[boards] found {len(jobs)} jobs on {board}")
                fetched += len(jobs)
                added += gateway.ingest(jobs)
            except Exception as e:
                errors[key] = str(e)
                logger.error(f"[boards] {board} scraping error for {term!r}: {e}")

    return {"fetched": fetched, "added": added, "errors": errors}
