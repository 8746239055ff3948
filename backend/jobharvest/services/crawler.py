"""
Crawl scheduler: walks a (location x keyword) matrix through one browser tab.

The matrix is traversed strictly in order, outer loop over locations, inner
loop over keywords, one step at a time. All waits are ``await`` points; no
two steps are ever in flight together because they share the tab.

State machine::

    idle --start--> running --(matrix exhausted)--> complete
                       |
                      stop --> stopped --resume--> running
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence
from urllib.parse import quote, quote_plus

from jobharvest.core.config import RuntimeConfig, get_runtime_config
from jobharvest.core.errors import CrawlStateError
from jobharvest.core.models import (
    SOURCE_GENERIC,
    SOURCE_INDEED,
    SOURCE_LINKEDIN,
    SOURCE_REMOTEOK,
    SOURCE_WWR,
    Location,
    RawJobRecord,
    normalize_source,
)
from jobharvest.services.extractors import remoteok, weworkremotely
from jobharvest.services.extractors.registry import get_adapter

logger = logging.getLogger("crawler")

STATE_IDLE = "idle"
STATE_RUNNING = "running"
STATE_STOPPED = "stopped"
STATE_COMPLETE = "complete"

LINKEDIN_SEARCH_URL = "https://www.linkedin.com/jobs/search/"
INDEED_SEARCH_URL = "https://www.indeed.com/jobs"

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class CrawlOptions:
    source: str = SOURCE_LINKEDIN
    remote_only: bool = False
    easy_apply_only: bool = False
    auto_ingest: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "remote_only": self.remote_only,
            "easy_apply_only": self.easy_apply_only,
            "auto_ingest": self.auto_ingest,
        }


@dataclass
class CrawlState:
    locations: List[Location] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    location_index: int = 0
    keyword_index: int = 0
    running: bool = False
    collected: List[RawJobRecord] = field(default_factory=list)
    phase: str = STATE_IDLE
    status_text: str = "Idle"
    errors: int = 0
    last_error: Optional[str] = None

    @property
    def total_steps(self) -> int:
        return len(self.locations) * len(self.keywords)

    @property
    def completed_steps(self) -> int:
        return self.location_index * len(self.keywords) + self.keyword_index

    @property
    def exhausted(self) -> bool:
        return self.location_index >= len(self.locations)

    def current(self):
        if self.exhausted or not self.keywords:
            return None
        return self.locations[self.location_index], self.keywords[self.keyword_index]

    def advance(self) -> None:
        self.keyword_index += 1
        if self.keyword_index >= len(self.keywords):
            self.keyword_index = 0
            self.location_index += 1


def build_search_url(source: str, keyword: str, location: Location, options: CrawlOptions) -> str:
    src = normalize_source(source)

    if src == SOURCE_LINKEDIN:
        url = (
            f"{LINKEDIN_SEARCH_URL}?keywords={quote(keyword, safe='')}"
            "&origin=JOB_SEARCH_PAGE_SEARCH_BUTTON&refresh=true"
        )
        if location.geo_id:
            url += f"&geoId={location.geo_id}"
        else:
            url += f"&location={quote(location.name, safe='')}"
        if options.remote_only:
            url += "&f_WT=2"
        if options.easy_apply_only:
            url += "&f_AL=true"
        return url

    if src == SOURCE_INDEED:
        url = f"{INDEED_SEARCH_URL}?q={quote_plus(keyword)}&l={quote_plus(location.name)}"
        if options.remote_only:
            url += "&sc=0kf%3Aattr%28DSQF7%29%3B"
        if options.easy_apply_only:
            url += "&iafilter=1"
        return url

    # remote boards ignore the location axis
    if src == SOURCE_WWR:
        return weworkremotely.build_search_url(keyword)
    if src == SOURCE_REMOTEOK:
        return remoteok.build_search_url(keyword)

    raise CrawlStateError(f"source {source!r} has no search URL; cannot crawl it")


async def run_step(
    state: CrawlState,
    session: Any,
    adapter: Any,
    options: CrawlOptions,
    *,
    cfg: RuntimeConfig,
    sleep: Sleep,
) -> CrawlState:
    """
    Execute the unit of work the indices point at, then advance them.

    A navigation or extraction failure is recorded on the state and the
    matrix still advances.
    """
    unit = state.current()
    if unit is None:
        return state
    location, keyword = unit
    label = f"{location.name} / {keyword!r}"

    try:
        url = build_search_url(options.source, keyword, location, options)
        state.status_text = f"Navigating: {label}"
        logger.info(f"[crawl] step {state.completed_steps + 1}/{state.total_steps} {label} -> {url}")

        await session.navigate(url)
        await sleep(cfg.settle_delay_s)

        state.status_text = f"Scraping: {label}"
        jobs = await session.extract(adapter)
        state.collected.extend(jobs)
        state.status_text = (
            f"Found {len(jobs)} jobs for {label}" if jobs else f"No jobs found for {label}"
        )
        state.advance()
        return state
    except Exception as e:
        state.errors += 1
        state.last_error = f"{label}: {e}"
        state.status_text = f"Error at {label}: {e}"
        logger.warning(f"[crawl] step failed {label}: {e}", exc_info=True)
        state.advance()
        await sleep(cfg.error_delay_s)
        return state


class CrawlScheduler:
    def __init__(
        self,
        *,
        gateway=None,
        cfg: Optional[RuntimeConfig] = None,
        session_factory: Optional[Callable[[], Any]] = None,
        sleep: Optional[Sleep] = None,
    ):
        self.gateway = gateway
        self.cfg = cfg or get_runtime_config()
        self.session_factory = session_factory
        self._sleep: Sleep = sleep or asyncio.sleep
        self.state = CrawlState()
        self.options = CrawlOptions()
        self.last_ingested: Optional[int] = None
        self._looping = False
        self._task: Optional[asyncio.Task] = None

    # -------------------------
    # transitions
    # -------------------------
    def start(
        self,
        locations: Sequence[Location],
        keywords: Sequence[str],
        options: Optional[CrawlOptions] = None,
    ) -> CrawlState:
        if self.state.phase == STATE_RUNNING or self._looping:
            raise CrawlStateError("a crawl is already running")

        locs = list(locations or [])
        kws = [k.strip() for k in (keywords or []) if k and k.strip()]
        if not locs:
            raise CrawlStateError("at least one location is required")
        if not kws:
            raise CrawlStateError("at least one keyword is required")

        opts = options or CrawlOptions()
        opts.source = normalize_source(opts.source)
        if opts.source == SOURCE_GENERIC:
            raise CrawlStateError("the generic adapter has no search page to crawl")

        self.options = opts
        self.last_ingested = None
        self.state = CrawlState(
            locations=locs,
            keywords=kws,
            running=True,
            phase=STATE_RUNNING,
            status_text="Starting",
        )
        logger.info(
            f"[crawl] start source={opts.source} locations={len(locs)} keywords={len(kws)} "
            f"total_searches={self.state.total_steps}"
        )
        return self.state

    def stop(self) -> CrawlState:
        """Cooperative: the step in flight finishes, nothing after it runs."""
        if self.state.phase != STATE_RUNNING:
            raise CrawlStateError(f"cannot stop a crawl that is {self.state.phase}")
        self.state.running = False
        self.state.status_text = "Stopping after current search"
        if not self._looping:
            self._mark_stopped()
        return self.state

    def resume(self) -> CrawlState:
        if self.state.phase != STATE_STOPPED or self._looping:
            raise CrawlStateError(f"cannot resume a crawl that is {self.state.phase}")
        self.state.running = True
        self.state.phase = STATE_RUNNING
        self.state.status_text = "Resuming"
        logger.info(f"[crawl] resume at step {self.state.completed_steps + 1}/{self.state.total_steps}")
        return self.state

    def _mark_stopped(self) -> None:
        self.state.phase = STATE_STOPPED
        self.state.status_text = f"Stopped by user ({len(self.state.collected)} jobs collected)"
        logger.info(f"[crawl] stopped at step {self.state.completed_steps}/{self.state.total_steps}")

    def _mark_complete(self) -> None:
        state = self.state
        state.running = False
        state.phase = STATE_COMPLETE
        state.status_text = f"Finished! Scraped {len(state.collected)} total jobs"
        logger.info(f"[crawl] complete jobs={len(state.collected)} errors={state.errors}")

        if self.options.auto_ingest and state.collected and self.gateway is not None:
            try:
                self.ingest_collected()
            except Exception as e:
                state.last_error = f"auto-ingest failed: {e}"
                logger.exception("[crawl] auto-ingest failed")

    # -------------------------
    # driving
    # -------------------------
    async def run(self, session: Any) -> CrawlState:
        if self.state.phase != STATE_RUNNING:
            raise CrawlStateError(f"cannot run a crawl that is {self.state.phase}")
        if self._looping:
            raise CrawlStateError("crawl loop already active")

        adapter = get_adapter(self.options.source)
        self._looping = True
        try:
            while self.state.running and not self.state.exhausted:
                errors = self.state.errors
                await run_step(self.state, session, adapter, self.options, cfg=self.cfg, sleep=self._sleep)
                # a failed step already waited error_delay_s
                if self.state.running and not self.state.exhausted and self.state.errors == errors:
                    await self._sleep(self.cfg.search_delay_s)
        finally:
            self._looping = False

        # a stop that lands on the final step still counts as a stop
        if self.state.running:
            self._mark_complete()
        else:
            self._mark_stopped()
        return self.state

    async def run_with_browser(self) -> CrawlState:
        if self.session_factory is None:
            raise CrawlStateError("no browser session factory configured")
        try:
            async with self.session_factory() as session:
                return await self.run(session)
        except CrawlStateError:
            raise
        except Exception as e:
            # browser never came up: nothing ran, leave the crawl resumable
            logger.exception("[crawl] browser session failed")
            self.state.running = False
            self.state.last_error = f"browser session failed: {e}"
            if self.state.phase == STATE_RUNNING:
                self._mark_stopped()
            raise

    def launch(self) -> asyncio.Task:
        """Schedule run_with_browser on the running loop (used by the API)."""
        self._task = asyncio.create_task(self.run_with_browser())
        self._task.add_done_callback(self._on_task_done)
        return self._task

    def _on_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"[crawl] run ended with error: {exc}")

    # -------------------------
    # results
    # -------------------------
    def ingest_collected(self) -> int:
        if self.gateway is None:
            raise CrawlStateError("no ingestion gateway configured")
        if self.state.phase == STATE_RUNNING:
            raise CrawlStateError("stop the crawl before ingesting")
        added = self.gateway.ingest(list(self.state.collected))
        self.last_ingested = added
        self.state.status_text = f"Added {added} new jobs to database"
        return added

    def progress(self) -> Dict[str, Any]:
        s = self.state
        total = s.total_steps
        done = min(s.completed_steps, total)
        unit = s.current()
        return {
            "completed": done,
            "total": total,
            "percent": round(done / total * 100) if total else 0,
            "current_location": unit[0].name if unit else None,
            "current_keyword": unit[1] if unit else None,
        }

    def status(self) -> Dict[str, Any]:
        s = self.state
        return {
            "state": s.phase,
            "status": s.status_text,
            "job_count": len(s.collected),
            "errors": s.errors,
            "last_error": s.last_error,
            "last_ingested": self.last_ingested,
            "options": self.options.to_dict(),
            "progress": self.progress(),
        }
