"""
Enrichment worker: revisits stored jobs with missing or placeholder
descriptions and fills them in from the job's detail page.

One browser per run. Candidates are processed in fixed-size batches; jobs
inside a batch run concurrently, each in its own browser context, and
batches are separated by a cool-down. A job that never yields a viable
description keeps whatever it had before.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import AbstractAsyncContextManager
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from jobharvest.core.config import RuntimeConfig, get_runtime_config
from jobharvest.core.models import EnrichmentSummary, EnrichmentTask
from jobharvest.db.repo_jobs import list_enrichment_candidates, update_description
from jobharvest.services.browser import USER_AGENT, VIEWPORT, launch_browser
from jobharvest.services.extractors.description import extract_description

logger = logging.getLogger("enricher")

Sleep = Callable[[float], Awaitable[Any]]
BrowserFactory = Callable[[], AbstractAsyncContextManager]


def chunked(items: Sequence[Any], size: int) -> List[List[Any]]:
    size = max(1, int(size))
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class EnrichmentWorker:
    def __init__(
        self,
        con,
        *,
        cfg: Optional[RuntimeConfig] = None,
        browser_factory: Optional[BrowserFactory] = None,
        sleep: Optional[Sleep] = None,
    ):
        self.con = con
        self.cfg = cfg or get_runtime_config()
        self.browser_factory = browser_factory or (lambda: launch_browser(headless=self.cfg.headless))
        self._sleep: Sleep = sleep or asyncio.sleep

    def candidates(self) -> List[EnrichmentTask]:
        return list_enrichment_candidates(
            self.con,
            min_length=self.cfg.min_description_length,
            limit=self.cfg.max_candidates,
        )

    async def fetch_description(self, browser: Any, task: EnrichmentTask) -> Optional[str]:
        """
        Up to max_retries + 1 attempts. A short or missing description
        retries straight away; an exception waits retry_delay_s first.
        """
        attempts = self.cfg.max_retries + 1
        for attempt in range(1, attempts + 1):
            context = None
            try:
                context = await browser.new_context(user_agent=USER_AGENT, viewport=VIEWPORT)
                page = await context.new_page()
                logger.debug(f"[enrich] fetching {task.id} attempt {attempt}/{attempts}: {task.url}")
                await page.goto(task.url, wait_until="domcontentloaded", timeout=self.cfg.page_timeout_ms)
                await page.wait_for_timeout(self.cfg.detail_settle_ms)

                description = await extract_description(
                    page, task.source, wait_ms=self.cfg.selector_wait_ms
                )
                if description and len(description) >= self.cfg.min_viable_description:
                    return description

                if attempt < attempts:
                    logger.info(f"[enrich] {task.id}: description too short, retrying ({attempt}/{self.cfg.max_retries})")
            except Exception as e:
                logger.warning(f"[enrich] error fetching {task.id}: {e}")
                if attempt < attempts:
                    logger.info(f"[enrich] {task.id}: retrying after error ({attempt}/{self.cfg.max_retries})")
                    await self._sleep(self.cfg.retry_delay_s)
            finally:
                if context is not None:
                    try:
                        await context.close()
                    except Exception as e:
                        logger.debug(f"[enrich] context close failed for {task.id}: {e}")
        return None

    async def _process_batch(self, browser: Any, batch: List[EnrichmentTask], summary: EnrichmentSummary) -> None:
        results = await asyncio.gather(
            *(self.fetch_description(browser, task) for task in batch),
            return_exceptions=True,
        )

        for task, result in zip(batch, results):
            if isinstance(result, BaseException):
                logger.error(f"[enrich] failed to fetch {task.title!r}: {result}")
            elif result:
                try:
                    if update_description(self.con, task.id, result):
                        summary.enriched += 1
                        logger.info(f"[enrich] enriched {task.title!r} ({task.company})")
                        continue
                    logger.warning(f"[enrich] job {task.id} vanished before update")
                except Exception as e:
                    logger.error(f"[enrich] failed to update {task.id}: {e}")
            else:
                logger.info(f"[enrich] failed to fetch {task.title!r}")

            summary.failed += 1
            summary.failed_ids.append(task.id)

    async def enrich(self) -> EnrichmentSummary:
        tasks = self.candidates()
        summary = EnrichmentSummary(total=len(tasks))
        if not tasks:
            logger.info("[enrich] no jobs need enrichment")
            return summary

        batches = chunked(tasks, self.cfg.batch_size)
        logger.info(f"[enrich] {len(tasks)} jobs need enrichment, {len(batches)} batches of {self.cfg.batch_size}")

        async with self.browser_factory() as browser:
            for n, batch in enumerate(batches, start=1):
                logger.info(f"[enrich] batch {n}/{len(batches)} ({len(batch)} jobs)")
                await self._process_batch(browser, batch, summary)
                if n < len(batches):
                    await self._sleep(self.cfg.batch_delay_s)

        logger.info(
            f"[enrich] summary total={summary.total} enriched={summary.enriched} failed={summary.failed}"
        )
        return summary
