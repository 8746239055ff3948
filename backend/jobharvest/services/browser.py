"""
Browser and HTTP plumbing shared by the crawler, the enrichment worker and
the board refresh.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import requests
from playwright.async_api import async_playwright

from jobharvest.core.models import RawJobRecord

logger = logging.getLogger("browser")

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
VIEWPORT = {"width": 1920, "height": 1080}

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]


def http_get(url: str, params: Optional[Dict[str, Any]] = None, timeout: int = 30) -> requests.Response:
    headers = {"User-Agent": USER_AGENT}
    last_exc: Optional[Exception] = None
    for attempt in range(3):
        try:
            r = requests.get(url, params=params, headers=headers, timeout=timeout)
            r.raise_for_status()
            return r
        except Exception as e:
            last_exc = e
            time.sleep(0.6 * (2**attempt) + (0.05 * attempt))
    raise last_exc  # type: ignore


@asynccontextmanager
async def launch_browser(*, headless: bool = True) -> AsyncIterator[Any]:
    """One Chromium instance, closed on every exit path."""
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=headless, args=LAUNCH_ARGS)
        logger.info("[browser] launched chromium headless=%s", headless)
        try:
            yield browser
        finally:
            await browser.close()
            logger.info("[browser] closed")


async def render_html(url: str, *, headless: bool = True, timeout_ms: int = 60000) -> str:
    """Fetch a fully rendered page in a throwaway browser."""
    async with launch_browser(headless=headless) as browser:
        page = await browser.new_page(user_agent=USER_AGENT)
        try:
            await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
            try:
                await page.wait_for_timeout(800)
            except Exception:
                pass
            return await page.content() or ""
        finally:
            await page.close()


async def fetch_html(url: str, *, mode: str = "playwright", headless: bool = True, timeout_ms: int = 60000) -> str:
    if mode == "requests":
        r = await asyncio.to_thread(http_get, url, None, max(1, timeout_ms // 1000))
        return r.text or ""
    return await render_html(url, headless=headless, timeout_ms=timeout_ms)


class BrowserSession:
    """
    A single browser tab driven by the crawler.

    With ``user_data_dir`` set, a persistent Chromium profile is used so an
    already logged-in session (e.g. LinkedIn) is reused across crawls.
    """

    def __init__(self, *, headless: bool = True, user_data_dir: str = "", nav_timeout_ms: int = 30000):
        self.headless = headless
        self.user_data_dir = user_data_dir
        self.nav_timeout_ms = nav_timeout_ms
        self._pw = None
        self._browser = None
        self._context = None
        self._page = None

    async def open(self) -> "BrowserSession":
        self._pw = await async_playwright().start()
        try:
            chromium = self._pw.chromium
            if self.user_data_dir:
                self._context = await chromium.launch_persistent_context(
                    self.user_data_dir,
                    headless=self.headless,
                    args=LAUNCH_ARGS,
                    user_agent=USER_AGENT,
                    viewport=VIEWPORT,
                )
            else:
                self._browser = await chromium.launch(headless=self.headless, args=LAUNCH_ARGS)
                self._context = await self._browser.new_context(user_agent=USER_AGENT, viewport=VIEWPORT)
            pages = self._context.pages
            self._page = pages[0] if pages else await self._context.new_page()
        except BaseException:
            # __aexit__ never runs when __aenter__ fails; stop the driver here
            logger.warning("[browser] launch failed, stopping playwright driver")
            await self.close()
            raise
        return self

    async def close(self) -> None:
        try:
            if self._context is not None:
                await self._context.close()
            if self._browser is not None:
                await self._browser.close()
        finally:
            if self._pw is not None:
                await self._pw.stop()
            self._pw = self._browser = self._context = self._page = None

    async def __aenter__(self) -> "BrowserSession":
        return await self.open()

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def navigate(self, url: str) -> None:
        if self._page is None:
            raise RuntimeError("browser session is not open")
        await self._page.goto(url, wait_until="domcontentloaded", timeout=self.nav_timeout_ms)

    async def extract(self, adapter) -> List[RawJobRecord]:
        """Run the adapter against whatever the tab is currently showing."""
        if self._page is None:
            raise RuntimeError("browser session is not open")
        html = await self._page.content()
        return adapter.extract(html, self._page.url)
