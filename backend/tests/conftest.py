import asyncio
import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

# jobharvest.main builds a module-level app on import; keep it off the cwd.
os.environ.setdefault("DB_PATH", os.path.join(tempfile.gettempdir(), "jobharvest-pytest.sqlite3"))

from jobharvest.core.config import RuntimeConfig
from jobharvest.db.conn import connect
from jobharvest.db.repo_jobs import insert_job_if_absent
from jobharvest.db.schema import init_db


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "jobs.sqlite3")
    init_db(path)
    return path


@pytest.fixture
def con(db_path):
    c = connect(db_path)
    yield c
    c.close()


@pytest.fixture
def cfg():
    return RuntimeConfig()


class SleepRecorder:
    """Stands in for asyncio.sleep; records every requested delay."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def insert_job(con):
    """Insert a job row directly, bypassing the gateway defaults."""

    def _insert(**overrides) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        added = overrides.pop("added_at", None) or now.isoformat()
        row = {
            "id": "job-1",
            "title": "Security Analyst",
            "company": "Acme",
            "location": "Austin, TX",
            "type": "Full-time",
            "salary": "Not listed",
            "salary_min": None,
            "salary_max": None,
            "easy_apply": 0,
            "description": None,
            "url": "https://example.com/jobs/view/1",
            "image": None,
            "source": "LinkedIn",
            "added_at": added,
            "expires_at": (now + timedelta(days=30)).isoformat(),
        }
        row.update(overrides)
        assert insert_job_if_absent(con, row)
        return row

    return _insert


# -------------------------
# Fake Playwright objects for the enrichment worker
# -------------------------
class FakeElement:
    def __init__(self, text: str):
        self.text = text

    async def inner_text(self) -> str:
        return self.text


class FakePage:
    """
    ``browser.pages[url]`` maps CSS selectors to element text for that URL;
    ``browser.goto_error`` is raised from every navigation when set.
    """

    def __init__(self, browser: "FakeBrowser"):
        self.browser = browser
        self.url = ""

    async def goto(self, url: str, **kwargs) -> None:
        self.browser.gotos.append(url)
        self.browser.in_flight += 1
        self.browser.max_in_flight = max(self.browser.max_in_flight, self.browser.in_flight)
        try:
            # yield so sibling fetches in the same batch overlap
            await asyncio.sleep(0)
            error = self.browser.goto_error
            if error is not None:
                raise error
            self.url = url
        finally:
            self.browser.in_flight -= 1

    async def wait_for_timeout(self, ms: int) -> None:
        return None

    async def wait_for_selector(self, selector: str, timeout: int = 0) -> None:
        page = self.browser.pages.get(self.url, {})
        for part in selector.split(","):
            if part.strip() in page:
                return None
        raise TimeoutError(f"timeout waiting for {selector}")

    async def query_selector(self, selector: str) -> Optional[FakeElement]:
        text = self.browser.pages.get(self.url, {}).get(selector)
        return FakeElement(text) if text is not None else None

    async def inner_text(self, selector: str) -> str:
        return self.browser.pages.get(self.url, {}).get(selector, "")


class FakeContext:
    def __init__(self, browser: "FakeBrowser"):
        self.browser = browser
        self.closed = False

    async def new_page(self) -> FakePage:
        return FakePage(self.browser)

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self, pages: Optional[Dict[str, Dict[str, str]]] = None):
        self.pages = pages or {}
        self.contexts: List[FakeContext] = []
        self.gotos: List[str] = []
        self.goto_error: Optional[Exception] = None
        self.in_flight = 0
        self.max_in_flight = 0
        self.entered = 0
        self.closed = 0

    async def new_context(self, **kwargs) -> FakeContext:
        ctx = FakeContext(self)
        self.contexts.append(ctx)
        return ctx

    def attempts_for(self, url: str) -> int:
        return sum(1 for u in self.gotos if u == url)

    # used as the worker's browser_factory() result
    async def __aenter__(self) -> "FakeBrowser":
        self.entered += 1
        return self

    async def __aexit__(self, *exc) -> None:
        self.closed += 1


@pytest.fixture
def fake_browser():
    return FakeBrowser()


# -------------------------
# Fake crawl session
# -------------------------
class FakeSession:
    """
    Records navigations; ``extract`` returns whatever ``results_for(url)``
    produces. Hooks allow a test to fail or stop the crawl mid-step.
    """

    def __init__(self, results_for=None):
        self.visited: List[str] = []
        self.extract_calls = 0
        self.results_for = results_for or (lambda url: [])
        self.navigate_hook = None
        self.extract_hook = None
        self.opened = 0
        self.closed = 0

    async def navigate(self, url: str) -> None:
        self.visited.append(url)
        if self.navigate_hook is not None:
            self.navigate_hook(url)

    async def extract(self, adapter) -> list:
        self.extract_calls += 1
        if self.extract_hook is not None:
            self.extract_hook(self.visited[-1])
        return list(self.results_for(self.visited[-1]))

    async def __aenter__(self) -> "FakeSession":
        self.opened += 1
        return self

    async def __aexit__(self, *exc) -> None:
        self.closed += 1


@pytest.fixture
def fake_session():
    return FakeSession()


class RecordingGateway:
    def __init__(self):
        self.batches: List[list] = []

    def ingest(self, records) -> int:
        self.batches.append(list(records))
        return len(records)


@pytest.fixture
def recording_gateway():
    return RecordingGateway()
