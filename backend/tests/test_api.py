"""
HTTP surface tests. The crawler and the enrichment trigger are rebuilt with
fakes so nothing launches a browser; background tasks run on the TestClient
portal loop, hence the ``with TestClient(...)`` blocks.
"""
import time

import pytest
from fastapi.testclient import TestClient

from jobharvest.core.enrichment_trigger import EnrichmentTrigger
from jobharvest.core.models import EnrichmentSummary, Location, RawJobRecord
from jobharvest.main import create_app
from jobharvest.services.crawler import CrawlScheduler

from conftest import FakeSession, SleepRecorder


def _job(i, **overrides):
    job = {
        "id": f"job-{i}",
        "title": f"Security Engineer {i}",
        "company": "Acme",
        "location": "Austin, TX",
        "salary": "$100K/yr - $130K/yr",
        "easyApply": False,
        "url": f"https://www.linkedin.com/jobs/view/{i}/",
        "source": "LinkedIn",
    }
    job.update(overrides)
    return job


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


@pytest.fixture
def app(tmp_path, cfg, monkeypatch):
    monkeypatch.delenv("SCHEDULER_MODE", raising=False)
    app = create_app(str(tmp_path / "api.sqlite3"), cfg=cfg)
    app.state.locations = [
        Location("San Francisco, CA", "102277331", "california"),
        Location("Austin, TX", "104472865", "texas"),
        Location("Los Angeles, CA", "102448103", "california"),
    ]
    yield app
    app.state.db.close()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


class TestUploadAndJobs:
    def test_upload_then_list(self, client):
        r = client.post("/api/upload", json=[_job(1), _job(2)])
        assert r.status_code == 200
        assert r.json() == {"message": "Jobs received", "added": 2}

        r = client.post("/api/upload", json=[_job(1), _job(2)])
        assert r.json()["added"] == 0

        body = client.get("/api/jobs").json()
        assert body["total"] == 2
        assert body["has_more"] is False
        item = body["items"][0]
        assert item["salary_min"] == 100000.0
        assert item["easyApply"] is False
        assert item["postedAt"]

    def test_upload_rejects_non_array(self, client):
        r = client.post("/api/upload", json={"id": "1"})
        assert r.status_code == 400
        assert "Invalid data format" in r.json()["detail"]
        assert client.get("/api/health").json() == {"ok": True, "jobs": 0}

    def test_list_filters_and_paging(self, client):
        client.post(
            "/api/upload",
            json=[
                _job(1, location="Remote"),
                _job(2, location="Seattle, WA", company="Globex"),
                _job(3, salary="$60K/yr"),
            ],
        )
        assert client.get("/api/jobs", params={"remote": 1}).json()["total"] == 1
        assert client.get("/api/jobs", params={"company": "globex"}).json()["total"] == 1
        assert client.get("/api/jobs", params={"location": "seattle,austin"}).json()["total"] == 2
        assert client.get("/api/jobs", params={"salary_min": 90000}).json()["total"] == 2

        page = client.get("/api/jobs", params={"limit": 2, "offset": 0}).json()
        assert len(page["items"]) == 2
        assert page["has_more"] is True

    def test_bad_query_params(self, client):
        assert client.get("/api/jobs", params={"limit": 0}).status_code == 422
        assert client.get("/api/jobs", params={"sort": "random"}).status_code == 422

    def test_detail_has_full_description(self, client):
        long_desc = "d" * 600
        client.post("/api/upload", json=[_job(1, description=long_desc)])

        listed = client.get("/api/jobs").json()["items"][0]
        assert listed["description"] == "d" * 300 + "..."

        detail = client.get("/api/jobs/job-1").json()
        assert detail["description"] == long_desc

    def test_detail_not_found(self, client):
        r = client.get("/api/jobs/missing")
        assert r.status_code == 404
        assert r.json()["detail"] == "Job not found"


class TestLocations:
    def test_sorted_with_state_labels(self, client):
        body = client.get("/api/locations").json()
        assert [c["name"] for c in body["cities"]] == [
            "Austin, TX",
            "Los Angeles, CA",
            "San Francisco, CA",
        ]
        assert body["cities"][0] == {"name": "Austin, TX", "geoId": "104472865", "state": "TEXAS"}
        assert body["states"] == ["california", "texas"]
        assert body["total"] == 3


class FakeWorker:
    async def enrich(self):
        return EnrichmentSummary(total=1, enriched=1, failed=0)


class TestEnrichment:
    def test_run_is_accepted_and_completes(self, app, client):
        app.state.enrichment = EnrichmentTrigger(app.state.db, cfg=app.state.cfg, worker_factory=FakeWorker)

        r = client.post("/api/enrichment/run")
        assert r.status_code == 202
        assert r.json()["accepted"] is True

        assert wait_for(lambda: client.get("/api/enrichment/status").json()["last_summary"] is not None)
        status = client.get("/api/enrichment/status").json()
        assert status["last_summary"] == {"total": 1, "enriched": 1, "failed": 0}
        assert status["running"] is False

    def test_status_counts_candidates(self, client):
        client.post("/api/upload", json=[_job(1), _job(2, description="x" * 150)])
        status = client.get("/api/enrichment/status").json()
        assert status["count"] == 1
        assert status["preview"][0]["id"] == "job-1"


class TestCrawl:
    @pytest.fixture
    def session(self):
        def results_for(url):
            return [RawJobRecord(id=f"li-{abs(hash(url))}", title="SOC Analyst", url=url, source="LinkedIn")]

        return FakeSession(results_for)

    @pytest.fixture
    def crawler(self, app, cfg, session):
        crawler = CrawlScheduler(
            gateway=app.state.gateway,
            cfg=cfg,
            session_factory=lambda: session,
            sleep=SleepRecorder(),
        )
        app.state.crawler = crawler
        return crawler

    def test_start_runs_to_completion(self, client, crawler, session):
        r = client.post(
            "/api/crawl/start",
            json={"keywords": ["SOC Analyst", "Pentester"], "states": ["texas"]},
        )
        assert r.status_code == 200
        assert r.json()["progress"]["total"] == 2

        assert wait_for(lambda: client.get("/api/crawl/status").json()["state"] == "complete")
        status = client.get("/api/crawl/status").json()
        assert status["job_count"] == 2
        assert status["last_ingested"] == 2
        assert status["progress"]["percent"] == 100
        assert all("geoId=104472865" in u for u in session.visited)
        assert client.get("/api/health").json()["jobs"] == 2

    def test_free_text_locations(self, client, crawler, session):
        r = client.post(
            "/api/crawl/start",
            json={"keywords": ["GRC"], "locations": ["Austin, TX", "Remote"], "auto_ingest": False},
        )
        assert r.status_code == 200
        assert wait_for(lambda: client.get("/api/crawl/status").json()["state"] == "complete")
        assert "geoId=104472865" in session.visited[0]
        assert "location=Remote" in session.visited[1]

        r = client.post("/api/crawl/ingest")
        assert r.json() == {"message": "Jobs received", "added": 2, "collected": 2}

    def test_start_validation(self, client, crawler):
        r = client.post("/api/crawl/start", json={"keywords": []})
        assert r.status_code == 400
        r = client.post("/api/crawl/start", json={"keywords": ["x"], "source": "Generic"})
        assert r.status_code == 400

    def test_stop_and_resume_when_idle(self, client, crawler):
        assert client.post("/api/crawl/stop").status_code == 400
        assert client.post("/api/crawl/resume").status_code == 400


class TestSchedulerAndStatus:
    def test_manual_run(self, app, client):
        async def cycle():
            return {"boards": {"fetched": 0, "added": 0, "errors": {}}}

        app.state.scheduler._cycle = cycle
        body = client.post("/api/run").json()
        assert body["ok"] is True
        assert body["trigger"] == "manual"
        assert body["stats"]["boards"]["added"] == 0

    def test_scheduler_status_off(self, client):
        body = client.get("/api/scheduler/status").json()
        assert body["enabled"] is False
        assert body["mode"] == "off"

    def test_aggregate_status(self, client):
        body = client.get("/api/status").json()
        assert set(body) == {"scheduler", "crawl", "enrichment"}
        assert body["crawl"]["state"] == "idle"
