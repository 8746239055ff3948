from datetime import datetime, timedelta, timezone

import pytest

from jobharvest.core.errors import InvalidPayloadError
from jobharvest.core.models import RawJobRecord
from jobharvest.db.repo_jobs import get_job
from jobharvest.services.ingest import IngestionGateway, normalize_incoming


def _count(con) -> int:
    return con.execute("SELECT COUNT(*) AS c FROM jobs").fetchone()["c"]


def _job(**overrides):
    job = {
        "id": "3812345678",
        "title": "SOC Analyst",
        "company": "Acme",
        "location": "Austin, TX",
        "salary": "$90K/yr - $110K/yr",
        "easyApply": True,
        "url": "https://www.linkedin.com/jobs/view/3812345678/",
        "source": "LinkedIn",
    }
    job.update(overrides)
    return job


class TestNormalizeIncoming:
    def test_defaults(self):
        row = normalize_incoming({"url": "https://jobs.example/1"})
        assert row["title"] == "Unknown Title"
        assert row["company"] == "Unknown Company"
        assert row["location"] == "Remote"
        assert row["type"] == "Full-time"
        assert row["salary"] == "Not listed"
        assert row["source"] == "External"
        assert row["easy_apply"] == 0
        assert row["description"] is None
        assert row["id"].startswith("ext-")

    def test_id_from_url_is_stable(self):
        a = normalize_incoming({"url": "https://jobs.example/1"})
        b = normalize_incoming({"url": "https://jobs.example/1"})
        assert a["id"] == b["id"]

    def test_accepts_raw_record(self):
        rec = RawJobRecord(id="wwr-x", title="Engineer", easy_apply=True, source="WeWorkRemotely")
        row = normalize_incoming(rec)
        assert row["id"] == "wwr-x"
        assert row["easy_apply"] == 1
        assert row["source"] == "WeWorkRemotely"

    def test_source_alias(self):
        assert normalize_incoming(_job(source="linkedin"))["source"] == "LinkedIn"

    def test_salary_bounds(self):
        row = normalize_incoming(_job())
        assert row["salary_min"] == 90000.0
        assert row["salary_max"] == 110000.0

    def test_rejects_non_object(self):
        with pytest.raises(TypeError):
            normalize_incoming(["not", "a", "job"])


class TestIngestionGateway:
    def test_insert_and_idempotent_replay(self, con):
        gw = IngestionGateway(con)
        batch = [_job(), _job(id="2", url="https://www.linkedin.com/jobs/view/2/")]

        assert gw.ingest(batch) == 2
        assert gw.ingest(batch) == 0
        assert _count(con) == 2

    def test_existing_row_is_not_overwritten(self, con):
        gw = IngestionGateway(con)
        gw.ingest([_job(title="Original Title")])
        gw.ingest([_job(title="Changed Title", company="Someone Else")])

        stored = get_job(con, "3812345678")
        assert stored.title == "Original Title"
        assert stored.company == "Acme"

    def test_same_source_and_url_deduped(self, con):
        gw = IngestionGateway(con)
        assert gw.ingest([_job(id="li-aaaaaaaaa")]) == 1
        # second scrape minted a different random id for the same posting
        assert gw.ingest([_job(id="li-bbbbbbbbb")]) == 0
        assert _count(con) == 1

    def test_same_url_different_source_is_kept(self, con):
        gw = IngestionGateway(con)
        gw.ingest([_job(id="a")])
        assert gw.ingest([_job(id="b", source="Indeed")]) == 1

    def test_placeholder_urls_do_not_dedupe(self, con):
        gw = IngestionGateway(con)
        added = gw.ingest([_job(id="x1", url="#"), _job(id="x2", url="#")])
        assert added == 2

    def test_non_list_payload_rejected(self, con):
        gw = IngestionGateway(con)
        for payload in ({"id": "1"}, "jobs", None, 42):
            with pytest.raises(InvalidPayloadError):
                gw.ingest(payload)
        assert _count(con) == 0

    def test_bad_record_is_skipped(self, con):
        gw = IngestionGateway(con)
        added = gw.ingest(["garbage", _job(), 17])
        assert added == 1
        assert _count(con) == 1

    def test_timestamps(self, con):
        gw = IngestionGateway(con, retention_days=30)
        before = datetime.now(timezone.utc)
        gw.ingest([_job()])
        after = datetime.now(timezone.utc)

        row = con.execute("SELECT added_at, expires_at FROM jobs").fetchone()
        added = datetime.fromisoformat(row["added_at"])
        expires = datetime.fromisoformat(row["expires_at"])
        assert before <= added <= after
        assert expires - added == timedelta(days=30)

    def test_empty_batch(self, con):
        assert IngestionGateway(con).ingest([]) == 0
