import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from jobharvest.core.config import RuntimeConfig, get_runtime_config
from jobharvest.db.repo_jobs import count_enrichment_candidates, list_enrichment_candidates
from jobharvest.services.enricher import EnrichmentWorker

logger = logging.getLogger("enrichment")

PREVIEW_SIZE = 10


def now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class EnrichmentTrigger:
    """
    Fire-and-forget front for the enrichment worker. At most one run is in
    flight; triggering while one is running is accepted but does nothing.
    """

    def __init__(
        self,
        con,
        *,
        cfg: Optional[RuntimeConfig] = None,
        worker_factory: Optional[Callable[[], Any]] = None,
    ):
        self.con = con
        self.cfg = cfg or get_runtime_config()
        self.worker_factory = worker_factory or (lambda: EnrichmentWorker(self.con, cfg=self.cfg))
        self.task: Optional[asyncio.Task] = None
        self._active = False

        self.last_started_at: Optional[str] = None
        self.last_finished_at: Optional[str] = None
        self.last_summary: Optional[dict] = None
        self.last_error: Optional[str] = None

    @property
    def running(self) -> bool:
        return self._active or (self.task is not None and not self.task.done())

    def trigger(self) -> Dict[str, Any]:
        if self.running:
            return {"accepted": True, "already_running": True}
        self.task = asyncio.create_task(self.run())
        return {"accepted": True, "already_running": False}

    async def run(self) -> Optional[dict]:
        self._active = True
        self.last_started_at = now_utc_iso()
        self.last_error = None
        logger.info("[enrich] run started")
        try:
            summary = await self.worker_factory().enrich()
            self.last_summary = summary.to_dict()
            return self.last_summary
        except Exception as e:
            self.last_error = str(e)
            logger.exception("[enrich] run failed")
            return None
        finally:
            self._active = False
            self.last_finished_at = now_utc_iso()

    def status(self) -> Dict[str, Any]:
        preview = list_enrichment_candidates(
            self.con,
            min_length=self.cfg.min_description_length,
            limit=PREVIEW_SIZE,
        )
        return {
            "count": count_enrichment_candidates(self.con, min_length=self.cfg.min_description_length),
            "preview": [t.to_dict() for t in preview],
            "running": self.running,
            "last_summary": self.last_summary,
            "last_error": self.last_error,
            "last_started_at": self.last_started_at,
            "last_finished_at": self.last_finished_at,
        }
