import asyncio
import os
import logging
from typing import Awaitable, Callable, Optional
from datetime import datetime, timezone, timedelta

from jobharvest.core.config import _parse_bool, get_runtime_config
from jobharvest.services.boards import refresh_boards
from jobharvest.services.ingest import IngestionGateway
from jobharvest.services.retention import apply_retention

logger = logging.getLogger("scheduler")


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


class SchedulerService:
    """
    Periodic trigger. One cycle purges expired rows, refreshes the remote
    boards and then, unless SCHEDULER_ENRICH is off, runs an enrichment pass.
    """

    def __init__(self, app, *, cycle: Optional[Callable[[], Awaitable[dict]]] = None):
        self.app = app
        self.task: Optional[asyncio.Task] = None
        self.running = False
        self._cycle = cycle

        # status fields
        self.mode = (os.getenv("SCHEDULER_MODE") or "off").lower()
        self.interval_minutes = int(os.getenv("REFRESH_INTERVAL_MINUTES") or "60")
        self.enrich = _parse_bool("SCHEDULER_ENRICH", default_value=True)

        self.last_run_started_at: Optional[str] = None
        self.last_run_finished_at: Optional[str] = None
        self.last_run_stats: Optional[dict] = None
        self.last_error: Optional[str] = None

        self.next_run_at: Optional[str] = None  # ISO

    async def start(self):
        self.mode = (os.getenv("SCHEDULER_MODE") or "off").lower()
        self.interval_minutes = int(os.getenv("REFRESH_INTERVAL_MINUTES") or "60")
        self.enrich = _parse_bool("SCHEDULER_ENRICH", default_value=True)

        logger.info(f"Scheduler mode = {self.mode}")

        if self.mode == "off":
            self.running = False
            self.next_run_at = None
            return

        if self.mode == "cron":
            self.running = True
            await self.run_once(trigger="startup-cron")
            self.running = False
            self.next_run_at = None
            return

        if self.mode == "loop":
            if not self.running:
                self.running = True
                self.task = asyncio.create_task(self.loop_runner())

    async def stop(self):
        self.running = False
        if self.task:
            self.task.cancel()
        self.next_run_at = None

    def _set_next_run_eta(self):
        if self.mode != "loop" or not self.running:
            self.next_run_at = None
            return
        eta = now_utc() + timedelta(minutes=self.interval_minutes)
        self.next_run_at = eta.isoformat()

    async def default_cycle(self) -> dict:
        cfg = get_runtime_config()
        gateway = IngestionGateway(self.app.state.db, retention_days=cfg.retention_days)

        stats: dict = {"retention": apply_retention(self.app.state.db)}
        stats["boards"] = await refresh_boards(gateway, cfg=cfg)

        trigger = getattr(self.app.state, "enrichment", None)
        if self.enrich and trigger is not None:
            if trigger.running:
                stats["enrichment"] = {"skipped": "already running"}
            else:
                stats["enrichment"] = await trigger.run()
        return stats

    async def run_once(self, trigger: str = "manual") -> dict:
        self.last_error = None
        started = now_utc().isoformat()
        self.last_run_started_at = started

        logger.info(f"Scheduler executing run_once() trigger={trigger}")

        cycle = self._cycle or self.default_cycle
        try:
            stats = await cycle()
            self.last_run_stats = stats
            self.last_run_finished_at = now_utc().isoformat()
            logger.info(f"Scheduler run complete: {stats}")
        except Exception as e:
            self.last_error = str(e)
            self.last_run_finished_at = now_utc().isoformat()
            logger.exception("Scheduler run failed")
        finally:
            self._set_next_run_eta()

        return {
            "trigger": trigger,
            "started_at": started,
            "finished_at": self.last_run_finished_at,
            "stats": self.last_run_stats,
            "error": self.last_error,
        }

    async def loop_runner(self):
        logger.info(f"Scheduler loop interval = {self.interval_minutes} minutes")
        self._set_next_run_eta()

        while self.running:
            await self.run_once(trigger="loop")
            await asyncio.sleep(self.interval_minutes * 60)

    def status(self) -> dict:
        return {
            "mode": self.mode,
            "interval_minutes": self.interval_minutes,
            "enrich": self.enrich,
            "running": bool(self.running),
            "last_run_started_at": self.last_run_started_at,
            "last_run_finished_at": self.last_run_finished_at,
            "last_run_stats": self.last_run_stats,
            "last_error": self.last_error,
            "next_run_at": self.next_run_at,
        }
