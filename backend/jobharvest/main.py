import logging
from typing import Optional

from fastapi import FastAPI

from jobharvest.db.schema import init_db, DEFAULT_MIGRATION
from jobharvest.db.conn import connect

from jobharvest.core.config import RuntimeConfig, get_db_path, get_runtime_config
from jobharvest.core.enrichment_trigger import EnrichmentTrigger
from jobharvest.core.locations import load_locations
from jobharvest.core.scheduler import SchedulerService

from jobharvest.services.browser import BrowserSession
from jobharvest.services.crawler import CrawlScheduler
from jobharvest.services.ingest import IngestionGateway

from jobharvest.api.health import router as health_router
from jobharvest.api.run import router as run_router
from jobharvest.api.jobs import router as jobs_router
from jobharvest.api.upload import router as upload_router
from jobharvest.api.enrichment import router as enrichment_router
from jobharvest.api.crawl import router as crawl_router
from jobharvest.api.locations import router as locations_router
from jobharvest.api.status import router as status_router

logger = logging.getLogger("app")


def create_app(db_path: Optional[str] = None, *, cfg: Optional[RuntimeConfig] = None) -> FastAPI:
    app = FastAPI(title="Job Harvest", version="0.3.0")

    cfg = cfg or get_runtime_config()
    db_path = db_path or get_db_path()

    init_db(db_path, DEFAULT_MIGRATION)
    app.state.db = connect(db_path)
    app.state.cfg = cfg
    app.state.locations = load_locations()

    app.state.gateway = IngestionGateway(app.state.db, retention_days=cfg.retention_days)
    app.state.enrichment = EnrichmentTrigger(app.state.db, cfg=cfg)
    app.state.crawler = CrawlScheduler(
        gateway=app.state.gateway,
        cfg=cfg,
        session_factory=lambda: BrowserSession(
            headless=cfg.headless,
            user_data_dir=cfg.crawl_user_data_dir,
            nav_timeout_ms=cfg.nav_timeout_ms,
        ),
    )

    # Scheduler attach
    scheduler = SchedulerService(app)
    app.state.scheduler = scheduler

    @app.on_event("startup")
    async def startup_event():
        await scheduler.start()

    @app.on_event("shutdown")
    async def shutdown_event():
        await scheduler.stop()

    # API routes
    app.include_router(health_router, prefix="/api")
    app.include_router(run_router, prefix="/api")
    app.include_router(jobs_router, prefix="/api")
    app.include_router(upload_router, prefix="/api")
    app.include_router(enrichment_router, prefix="/api")
    app.include_router(crawl_router, prefix="/api")
    app.include_router(locations_router, prefix="/api")
    app.include_router(status_router, prefix="/api")

    logger.info(f"[app] db={db_path} locations={len(app.state.locations)}")
    return app


app = create_app()
