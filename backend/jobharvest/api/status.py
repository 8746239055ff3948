from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/scheduler/status")
def scheduler_status(request: Request):
    sched = getattr(request.app.state, "scheduler", None)
    if not sched:
        return {
            "enabled": False,
            "reason": "scheduler not configured"
        }

    return {
        "enabled": sched.mode != "off",
        **sched.status()
    }


@router.get("/status")
def pipeline_status(request: Request):
    """One-shot view of the scheduler, the crawl and the enrichment backlog."""
    state = request.app.state
    sched = getattr(state, "scheduler", None)
    return {
        "scheduler": sched.status() if sched else None,
        "crawl": state.crawler.status(),
        "enrichment": state.enrichment.status(),
    }
