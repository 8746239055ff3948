from fastapi import APIRouter, Request

router = APIRouter()


@router.post("/run")
async def run_now(request: Request):
    """Run one scheduler cycle (board refresh, then enrichment) and wait for it."""
    result = await request.app.state.scheduler.run_once(trigger="manual")
    return {"ok": result.get("error") is None, **result}
