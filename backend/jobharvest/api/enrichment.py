from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter()


@router.post("/enrichment/run")
async def enrichment_run(request: Request):
    result = request.app.state.enrichment.trigger()
    return JSONResponse(status_code=202, content=result)


@router.get("/enrichment/status")
def enrichment_status(request: Request):
    return request.app.state.enrichment.status()
