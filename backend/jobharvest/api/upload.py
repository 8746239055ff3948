import logging
from typing import Any

from fastapi import APIRouter, Body, HTTPException, Request

from jobharvest.core.errors import InvalidPayloadError

router = APIRouter()
logger = logging.getLogger("ingest")


@router.post("/upload")
def upload(request: Request, payload: Any = Body(...)):
    """Accept a JSON array of scraped jobs; only unseen ones are stored."""
    gateway = request.app.state.gateway
    try:
        added = gateway.ingest(payload)
    except InvalidPayloadError as e:
        raise HTTPException(status_code=400, detail=f"Invalid data format: {e}")

    logger.info(f"[ingest] upload received={len(payload)} added={added}")
    return {"message": "Jobs received", "added": added}
