from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from jobharvest.core.errors import CrawlStateError
from jobharvest.core.locations import select_locations
from jobharvest.core.models import SOURCE_LINKEDIN, Location
from jobharvest.services.crawler import CrawlOptions

router = APIRouter()


class CrawlStartBody(BaseModel):
    keywords: List[str] = Field(default_factory=list)
    # city names from the catalogue; unknown names are searched as free text
    locations: Optional[List[str]] = None
    states: Optional[List[str]] = None
    source: str = SOURCE_LINKEDIN
    remote_only: bool = False
    easy_apply_only: bool = False
    auto_ingest: bool = True


def _resolve_locations(catalogue: List[Location], body: CrawlStartBody) -> List[Location]:
    if body.locations:
        by_name = {loc.name.lower(): loc for loc in catalogue}
        out = []
        for name in body.locations:
            name = (name or "").strip()
            if name:
                out.append(by_name.get(name.lower()) or Location(name=name))
        return out
    if body.states:
        return select_locations(body.states, catalogue=catalogue)
    return list(catalogue)


@router.post("/crawl/start")
async def crawl_start(request: Request, body: CrawlStartBody):
    crawler = request.app.state.crawler
    locations = _resolve_locations(request.app.state.locations, body)
    options = CrawlOptions(
        source=body.source,
        remote_only=body.remote_only,
        easy_apply_only=body.easy_apply_only,
        auto_ingest=body.auto_ingest,
    )
    try:
        crawler.start(locations, body.keywords, options)
    except CrawlStateError as e:
        raise HTTPException(status_code=400, detail=str(e))

    crawler.launch()
    return crawler.status()


@router.post("/crawl/stop")
def crawl_stop(request: Request):
    crawler = request.app.state.crawler
    try:
        crawler.stop()
    except CrawlStateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return crawler.status()


@router.post("/crawl/resume")
async def crawl_resume(request: Request):
    crawler = request.app.state.crawler
    try:
        crawler.resume()
    except CrawlStateError as e:
        raise HTTPException(status_code=400, detail=str(e))

    crawler.launch()
    return crawler.status()


@router.get("/crawl/status")
def crawl_status(request: Request):
    return request.app.state.crawler.status()


@router.post("/crawl/ingest")
def crawl_ingest(request: Request):
    crawler = request.app.state.crawler
    try:
        added = crawler.ingest_collected()
    except CrawlStateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Jobs received", "added": added, "collected": len(crawler.state.collected)}
