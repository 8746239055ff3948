from fastapi import APIRouter, HTTPException, Request, Query
from typing import Optional, List

from jobharvest.db.repo_jobs import JobFilters, get_job, list_jobs

router = APIRouter()


def _split_locations(location: Optional[str]) -> List[str]:
    if not location:
        return []
    return [p.strip() for p in location.split(",") if p.strip()]


@router.get("/jobs")
def jobs(
    request: Request,
    search: Optional[str] = Query(None),
    location: Optional[str] = Query(None, description="comma-separated, any match"),
    company: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    remote: int = Query(0),
    salary_min: Optional[float] = Query(None, ge=0),
    salary_max: Optional[float] = Query(None, ge=0),
    posted_after: Optional[str] = Query(None),
    sort: str = Query("posted_at", pattern="^(posted_at|salary|company|title)$"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    limit: int = Query(25, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    con = request.app.state.db

    filters = JobFilters(
        search=search,
        locations=_split_locations(location),
        company=company,
        job_type=type,
        remote_only=bool(remote),
        salary_min=salary_min,
        salary_max=salary_max,
        posted_after=posted_after,
        sort=sort,
        order=order,
        limit=limit,
        offset=offset,
    )
    items, total = list_jobs(con, filters)

    return {
        "items": [j.to_dict(full_description=False) for j in items],
        "total": total,
        "limit": limit,
        "offset": offset,
        "has_more": offset + len(items) < total,
    }


@router.get("/jobs/{job_id}")
def job_detail(request: Request, job_id: str):
    job = get_job(request.app.state.db, job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return job.to_dict(full_description=True)
