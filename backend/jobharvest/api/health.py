from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
def health(request: Request):
    con = request.app.state.db
    row = con.execute("SELECT COUNT(*) AS c FROM jobs").fetchone()
    return {"ok": True, "jobs": int(row["c"]) if row else 0}
