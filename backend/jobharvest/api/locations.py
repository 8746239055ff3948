from fastapi import APIRouter, Request

from jobharvest.core.locations import format_state_name, list_states

router = APIRouter()


@router.get("/locations")
def locations(request: Request):
    catalogue = request.app.state.locations
    cities = sorted(catalogue, key=lambda loc: loc.name.lower())
    return {
        "cities": [{**loc.to_dict(), "state": format_state_name(loc.state or "")} for loc in cities],
        "states": list_states(catalogue),
        "total": len(cities),
    }
