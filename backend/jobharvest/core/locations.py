import json
import logging
import os
from typing import Iterable, List, Optional

from jobharvest.core.config import get_locations_path
from jobharvest.core.models import Location

logger = logging.getLogger("locations")


def format_state_name(key: str) -> str:
    return key.replace("_", " ").upper()


def load_locations(path: Optional[str] = None) -> List[Location]:
    """
    Flatten ``{state_key: [{name, geoId}, ...]}`` into Location values,
    keeping file order. A missing file yields an empty catalogue.
    """
    path = path or get_locations_path()
    if not os.path.exists(path):
        logger.warning(f"[locations] catalogue not found at {path}")
        return []

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f) or {}

    out: List[Location] = []
    for state_key, cities in data.items():
        for city in cities or []:
            name = str(city.get("name") or "").strip()
            if not name:
                continue
            geo_id = city.get("geoId")
            out.append(
                Location(
                    name=name,
                    geo_id=str(geo_id) if geo_id not in (None, "") else None,
                    state=state_key,
                )
            )
    return out


def select_locations(
    states: Optional[Iterable[str]] = None,
    *,
    catalogue: Optional[List[Location]] = None,
) -> List[Location]:
    """All locations, or only those of the given state keys (unknown keys are ignored)."""
    locs = catalogue if catalogue is not None else load_locations()
    if states is None:
        return list(locs)
    wanted = {s.strip().lower() for s in states if s and s.strip()}
    return [loc for loc in locs if (loc.state or "").lower() in wanted]


def list_states(catalogue: Optional[List[Location]] = None) -> List[str]:
    locs = catalogue if catalogue is not None else load_locations()
    seen: List[str] = []
    for loc in locs:
        if loc.state and loc.state not in seen:
            seen.append(loc.state)
    return seen
