"""OpenTripMap place search."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List

import httpx

from route_search import config
from route_search.logging_setup import get_logger
from route_search.schemas import Coordinates

logger = get_logger(__name__)

# preference tag -> OpenTripMap kinds
PREFERENCE_KINDS: Dict[str, List[str]] = {
    "nature": ["natural", "nature_reserves", "beaches", "geological_formations"],
    "beach": ["beaches", "coastal"],
    "mountain": ["natural", "peaks", "alpine"],
    "history": ["historic", "archaeology", "fortifications", "monuments"],
    "culture": ["cultural", "theatres_and_entertainments", "museums"],
    "art": ["museums", "galleries", "architecture"],
    "food": ["foods", "restaurants"],
    "shopping": ["shops", "malls"],
    "photo": ["view_points", "tourist_facilities"],
    "activity": ["sport", "amusements", "adventure"],
    "relax": ["natural", "parks", "gardens"],
    "luxury": ["hotels", "resorts"],
}


def map_preferences_to_kinds(preferences: Iterable[str]) -> str:
    kinds: List[str] = []
    for pref in preferences:
        for kind in PREFERENCE_KINDS.get(pref.strip().lower(), []):
            if kind not in kinds:
                kinds.append(kind)
    return ",".join(kinds)


async def opentripmap_search(
    coords: Coordinates,
    radius_km: float = 10.0,
    kinds: str | None = None,
    limit: int = 50,
) -> List[Dict[str, Any]]:
    """Raw OpenTripMap records around ``coords``; unnamed places are dropped."""
    if not config.OPENTRIPMAP_API_KEY:
        return []

    params = {
        "lon": str(coords.lon),
        "lat": str(coords.lat),
        "radius": str(int(radius_km * 1000)),
        "limit": str(limit),
        "format": "json",
        "apikey": config.OPENTRIPMAP_API_KEY,
    }
    if kinds:
        params["kinds"] = kinds

    try:
        async with httpx.AsyncClient(timeout=config.HTTP_TIMEOUT_SECONDS) as client:
            response = await client.get(f"{config.OPENTRIPMAP_BASE_URL}/en/places/radius", params=params)
            response.raise_for_status()
            data = response.json()
    except (httpx.HTTPError, ValueError):
        logger.warning("OpenTripMap search failed", exc_info=True)
        return []

    return [item for item in data or [] if (item.get("name") or "").strip()]
