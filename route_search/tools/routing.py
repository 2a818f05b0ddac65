"""OpenRouteService directions."""
from __future__ import annotations

from typing import Optional

import httpx

from route_search import config
from route_search.logging_setup import get_logger
from route_search.schemas import Coordinates, RouteInfo

logger = get_logger(__name__)


async def openroute_directions(
    start: Coordinates,
    end: Coordinates,
    profile: str = "driving-car",
) -> Optional[RouteInfo]:
    if not config.OPENROUTE_API_KEY:
        return None

    body = {
        # ORS wants [lon, lat]
        "coordinates": [[start.lon, start.lat], [end.lon, end.lat]],
        "instructions": False,
        "units": "km",
    }
    try:
        async with httpx.AsyncClient(timeout=config.HTTP_TIMEOUT_SECONDS) as client:
            response = await client.post(
                f"{config.OPENROUTE_BASE_URL}/directions/{profile}",
                json=body,
                headers={"Authorization": config.OPENROUTE_API_KEY},
            )
            response.raise_for_status()
            data = response.json()
    except (httpx.HTTPError, ValueError):
        logger.warning("OpenRouteService request failed", exc_info=True)
        return None

    routes = data.get("routes") or []
    if not routes:
        return None
    summary = routes[0].get("summary") or {}
    return RouteInfo(
        distance_km=float(summary.get("distance", 0.0)),
        duration_minutes=round(float(summary.get("duration", 0.0)) / 60),
        source="openroute",
    )
