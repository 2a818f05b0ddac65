"""Nominatim (OpenStreetMap) geocoding."""
from __future__ import annotations

from typing import Optional

import httpx

from route_search import config
from route_search.logging_setup import get_logger
from route_search.schemas import Coordinates

logger = get_logger(__name__)


async def nominatim_geocode(address: str, *, language: str = "en") -> Optional[Coordinates]:
    """Resolve a place name to coordinates, or ``None`` when nothing matches."""
    params = {"q": address, "format": "json", "limit": "1", "accept-language": language}
    try:
        async with httpx.AsyncClient(timeout=config.HTTP_TIMEOUT_SECONDS) as client:
            response = await client.get(
                f"{config.NOMINATIM_BASE_URL}/search",
                params=params,
                headers={"User-Agent": config.USER_AGENT, "Accept": "application/json"},
            )
            response.raise_for_status()
            data = response.json()
    except (httpx.HTTPError, ValueError):
        logger.warning("Nominatim lookup failed for %r", address, exc_info=True)
        return None

    if not data:
        logger.warning("No geocoding result for %r", address)
        return None

    top = data[0]
    return Coordinates(
        lat=float(top["lat"]),
        lon=float(top["lon"]),
        display_name=top.get("display_name") or address,
    )
