"""Google Maps web services: geocoding, directions and nearby places."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import httpx

from route_search import config
from route_search.logging_setup import get_logger
from route_search.schemas import Coordinates, RouteInfo

logger = get_logger(__name__)

PREFERENCE_PLACE_TYPES: Dict[str, List[str]] = {
    "nature": ["park", "natural_feature"],
    "beach": ["natural_feature"],
    "mountain": ["natural_feature", "park"],
    "history": ["museum", "tourist_attraction"],
    "culture": ["museum", "art_gallery", "tourist_attraction"],
    "art": ["art_gallery", "museum"],
    "food": ["restaurant", "cafe"],
    "shopping": ["shopping_mall", "store"],
    "photo": ["tourist_attraction"],
    "activity": ["amusement_park", "aquarium", "zoo"],
    "relax": ["park", "spa"],
    "luxury": ["spa", "lodging"],
}


def map_preferences_to_google_types(preferences: Iterable[str]) -> List[str]:
    types: List[str] = []
    for pref in preferences:
        for place_type in PREFERENCE_PLACE_TYPES.get(pref.strip().lower(), []):
            if place_type not in types:
                types.append(place_type)
    return types or ["tourist_attraction"]


async def _get_json(url: str, params: Dict[str, str]) -> Optional[Dict[str, Any]]:
    params = {**params, "key": config.GOOGLE_MAPS_API_KEY}
    try:
        async with httpx.AsyncClient(timeout=config.HTTP_TIMEOUT_SECONDS) as client:
            response = await client.get(url, params=params)
            response.raise_for_status()
            data = response.json()
    except (httpx.HTTPError, ValueError):
        logger.warning("Google Maps request to %s failed", url, exc_info=True)
        return None
    if data.get("status") not in ("OK", "ZERO_RESULTS"):
        logger.warning("Google Maps returned status %s for %s", data.get("status"), url)
        return None
    return data


async def google_geocode(address: str) -> Optional[Coordinates]:
    if not config.has_google_maps_key():
        return None
    data = await _get_json(config.GOOGLE_GEOCODING_URL, {"address": address})
    if not data or not data.get("results"):
        return None
    top = data["results"][0]
    location = top["geometry"]["location"]
    return Coordinates(
        lat=float(location["lat"]),
        lon=float(location["lng"]),
        display_name=top.get("formatted_address") or address,
    )


async def google_directions(
    origin: Coordinates,
    destination: Coordinates,
    mode: str = "driving",
) -> Optional[RouteInfo]:
    if not config.has_google_maps_key():
        return None
    data = await _get_json(
        config.GOOGLE_DIRECTIONS_URL,
        {
            "origin": f"{origin.lat},{origin.lon}",
            "destination": f"{destination.lat},{destination.lon}",
            "mode": mode,
        },
    )
    if not data or not data.get("routes"):
        return None
    leg = data["routes"][0]["legs"][0]
    return RouteInfo(
        distance_km=leg["distance"]["value"] / 1000,
        duration_minutes=round(leg["duration"]["value"] / 60),
        source="google",
    )


async def google_places_nearby(
    coords: Coordinates,
    radius_m: int,
    place_type: str,
) -> List[Dict[str, Any]]:
    if not config.has_google_maps_key():
        return []
    data = await _get_json(
        config.GOOGLE_PLACES_NEARBY_URL,
        {"location": f"{coords.lat},{coords.lon}", "radius": str(radius_m), "type": place_type},
    )
    if not data:
        return []
    return list(data.get("results") or [])
