# route_search/providers.py
"""External data collaborators and the adapters that normalise their payloads.

Each place source has its own record shape; the ``place_from_*`` adapters
turn them into :class:`PlaceResult` before anything reaches the search core.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from route_search import config
from route_search.logging_setup import get_logger
from route_search.schemas import Coordinates, PlaceResult, RouteInfo
from route_search.tools.attractions import map_preferences_to_kinds, opentripmap_search
from route_search.tools.geocoding import nominatim_geocode
from route_search.tools.google_maps import (
    google_directions,
    google_geocode,
    google_places_nearby,
    map_preferences_to_google_types,
)
from route_search.tools.routing import openroute_directions

logger = get_logger(__name__)

GeocodeFn = Callable[[str], Awaitable[Optional[Coordinates]]]
RouteFn = Callable[[Coordinates, Coordinates], Awaitable[Optional[RouteInfo]]]
AttractionsFn = Callable[[Coordinates, float, Sequence[str]], Awaitable[List[PlaceResult]]]

MIN_GOOGLE_RATING = 3.5
MAX_GOOGLE_TYPES = 3
OPENTRIPMAP_RATE_SCALE = 7.0


@dataclass
class TravelDataProviders:
    geocode: GeocodeFn
    route: RouteFn
    nearby_attractions: AttractionsFn


# ---------- adapters ----------
def place_from_google(raw: Dict[str, Any]) -> Optional[PlaceResult]:
    name = (raw.get("name") or "").strip()
    if not name:
        return None
    location = (raw.get("geometry") or {}).get("location") or {}
    coords = None
    if "lat" in location and "lng" in location:
        coords = Coordinates(lat=float(location["lat"]), lon=float(location["lng"]), display_name=name)
    rating = raw.get("rating")
    return PlaceResult(
        name=name,
        location=raw.get("vicinity") or "",
        coordinates=coords,
        category_tags=[str(t) for t in raw.get("types") or []],
        popularity=min(5.0, max(0.0, float(rating))) if rating is not None else 3.0,
        source="google",
    )


def _opentripmap_rate(raw_rate: Any) -> float:
    # rates come as 1..7, sometimes suffixed with "h" for heritage sites
    text = str(raw_rate or "").strip().rstrip("h")
    try:
        rate = float(text)
    except ValueError:
        rate = 3.0
    return min(5.0, max(0.0, rate / OPENTRIPMAP_RATE_SCALE * 5))


def place_from_opentripmap(raw: Dict[str, Any]) -> Optional[PlaceResult]:
    name = (raw.get("name") or "").strip()
    if not name:
        return None
    point = raw.get("point") or {}
    coords = None
    if "lat" in point and "lon" in point:
        coords = Coordinates(lat=float(point["lat"]), lon=float(point["lon"]), display_name=name)
    return PlaceResult(
        name=name,
        location=f"{coords.lat:.4f}, {coords.lon:.4f}" if coords else "",
        coordinates=coords,
        category_tags=[kind for kind in (raw.get("kinds") or "").split(",") if kind],
        popularity=_opentripmap_rate(raw.get("rate")),
        source="opentripmap",
    )


def _dedupe(places: Sequence[PlaceResult]) -> List[PlaceResult]:
    seen = set()
    unique: List[PlaceResult] = []
    for place in places:
        key = place.name.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(place)
    return unique


# ---------- default wiring ----------
async def smart_geocode(name: str) -> Optional[Coordinates]:
    if config.has_google_maps_key():
        coords = await google_geocode(name)
        if coords is not None:
            return coords
    return await nominatim_geocode(name)


async def smart_route(start: Coordinates, end: Coordinates) -> Optional[RouteInfo]:
    if config.has_google_maps_key():
        route = await google_directions(start, end)
        if route is not None:
            return route
    return await openroute_directions(start, end)


async def smart_attractions(
    coords: Coordinates,
    radius_km: float,
    preferences: Sequence[str],
) -> List[PlaceResult]:
    if config.has_google_maps_key():
        places: List[PlaceResult] = []
        for place_type in map_preferences_to_google_types(preferences)[:MAX_GOOGLE_TYPES]:
            for raw in await google_places_nearby(coords, int(radius_km * 1000), place_type):
                if (raw.get("rating") or 0) < MIN_GOOGLE_RATING:
                    continue
                place = place_from_google(raw)
                if place is not None:
                    places.append(place)
        if places:
            logger.info("Google Places returned %d attractions", len(places))
            return _dedupe(places)

    raw_places = await opentripmap_search(coords, radius_km, map_preferences_to_kinds(preferences) or None)
    places = [p for p in (place_from_opentripmap(raw) for raw in raw_places) if p is not None]
    logger.info("OpenTripMap returned %d attractions", len(places))
    return _dedupe(places)


def default_providers() -> TravelDataProviders:
    return TravelDataProviders(
        geocode=smart_geocode,
        route=smart_route,
        nearby_attractions=smart_attractions,
    )
