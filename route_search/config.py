# route_search/config.py
"""Configuration for the route search engine.

External API keys and endpoints are read from the environment (a ``.env`` file
next to the working directory is honoured). The cost tables hold average
domestic market prices.
"""
from __future__ import annotations

import os
from typing import Dict, List, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()

# ---------- external services ----------
GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY", "")
GOOGLE_GEOCODING_URL = "https://maps.googleapis.com/maps/api/geocode/json"
GOOGLE_DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"
GOOGLE_PLACES_NEARBY_URL = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"

NOMINATIM_BASE_URL = os.getenv("NOMINATIM_BASE_URL", "https://nominatim.openstreetmap.org")
OPENROUTE_API_KEY = os.getenv("OPENROUTE_API_KEY", "")
OPENROUTE_BASE_URL = os.getenv("OPENROUTE_BASE_URL", "https://api.openrouteservice.org/v2")
OPENTRIPMAP_API_KEY = os.getenv("OPENTRIPMAP_API_KEY", "")
OPENTRIPMAP_BASE_URL = os.getenv("OPENTRIPMAP_BASE_URL", "https://api.opentripmap.com/0.1")

HTTP_TIMEOUT_SECONDS = float(os.getenv("ROUTE_SEARCH_HTTP_TIMEOUT", "10"))
USER_AGENT = "route-search/1.0"

CACHE_TTL_SECONDS = float(os.getenv("ROUTE_SEARCH_CACHE_TTL", "3600"))
CACHE_SWEEP_SECONDS = float(os.getenv("ROUTE_SEARCH_CACHE_SWEEP", "300"))


def has_google_maps_key() -> bool:
    return bool(GOOGLE_MAPS_API_KEY) and len(GOOGLE_MAPS_API_KEY) > 10


# ---------- cost tables ----------
# currency units per km
TRANSPORT_COST_PER_KM: Dict[str, float] = {
    "flight": 150.0,
    "train": 80.0,
    "bus": 50.0,
    "car": 100.0,
    "subway": 30.0,
    "walk": 0.0,
}

# cruising speed, km/h
TRANSPORT_SPEED_KMH: Dict[str, float] = {
    "flight": 500.0,
    "train": 200.0,
    "bus": 80.0,
    "car": 90.0,
    "subway": 35.0,
    "walk": 4.5,
}

# check-in / boarding / ticketing overhead, minutes
TRANSPORT_BOARDING_MINUTES: Dict[str, int] = {
    "flight": 120,
    "train": 30,
    "bus": 20,
    "car": 0,
    "subway": 5,
    "walk": 0,
}

FLIGHT_SURCHARGE = 15000.0

# (strictly greater than km, multiplier), checked in order
DISTANCE_DISCOUNT_TIERS: Tuple[Tuple[float, float], ...] = (
    (500.0, 0.85),
    (300.0, 0.90),
    (100.0, 0.95),
)

ACCOMMODATION_NIGHTLY_RATE: Dict[str, float] = {
    "budget": 50000.0,
    "standard": 80000.0,
    "premium": 150000.0,
}
POPULAR_DESTINATION_MULTIPLIER = 1.3
LONG_STAY_NIGHTS = 3
LONG_STAY_DISCOUNT = 0.95

ATTRACTION_FEE_TIERS: Dict[str, float] = {
    "free": 0.0,
    "cheap": 5000.0,
    "standard": 10000.0,
    "premium": 20000.0,
}
FREE_CATEGORY_KEYWORDS: Tuple[str, ...] = ("parks", "natural", "beaches", "view_points", "squares")
CHEAP_CATEGORY_KEYWORDS: Tuple[str, ...] = ("churches", "monuments", "memorials")
PREMIUM_CATEGORY_KEYWORDS: Tuple[str, ...] = ("amusements", "theatres", "zoos", "aquariums")

MEAL_COST_PER_DAY = 30000.0
MISC_COST_RATIO = 0.1


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


POPULAR_DESTINATIONS: List[str] = _env_list(
    "ROUTE_SEARCH_POPULAR_DESTINATIONS",
    ["seoul", "busan", "jeju", "gyeongju", "gangneung", "yeosu"],
)


# ---------- search tuning ----------
class SearchSettings(BaseModel):
    """Tunable constants for one search invocation.

    The option caps bound the cross product (outbound × return × lodging).
    """

    max_iterations: int = Field(4, ge=1)
    score_threshold: float = Field(0.55, ge=0.0, le=1.0)
    top_n: int = Field(8, ge=1)
    budget_tolerance: float = Field(1.1, ge=1.0)
    min_stay_hours_per_day: float = Field(12.0, ge=0.0)
    max_transport_options: int = Field(6, ge=1)
    max_accommodation_options: int = Field(3, ge=1)
    attractions_per_day: int = Field(2, ge=0)
    max_attractions: int = Field(6, ge=0)
    attraction_pool_per_day: int = Field(3, ge=1)
    attraction_pool_cap: int = Field(10, ge=1)
    attraction_visit_minutes: int = Field(90, ge=0)
    attraction_radius_km: float = Field(15.0, gt=0.0)
    min_transfer_minutes: int = Field(30, ge=0)
    departure_hours: List[int] = Field(default_factory=lambda: [7, 10, 14, 17])
    accommodation_budget_share: float = Field(0.5, gt=0.0)
    road_correction_factor: float = Field(1.3, ge=1.0)
    fallback_speed_kmh: float = Field(80.0, gt=0.0)
    sightseeing_hours_per_day: float = Field(8.0, gt=0.0)
    city_speed_kmh: float = Field(25.0, gt=0.0)

    @field_validator("departure_hours")
    @classmethod
    def _clock_hours(cls, hours: List[int]) -> List[int]:
        if not hours:
            raise ValueError("departure_hours must not be empty")
        bad = [hour for hour in hours if not 0 <= hour <= 23]
        if bad:
            raise ValueError(f"departure_hours must be within 0-23, got {bad}")
        return hours

    @classmethod
    def from_env(cls) -> "SearchSettings":
        overrides: Dict[str, object] = {}
        for name in cls.model_fields:
            raw = os.getenv(f"ROUTE_SEARCH_{name.upper()}")
            if raw is None or raw == "":
                continue
            if name == "departure_hours":
                overrides[name] = [int(part) for part in raw.split(",") if part.strip()]
            else:
                overrides[name] = raw
        return cls.model_validate(overrides)
