"""Deterministic cost and duration estimates.

Every function here is total over its documented domain: a non-negative
distance and a known mode / grade. Unknown modes or grades are rejected with
``ValueError`` so bad input never silently prices at zero.
"""
from __future__ import annotations

import math
from typing import Dict, List

from route_search import config


def _check_mode(mode: str) -> None:
    if mode not in config.TRANSPORT_COST_PER_KM:
        raise ValueError(f"Unknown transport mode: {mode!r}")


def distance_discount(distance_km: float) -> float:
    for threshold, factor in config.DISTANCE_DISCOUNT_TIERS:
        if distance_km > threshold:
            return factor
    return 1.0


def transport_cost(distance_km: float, mode: str) -> float:
    """Fare for ``distance_km`` by ``mode``, cheaper per km on long hauls.

    Crossing into a cheaper tier never makes a longer trip cost less than the
    tier boundary itself, so the fare is non-decreasing in distance.
    """
    _check_mode(mode)
    distance_km = max(0.0, distance_km)
    rate = config.TRANSPORT_COST_PER_KM[mode]
    base = distance_km * rate * distance_discount(distance_km)
    for threshold, _ in config.DISTANCE_DISCOUNT_TIERS:
        if distance_km > threshold:
            base = max(base, threshold * rate * distance_discount(threshold))
    surcharge = config.FLIGHT_SURCHARGE if mode == "flight" else 0.0
    return float(round(base + surcharge))


def transport_duration(distance_km: float, mode: str) -> int:
    """Door-to-door minutes: travel at cruising speed plus boarding overhead."""
    _check_mode(mode)
    distance_km = max(0.0, distance_km)
    travel_minutes = distance_km / config.TRANSPORT_SPEED_KMH[mode] * 60
    return int(round(travel_minutes + config.TRANSPORT_BOARDING_MINUTES[mode]))


def accommodation_cost(grade: str, nights: int, is_popular_destination: bool = False) -> float:
    if grade not in config.ACCOMMODATION_NIGHTLY_RATE:
        raise ValueError(f"Unknown accommodation grade: {grade!r}")
    nights = max(0, int(nights))
    popularity = config.POPULAR_DESTINATION_MULTIPLIER if is_popular_destination else 1.0
    long_stay = config.LONG_STAY_DISCOUNT if nights >= config.LONG_STAY_NIGHTS else 1.0
    return float(round(config.ACCOMMODATION_NIGHTLY_RATE[grade] * nights * popularity * long_stay))


def attraction_fee(category: str, popularity: float = 3.0) -> float:
    """Entrance fee guess from category keywords, falling back to popularity (0-5)."""
    kinds = (category or "").lower()
    tiers = config.ATTRACTION_FEE_TIERS

    if any(keyword in kinds for keyword in config.FREE_CATEGORY_KEYWORDS):
        return tiers["free"]
    if any(keyword in kinds for keyword in config.CHEAP_CATEGORY_KEYWORDS):
        return tiers["cheap"]
    if any(keyword in kinds for keyword in config.PREMIUM_CATEGORY_KEYWORDS):
        return tiers["premium"]

    if popularity >= 5:
        return tiers["premium"]
    if popularity >= 3:
        return tiers["standard"]
    return tiers["cheap"]


def recommend_modes(distance_km: float) -> List[str]:
    modes: List[str] = []
    if distance_km >= 300:
        modes.append("flight")
    if distance_km >= 50:
        modes.append("train")
    if distance_km >= 30:
        modes.append("bus")
    if distance_km <= 500:
        modes.append("car")
    return modes


def trip_cost_summary(
    transport: float,
    accommodation: float,
    attractions: float,
    days: int,
) -> Dict[str, float]:
    """Full trip budget including meals and a miscellaneous margin."""
    meals = max(0, days) * config.MEAL_COST_PER_DAY
    subtotal = transport + accommodation + attractions + meals
    misc = float(round(subtotal * config.MISC_COST_RATIO))
    return {
        "transport": transport,
        "accommodation": accommodation,
        "attractions": attractions,
        "meals": meals,
        "miscellaneous": misc,
        "total": subtotal + misc,
    }


def optimal_departure_hour(
    distance_km: float,
    avg_speed_kmh: float,
    desired_arrival_hour: int = 12,
) -> int:
    """Latest whole hour to leave and still arrive by ``desired_arrival_hour``, never before 06:00."""
    travel_hours = distance_km / avg_speed_kmh if avg_speed_kmh > 0 else 0.0
    return max(6, math.floor(desired_arrival_hour - travel_hours))
