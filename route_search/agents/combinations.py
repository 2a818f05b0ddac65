"""Option builders and the itinerary combination generator."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from route_search import config
from route_search.agents.time_validator import ScheduleGenerator, chain_valid
from route_search.agents.tour_optimizer import Waypoint, optimize_with_time_budget
from route_search.config import SearchSettings
from route_search.costs import (
    accommodation_cost,
    attraction_fee,
    recommend_modes,
    transport_cost,
    transport_duration,
)
from route_search.logging_setup import get_logger
from route_search.schemas import (
    AccommodationOption,
    AttractionOption,
    Coordinates,
    CostBreakdown,
    PlaceResult,
    RouteCandidate,
    RouteInfo,
    TransportOption,
    TravelRequest,
)

logger = get_logger(__name__)

_GRADE_PROFILES = {
    "budget": ("Guesthouse", 3.8, ["value", "clean", "friendly"]),
    "standard": ("Business Hotel", 4.3, ["comfortable", "breakfast included", "wifi"]),
    "premium": ("Premium Resort", 4.8, ["luxury", "ocean view", "spa"]),
}


def matches_preference(tag: str, preferences: Iterable[str]) -> bool:
    """Case-insensitive substring match: the tag contains one of the preferences."""
    lowered = tag.lower()
    return any(pref.lower() in lowered for pref in preferences if pref)


def is_popular_destination(destination: str, popular: Sequence[str] | None = None) -> bool:
    name = destination.lower()
    return any(city.lower() in name for city in (popular if popular is not None else config.POPULAR_DESTINATIONS))


# ---------- transport ----------
def _leg(
    mode: str,
    origin: str,
    destination: str,
    day: date,
    hour: int,
    route: RouteInfo,
) -> TransportOption:
    if mode == "car" and route.source != "estimate" and route.duration_minutes > 0:
        minutes = route.duration_minutes
    else:
        minutes = transport_duration(route.distance_km, mode)
    minutes = max(1, minutes)
    depart = datetime.combine(day, time(hour, 0))
    return TransportOption(
        mode=mode,
        origin=origin,
        destination=destination,
        cost=transport_cost(route.distance_km, mode),
        duration_minutes=minutes,
        departure_time=depart,
        arrival_time=depart + timedelta(minutes=minutes),
    )


def build_transport_options(
    request: TravelRequest,
    route: RouteInfo,
    settings: SearchSettings,
) -> Tuple[List[TransportOption], List[TransportOption]]:
    """Outbound legs on the start date and return legs ``duration`` days later.

    Options are ordered hour-first so truncating the list still keeps a mix of modes.
    """
    modes = recommend_modes(route.distance_km)
    return_day = request.start_date + timedelta(days=request.duration)
    outbound: List[TransportOption] = []
    returns: List[TransportOption] = []
    for hour in settings.departure_hours:
        for mode in modes:
            outbound.append(_leg(mode, request.departure, request.destination, request.start_date, hour, route))
            returns.append(_leg(mode, request.destination, request.departure, return_day, hour, route))
    return outbound, returns


# ---------- accommodation ----------
def build_accommodation_options(
    request: TravelRequest,
    settings: SearchSettings,
    popular_destinations: Sequence[str] | None = None,
) -> List[AccommodationOption]:
    popular = is_popular_destination(request.destination, popular_destinations)
    options: List[AccommodationOption] = []
    for grade, (label, rating, tags) in _GRADE_PROFILES.items():
        total = accommodation_cost(grade, request.duration, popular)
        if total > request.budget * settings.accommodation_budget_share:
            continue
        options.append(
            AccommodationOption(
                name=f"{request.destination} {label}",
                location=request.destination,
                cost_per_night=float(round(total / request.duration)),
                rating=rating,
                tags=list(tags),
                grade=grade,
            )
        )
    return options


# ---------- attractions ----------
def select_best_attractions(
    places: Sequence[PlaceResult],
    preferences: Sequence[str],
    count: int,
    settings: SearchSettings,
) -> List[AttractionOption]:
    """Rank places by preference overlap and rating, keep the top ``count``."""
    scored = []
    for place in places:
        matches = sum(
            1 for pref in preferences if any(matches_preference(tag, [pref]) for tag in place.category_tags)
        )
        scored.append((matches * 0.6 + place.popularity * 0.4, matches, place))
    scored.sort(key=lambda item: -item[0])

    selected: List[AttractionOption] = []
    for _, matches, place in scored[: max(0, count)]:
        selected.append(
            AttractionOption(
                name=place.name,
                location=place.location,
                entrance_fee=attraction_fee(",".join(place.category_tags), place.popularity),
                visit_duration_minutes=settings.attraction_visit_minutes,
                tags=place.category_tags[:3],
                rating=place.popularity,
                coordinates=place.coordinates,
                priority=min(10.0, max(1.0, place.popularity * 1.5 + matches)),
            )
        )
    return selected


def plan_attraction_order(
    attractions: Sequence[AttractionOption],
    hub: Coordinates,
    nights: int,
    settings: SearchSettings,
) -> List[AttractionOption]:
    """Order attractions as a loop from the lodging hub within the sightseeing time.

    Attractions without coordinates cannot be routed; they follow the routed
    ones in their original order.
    """
    routable = [a for a in attractions if a.coordinates is not None]
    unroutable = [a for a in attractions if a.coordinates is None]
    if len(routable) < 2:
        return list(attractions)

    hub_stop = Waypoint(name="hub", coords=hub)
    waypoints = [
        Waypoint(
            name=a.name,
            coords=a.coordinates,
            priority=a.priority,
            dwell_hours=a.visit_duration_minutes / 60,
            payload=a,
        )
        for a in routable
    ]
    tour = optimize_with_time_budget(
        waypoints,
        hub_stop,
        hub_stop,
        max_hours=nights * settings.sightseeing_hours_per_day,
        avg_speed_kmh=settings.city_speed_kmh,
        default_dwell_hours=settings.attraction_visit_minutes / 60,
    )
    if tour is None:
        return unroutable
    logger.info(
        "Attraction loop: %d of %d routable stops, %.1f km",
        len(tour.interior),
        len(routable),
        tour.total_distance_km,
    )
    return [stop.payload for stop in tour.interior] + unroutable


# ---------- combinations ----------
def generate_combinations(
    outbound: Sequence[TransportOption],
    returns: Sequence[TransportOption],
    accommodations: Sequence[AccommodationOption],
    attractions: Sequence[AttractionOption],
    request: TravelRequest,
    settings: SearchSettings,
    scheduler: Optional[ScheduleGenerator] = None,
) -> List[RouteCandidate]:
    """Cross outbound × return × lodging into feasible candidates.

    Each list is truncated first (``max_transport_options`` /
    ``max_accommodation_options``) to bound the product. Candidates over the
    budget tolerance, with too short a stay, a broken leg chain or an
    overlapping day plan are left out entirely.
    """
    scheduler = scheduler or ScheduleGenerator()
    outbound = list(outbound)[: settings.max_transport_options]
    returns = list(returns)[: settings.max_transport_options]
    accommodations = list(accommodations)[: settings.max_accommodation_options]

    cap = min(request.duration * settings.attractions_per_day, settings.max_attractions)
    chosen = list(attractions)[:cap]
    attractions_cost = sum(a.entrance_fee for a in chosen)
    attractions_minutes = sum(a.visit_duration_minutes for a in chosen)

    max_cost = request.budget * settings.budget_tolerance
    min_gap_hours = request.duration * settings.min_stay_hours_per_day

    candidates: List[RouteCandidate] = []
    rejected = {"stay": 0, "chain": 0, "budget": 0, "schedule": 0}
    for i, out_leg in enumerate(outbound):
        for j, back_leg in enumerate(returns):
            gap_hours = (back_leg.departure_time - out_leg.arrival_time).total_seconds() / 3600
            if gap_hours < min_gap_hours:
                rejected["stay"] += 1
                continue
            if not chain_valid([out_leg, back_leg], settings.min_transfer_minutes):
                rejected["chain"] += 1
                continue
            for k, lodging in enumerate(accommodations):
                transport_total = out_leg.cost + back_leg.cost
                lodging_total = lodging.cost_per_night * request.duration
                total = transport_total + lodging_total + attractions_cost
                if total > max_cost:
                    rejected["budget"] += 1
                    continue

                schedule = scheduler.build(
                    request.start_date, request.duration, out_leg, back_leg, chosen, lodging
                )
                valid, errors = scheduler.validate(schedule)
                if not valid:
                    rejected["schedule"] += 1
                    logger.debug("Dropping %d-%d-%d: %s", i, j, k, "; ".join(errors))
                    continue

                candidates.append(
                    RouteCandidate(
                        id=f"{i}-{j}-{k}",
                        transports=[out_leg, back_leg],
                        accommodations=[lodging],
                        attractions=list(chosen),
                        total_cost=total,
                        total_duration_minutes=out_leg.duration_minutes
                        + back_leg.duration_minutes
                        + attractions_minutes,
                        breakdown=CostBreakdown(
                            transport=transport_total,
                            accommodation=lodging_total,
                            attractions=attractions_cost,
                            total=total,
                        ),
                        schedule=schedule,
                    )
                )

    logger.debug("Combinations kept=%d rejected=%s", len(candidates), rejected)
    return candidates
