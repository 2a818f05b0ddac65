# route_search/orchestrator.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from route_search.agents.combinations import (
    build_accommodation_options,
    build_transport_options,
    generate_combinations,
    plan_attraction_order,
    select_best_attractions,
)
from route_search.agents.scorer import score_and_rank
from route_search.agents.time_validator import ScheduleGenerator
from route_search.cache import APICache
from route_search.config import SearchSettings
from route_search.costs import optimal_departure_hour, recommend_modes, trip_cost_summary
from route_search.geo import distance_km
from route_search.logging_setup import get_logger
from route_search.providers import TravelDataProviders, default_providers
from route_search.schemas import (
    AccommodationOption,
    AttractionOption,
    Coordinates,
    RouteCandidate,
    RouteInfo,
    ScoringWeights,
    SearchResult,
    TransportOption,
    TravelRequest,
)

logger = get_logger(__name__)


class RouteSearchError(Exception):
    """Base error for searches that cannot produce any result."""


class LocationNotFoundError(RouteSearchError):
    def __init__(self, place: str):
        super().__init__(f"Could not resolve location: {place}")
        self.place = place


class SearchStage(str, Enum):
    COLLECTING = "collecting"
    GENERATING = "generating"
    SCORING = "scoring"
    CHECK_THRESHOLD = "check_threshold"
    ADJUSTING = "adjusting"
    DONE = "done"


ProgressCallback = Callable[[SearchStage, str], None]

# weight policy bands
HIGH_UTILIZATION = 0.9
LOW_UTILIZATION = 0.6
COST_STEP = 0.08
TRADE_STEP = 0.04
DRIFT_STEP = 0.02
RELAX_STEP = 0.1


# ---------- weight policy ----------
def budget_utilization(candidate: RouteCandidate, request: TravelRequest) -> float:
    return candidate.total_cost / request.budget


def adjust_weights(
    weights: ScoringWeights,
    top: RouteCandidate,
    request: TravelRequest,
) -> ScoringWeights:
    """Next cycle's weights, judged on how much of the budget the top candidate uses.

    Near the budget, cost gains weight at the expense of time and preference;
    well under it, weight moves from cost to preference; in between there is
    a small drift toward preference.
    """
    u = budget_utilization(top, request)
    if u > HIGH_UTILIZATION:
        adjusted = weights.model_copy(
            update={
                "cost": weights.cost + COST_STEP,
                "time": weights.time - TRADE_STEP,
                "preference": weights.preference - TRADE_STEP,
            }
        )
    elif u < LOW_UTILIZATION:
        adjusted = weights.model_copy(
            update={"cost": weights.cost - COST_STEP, "preference": weights.preference + COST_STEP}
        )
    else:
        adjusted = weights.model_copy(
            update={"cost": weights.cost - DRIFT_STEP, "preference": weights.preference + DRIFT_STEP}
        )
    return _rounded(adjusted.clamped())


def relax_weights(weights: ScoringWeights) -> ScoringWeights:
    """Loosen the cost weight after a cycle with no feasible combination."""
    return _rounded(weights.model_copy(update={"cost": weights.cost - RELAX_STEP}).clamped())


def _rounded(weights: ScoringWeights) -> ScoringWeights:
    return ScoringWeights(
        cost=round(weights.cost, 4),
        time=round(weights.time, 4),
        preference=round(weights.preference, 4),
        fatigue=round(weights.fatigue, 4),
    )


# ---------- search ----------
@dataclass
class SearchInputs:
    """Everything gathered before the loop starts; identical for every cycle."""

    origin: Coordinates
    destination: Coordinates
    route: RouteInfo
    outbound: List[TransportOption] = field(default_factory=list)
    returns: List[TransportOption] = field(default_factory=list)
    accommodations: List[AccommodationOption] = field(default_factory=list)
    attractions: List[AttractionOption] = field(default_factory=list)


class RouteSearchService:
    def __init__(
        self,
        providers: Optional[TravelDataProviders] = None,
        cache: Optional[APICache] = None,
        settings: Optional[SearchSettings] = None,
    ) -> None:
        self.providers = providers or default_providers()
        self.cache = cache if cache is not None else APICache()
        self.settings = settings or SearchSettings()
        self.scheduler = ScheduleGenerator()

    # ----- collection -----
    async def _geocode(self, place: str) -> Coordinates:
        try:
            coords = await self.cache.with_cache(
                "geocode",
                {"address": place.lower()},
                lambda: self.providers.geocode(place),
            )
        except Exception as exc:
            raise RouteSearchError(f"Geocoding failed for {place}: {exc}") from exc
        if coords is None:
            raise LocationNotFoundError(place)
        return coords

    def estimate_route(self, start: Coordinates, end: Coordinates) -> RouteInfo:
        road_km = distance_km(start, end) * self.settings.road_correction_factor
        return RouteInfo(
            distance_km=road_km,
            duration_minutes=round(road_km / self.settings.fallback_speed_kmh * 60),
            source="estimate",
        )

    async def _route(self, start: Coordinates, end: Coordinates) -> RouteInfo:
        params = {"start": [start.lat, start.lon], "end": [end.lat, end.lon]}
        try:
            route = await self.cache.with_cache("route", params, lambda: self.providers.route(start, end))
        except Exception:
            logger.warning("Route lookup failed, using straight-line estimate", exc_info=True)
            route = None
        if route is None:
            route = self.estimate_route(start, end)
        return route

    async def _attractions(self, coords: Coordinates, preferences: List[str]):
        params = {
            "location": [coords.lat, coords.lon],
            "radius_km": self.settings.attraction_radius_km,
            "preferences": sorted(preferences),
        }
        try:
            return await self.cache.with_cache(
                "attractions",
                params,
                lambda: self.providers.nearby_attractions(coords, self.settings.attraction_radius_km, preferences),
            )
        except Exception:
            logger.warning("Attraction lookup failed, continuing without attractions", exc_info=True)
            return []

    async def collect(self, request: TravelRequest) -> SearchInputs:
        origin, destination = await asyncio.gather(
            self._geocode(request.departure),
            self._geocode(request.destination),
        )
        route, places = await asyncio.gather(
            self._route(origin, destination),
            self._attractions(destination, request.preferences),
        )
        logger.info(
            "Route %s -> %s: %.1f km, %d min (%s); %d places nearby",
            request.departure,
            request.destination,
            route.distance_km,
            route.duration_minutes,
            route.source,
            len(places),
        )

        settings = self.settings
        pool = min(request.duration * settings.attraction_pool_per_day, settings.attraction_pool_cap)
        selected = select_best_attractions(places, request.preferences, pool, settings)
        ordered = plan_attraction_order(selected, destination, request.duration, settings)

        outbound, returns = build_transport_options(request, route, settings)
        return SearchInputs(
            origin=origin,
            destination=destination,
            route=route,
            outbound=outbound,
            returns=returns,
            accommodations=build_accommodation_options(request, settings),
            attractions=ordered,
        )

    # ----- loop -----
    async def search(
        self,
        request: TravelRequest,
        on_progress: Optional[ProgressCallback] = None,
        weights: Optional[ScoringWeights] = None,
    ) -> SearchResult:
        def emit(stage: SearchStage, detail: str = "") -> None:
            logger.debug("[%s] %s", stage.value, detail)
            if on_progress is not None:
                on_progress(stage, detail)

        settings = self.settings
        weights = weights or ScoringWeights()
        notes: List[str] = []

        emit(SearchStage.COLLECTING, f"{request.departure} -> {request.destination}")
        inputs = await self.collect(request)
        if inputs.route.source == "estimate":
            notes.append("Road distance estimated from straight-line distance.")
        if "car" in recommend_modes(inputs.route.distance_km):
            drive_hour = optimal_departure_hour(inputs.route.distance_km, settings.fallback_speed_kmh)
            notes.append(f"Driving: leave by {drive_hour:02d}:00 to arrive around noon.")
        if not inputs.accommodations:
            notes.append("No accommodation grade fits within the budget.")

        best: List[RouteCandidate] = []
        iterations = 0
        for cycle in range(1, settings.max_iterations + 1):
            iterations = cycle
            emit(SearchStage.GENERATING, f"cycle {cycle} weights {weights.describe()}")
            candidates = generate_combinations(
                inputs.outbound,
                inputs.returns,
                inputs.accommodations,
                inputs.attractions,
                request,
                settings,
                scheduler=self.scheduler,
            )
            if not candidates:
                notes.append(f"Cycle {cycle}: no feasible combinations.")
                if cycle < settings.max_iterations:
                    weights = relax_weights(weights)
                    emit(SearchStage.ADJUSTING, f"relaxed cost weight to {weights.cost:.2f}")
                continue

            emit(SearchStage.SCORING, f"{len(candidates)} candidates")
            ranked = score_and_rank(candidates, request, weights)
            best = ranked[: settings.top_n]
            top = ranked[0]

            emit(SearchStage.CHECK_THRESHOLD, f"top score {top.score:.3f} (threshold {settings.score_threshold})")
            if top.score >= settings.score_threshold:
                notes.append(f"Score threshold met in cycle {cycle}.")
                break
            if cycle < settings.max_iterations:
                weights = adjust_weights(weights, top, request)
                emit(SearchStage.ADJUSTING, weights.describe())
        else:
            notes.append(f"Stopped after {settings.max_iterations} cycles.")

        if best:
            top = best[0]
            full = trip_cost_summary(
                top.breakdown.transport,
                top.breakdown.accommodation,
                top.breakdown.attractions,
                request.duration + 1,
            )
            notes.append(f"Top itinerary incl. meals and extras: {full['total']:,.0f}")

        logger.info(
            "Search %s -> %s finished: %d candidates after %d cycles (%s)",
            request.departure,
            request.destination,
            len(best),
            iterations,
            weights.describe(),
        )
        emit(SearchStage.DONE, f"{len(best)} candidates")
        return SearchResult(candidates=best, iterations=iterations, weights=weights, notes=notes)


async def search_routes(
    request: TravelRequest,
    providers: Optional[TravelDataProviders] = None,
    cache: Optional[APICache] = None,
    settings: Optional[SearchSettings] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> SearchResult:
    service = RouteSearchService(providers=providers, cache=cache, settings=settings)
    return await service.search(request, on_progress=on_progress)
