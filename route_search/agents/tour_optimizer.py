"""Visiting-order optimisation for a handful of stops between fixed endpoints.

Nearest-neighbour gives the initial tour, 2-opt removes crossings, and a
priority pass lets more important stops move earlier when that costs no extra
distance. Waypoint counts here are single digits.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from route_search.geo import distance_km
from route_search.logging_setup import get_logger
from route_search.schemas import Coordinates

logger = get_logger(__name__)

DEFAULT_PRIORITY = 5.0
_EPS = 1e-9


@dataclass
class Waypoint:
    name: str
    coords: Coordinates
    priority: float = DEFAULT_PRIORITY  # 1-10, higher is more important
    dwell_hours: Optional[float] = None
    payload: Any = None  # whatever the caller wants back, e.g. an AttractionOption


@dataclass
class OptimizedTour:
    stops: List[Waypoint]
    total_distance_km: float
    order: List[int] = field(default_factory=list)

    @property
    def interior(self) -> List[Waypoint]:
        return self.stops[1:-1]


def build_distance_matrix(points: Sequence[Waypoint]) -> List[List[float]]:
    n = len(points)
    matrix = [[0.0] * n for _ in range(n)]
    for i in range(n):
        for j in range(i + 1, n):
            d = distance_km(points[i].coords, points[j].coords)
            matrix[i][j] = d
            matrix[j][i] = d
    return matrix


def tour_length(order: Sequence[int], matrix: Sequence[Sequence[float]]) -> float:
    return sum(matrix[a][b] for a, b in zip(order[:-1], order[1:]))


def nearest_neighbour(start: int, end: int, matrix: Sequence[Sequence[float]]) -> List[int]:
    """Greedy tour from ``start`` that always saves ``end`` for last."""
    n = len(matrix)
    order = [start]
    visited = {start, end}
    current = start
    while len(visited) < n:
        candidates = [i for i in range(n) if i not in visited]
        nearest = min(candidates, key=lambda i: matrix[current][i])
        visited.add(nearest)
        order.append(nearest)
        current = nearest
    order.append(end)
    return order


def two_opt(order: List[int], matrix: Sequence[Sequence[float]]) -> List[int]:
    """Reverse interior segments while that strictly shortens the tour."""
    best = list(order)
    best_distance = tour_length(best, matrix)
    improved = True
    while improved:
        improved = False
        for i in range(1, len(best) - 2):
            for j in range(i + 1, len(best) - 1):
                candidate = best[:i] + best[i : j + 1][::-1] + best[j + 1 :]
                candidate_distance = tour_length(candidate, matrix)
                if candidate_distance < best_distance - _EPS:
                    best, best_distance = candidate, candidate_distance
                    improved = True
    return best


def apply_priority(order: List[int], points: Sequence[Waypoint], matrix: Sequence[Sequence[float]]) -> List[int]:
    """Move higher-priority stops earlier, only through distance-neutral swaps."""
    result = list(order)
    swapped = True
    while swapped:
        swapped = False
        current = tour_length(result, matrix)
        for i in range(1, len(result) - 2):
            a, b = result[i], result[i + 1]
            if points[b].priority <= points[a].priority:
                continue
            trial = result[:i] + [b, a] + result[i + 2 :]
            trial_distance = tour_length(trial, matrix)
            if trial_distance <= current + _EPS:
                result, current = trial, trial_distance
                swapped = True
    return result


def optimize_order(waypoints: Sequence[Waypoint], start: Waypoint, end: Waypoint) -> OptimizedTour:
    """Order ``waypoints`` between fixed endpoints.

    With fewer than two waypoints there is nothing to order and the tour is
    the direct start-to-end trip.
    """
    if len(waypoints) <= 1:
        return OptimizedTour(
            stops=[start, end],
            total_distance_km=distance_km(start.coords, end.coords),
            order=[0, 1],
        )

    points = [start, *waypoints, end]
    matrix = build_distance_matrix(points)
    start_idx, end_idx = 0, len(points) - 1

    order = nearest_neighbour(start_idx, end_idx, matrix)
    order = two_opt(order, matrix)
    order = apply_priority(order, points, matrix)

    total = tour_length(order, matrix)
    logger.debug("Optimised %d waypoints: %.1f km", len(waypoints), total)
    return OptimizedTour(stops=[points[i] for i in order], total_distance_km=total, order=order)


def _single_stop_tour(waypoint: Waypoint, start: Waypoint, end: Waypoint) -> OptimizedTour:
    total = distance_km(start.coords, waypoint.coords) + distance_km(waypoint.coords, end.coords)
    return OptimizedTour(stops=[start, waypoint, end], total_distance_km=total, order=[0, 1, 2])


def tour_hours(tour: OptimizedTour, avg_speed_kmh: float, default_dwell_hours: float) -> float:
    travel = tour.total_distance_km / avg_speed_kmh
    dwell = sum(
        stop.dwell_hours if stop.dwell_hours is not None else default_dwell_hours
        for stop in tour.interior
    )
    return travel + dwell


def optimize_with_time_budget(
    waypoints: Sequence[Waypoint],
    start: Waypoint,
    end: Waypoint,
    max_hours: float,
    avg_speed_kmh: float = 80.0,
    default_dwell_hours: float = 2.0,
) -> Optional[OptimizedTour]:
    """Best tour that fits ``max_hours``, dropping the least important stops first.

    Returns ``None`` when even the direct start-to-end trip does not fit.
    """
    # stable sort keeps input order among equal priorities
    ranked = sorted(waypoints, key=lambda wp: -wp.priority)
    for keep in range(len(ranked), -1, -1):
        if keep == 1:
            tour = _single_stop_tour(ranked[0], start, end)
        else:
            tour = optimize_order(ranked[:keep], start, end)
        hours = tour_hours(tour, avg_speed_kmh, default_dwell_hours)
        if hours <= max_hours:
            if keep < len(ranked):
                logger.info(
                    "Dropped %d low-priority stop(s) to fit %.1fh budget", len(ranked) - keep, max_hours
                )
            return tour
    logger.warning("No tour fits %.1fh even without stops", max_hours)
    return None
