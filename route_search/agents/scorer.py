"""Multi-objective scoring of candidate itineraries."""
from __future__ import annotations

from typing import Dict, List, Sequence

from route_search.agents.combinations import matches_preference
from route_search.schemas import RouteCandidate, ScoringWeights, TravelRequest

FATIGUE_LEG_SCALE = 10.0
NEUTRAL_PREFERENCE_SCORE = 0.5


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def preference_score(candidate: RouteCandidate, preferences: Sequence[str]) -> float:
    if not preferences:
        return NEUTRAL_PREFERENCE_SCORE
    tags = candidate.tags
    if not tags:
        return 0.0
    matched = sum(1 for tag in tags if matches_preference(tag, preferences))
    return matched / len(tags)


def component_scores(
    candidate: RouteCandidate,
    request: TravelRequest,
    max_duration: float,
) -> Dict[str, float]:
    if max_duration > 0:
        time_score = _clamp(1 - candidate.total_duration_minutes / max_duration)
    else:
        time_score = 1.0
    return {
        "cost": _clamp(1 - candidate.total_cost / request.budget),
        "time": time_score,
        "preference": preference_score(candidate, request.preferences),
        "fatigue": _clamp(1 - len(candidate.transports) / FATIGUE_LEG_SCALE),
    }


def composite_score(scores: Dict[str, float], weights: ScoringWeights) -> float:
    return _clamp(
        scores["cost"] * weights.cost
        + scores["time"] * weights.time
        + scores["preference"] * weights.preference
        + scores["fatigue"] * weights.fatigue
    )


def score_and_rank(
    candidates: Sequence[RouteCandidate],
    request: TravelRequest,
    weights: ScoringWeights,
) -> List[RouteCandidate]:
    """Score every candidate in place and return them best-first.

    Time is judged relative to the slowest candidate in the batch. The sort
    is stable, so equal scores keep generation order.
    """
    if not candidates:
        return []
    max_duration = max(c.total_duration_minutes for c in candidates)
    for candidate in candidates:
        candidate.score = composite_score(component_scores(candidate, request, max_duration), weights)
    return sorted(candidates, key=lambda c: -c.score)
