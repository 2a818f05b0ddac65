from datetime import date, datetime

import pytest
from pydantic import ValidationError

from route_search.config import SearchSettings
from route_search.schemas import CostBreakdown, RouteCandidate, ScoringWeights, TransportOption, TravelRequest


def test_travel_request_accepts_camel_case_and_cleans_preferences():
    request = TravelRequest.model_validate(
        {
            "departure": "  Seoul ",
            "destination": "Busan",
            "startDate": "2025-05-01",
            "duration": 3,
            "budget": 400000,
            "preferences": ["history", " history", "", "food"],
        }
    )
    assert request.departure == "Seoul"
    assert request.start_date == date(2025, 5, 1)
    assert request.preferences == ["history", "food"]


@pytest.mark.parametrize(
    "field,value",
    [("duration", 0), ("budget", 0), ("departure", "   ")],
)
def test_travel_request_rejects_invalid_values(field, value):
    payload = {
        "departure": "Seoul",
        "destination": "Busan",
        "start_date": "2025-05-01",
        "duration": 2,
        "budget": 100000,
    }
    payload[field] = value
    with pytest.raises(ValidationError):
        TravelRequest.model_validate(payload)


def test_transport_option_requires_arrival_after_departure():
    moment = datetime(2025, 5, 1, 9)
    with pytest.raises(ValidationError):
        TransportOption.model_validate(
            {
                "mode": "bus",
                "from": "A",
                "to": "B",
                "cost": 100,
                "duration_minutes": 0,
                "departure_time": moment,
                "arrival_time": moment,
            }
        )


def test_candidate_total_must_match_breakdown():
    with pytest.raises(ValidationError):
        CostBreakdown(transport=10, accommodation=20, attractions=0, total=40)
    with pytest.raises(ValidationError):
        RouteCandidate(
            id="0-0-0",
            total_cost=50,
            total_duration_minutes=10,
            breakdown=CostBreakdown(transport=30, total=30),
        )


def test_scoring_weights_clamped_and_described():
    weights = ScoringWeights(cost=0.9, time=0.3, preference=0.5, fatigue=0.05).clamped()
    assert weights.cost == 0.6
    assert weights.preference == 0.35
    assert ScoringWeights().describe() == "cost=45% time=30% pref=20% fatigue=5%"


def test_search_settings_from_env(monkeypatch):
    monkeypatch.setenv("ROUTE_SEARCH_MAX_ITERATIONS", "2")
    monkeypatch.setenv("ROUTE_SEARCH_DEPARTURE_HOURS", "8, 12")
    settings = SearchSettings.from_env()
    assert settings.max_iterations == 2
    assert settings.departure_hours == [8, 12]
    assert settings.score_threshold == 0.55


def test_search_settings_rejects_hours_outside_the_clock(monkeypatch):
    monkeypatch.setenv("ROUTE_SEARCH_DEPARTURE_HOURS", "7,25")
    with pytest.raises(ValidationError):
        SearchSettings.from_env()
    with pytest.raises(ValidationError):
        SearchSettings(departure_hours=[-1])
    with pytest.raises(ValidationError):
        SearchSettings(departure_hours=[])
    assert SearchSettings(departure_hours=[0, 23]).departure_hours == [0, 23]
