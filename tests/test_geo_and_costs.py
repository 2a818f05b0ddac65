import pytest

from route_search.costs import (
    accommodation_cost,
    attraction_fee,
    optimal_departure_hour,
    recommend_modes,
    transport_cost,
    transport_duration,
    trip_cost_summary,
)
from route_search.geo import distance_km
from route_search.schemas import Coordinates

SEOUL = (37.5665, 126.9780)
BUSAN = (35.1796, 129.0756)
DAEJEON = (36.3504, 127.3845)


def test_distance_between_known_cities():
    assert 315 < distance_km(SEOUL, BUSAN) < 335


def test_distance_is_symmetric_and_zero_on_same_point():
    assert distance_km(SEOUL, BUSAN) == pytest.approx(distance_km(BUSAN, SEOUL))
    assert distance_km(SEOUL, SEOUL) == 0.0


def test_distance_respects_triangle_inequality():
    direct = distance_km(SEOUL, BUSAN)
    via = distance_km(SEOUL, DAEJEON) + distance_km(DAEJEON, BUSAN)
    assert direct <= via + 1e-9


def test_distance_accepts_coordinate_models():
    a = Coordinates(lat=SEOUL[0], lon=SEOUL[1])
    b = Coordinates(lat=BUSAN[0], lon=BUSAN[1])
    assert distance_km(a, b) == pytest.approx(distance_km(SEOUL, BUSAN))


def test_transport_cost_tiers_and_flight_surcharge():
    assert transport_cost(100, "train") == 8000
    assert transport_cost(300, "flight") == 57750
    assert transport_cost(0, "walk") == 0


@pytest.mark.parametrize("mode", ["flight", "train", "bus", "car", "subway"])
def test_transport_cost_never_decreases_with_distance(mode):
    previous = -1.0
    for km in range(0, 1200, 5):
        cost = transport_cost(float(km), mode)
        assert cost >= previous, f"{mode} at {km} km"
        previous = cost


def test_transport_estimators_reject_unknown_mode():
    with pytest.raises(ValueError):
        transport_cost(100, "teleport")
    with pytest.raises(ValueError):
        transport_duration(100, "teleport")


def test_transport_duration_adds_boarding_overhead():
    assert transport_duration(300, "train") == 120
    assert transport_duration(0, "flight") == 120
    assert transport_duration(90, "car") == 60


def test_accommodation_cost_applies_popularity_and_long_stay():
    assert accommodation_cost("budget", 3, True) == 185250
    assert accommodation_cost("standard", 2, False) == 160000
    with pytest.raises(ValueError):
        accommodation_cost("palace", 2)


def test_attraction_fee_keyword_tiers_then_popularity():
    assert attraction_fee("parks,natural", 5) == 0
    assert attraction_fee("monuments") == 5000
    assert attraction_fee("amusements", 1) == 20000
    assert attraction_fee("museums", 3) == 10000
    assert attraction_fee("museums", 5) == 20000
    assert attraction_fee("", 2) == 5000


def test_recommend_modes_by_distance():
    assert recommend_modes(300) == ["flight", "train", "bus", "car"]
    assert recommend_modes(600) == ["flight", "train", "bus"]
    assert recommend_modes(40) == ["bus", "car"]
    assert recommend_modes(10) == ["car"]


def test_trip_cost_summary_adds_meals_and_margin():
    summary = trip_cost_summary(100, 200, 0, 1)
    assert summary["meals"] == 30000
    assert summary["miscellaneous"] == 3030
    assert summary["total"] == 33330


def test_optimal_departure_hour_never_before_six():
    assert optimal_departure_hour(300, 100) == 9
    assert optimal_departure_hour(1000, 100) == 6
