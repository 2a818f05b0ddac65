from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from route_search.main import app
from route_search.orchestrator import LocationNotFoundError, RouteSearchError
from route_search.providers import TravelDataProviders
from route_search.schemas import ScoringWeights, SearchResult


def _sample_payload() -> dict:
    return {
        "departure": "Seoul",
        "destination": "Busan",
        "startDate": "2025-10-10",
        "duration": 2,
        "budget": 500000,
        "preferences": ["history", "food"],
    }


def test_api_search_endpoint(monkeypatch):
    client = TestClient(app)
    search = AsyncMock(return_value=SearchResult(candidates=[], iterations=2, weights=ScoringWeights(), notes=["ok"]))
    monkeypatch.setattr("route_search.main.search_routes", search)

    response = client.post("/api/search", json=_sample_payload())

    assert response.status_code == 200
    search.assert_awaited_once()
    request = search.await_args.args[0]
    assert request.destination == "Busan"
    assert request.start_date.isoformat() == "2025-10-10"
    body = response.json()
    assert body["iterations"] == 2
    assert body["weights"]["cost"] == 0.45
    assert body["progress"] == []


def test_api_search_rejects_invalid_payload(monkeypatch):
    client = TestClient(app)
    search = AsyncMock()
    monkeypatch.setattr("route_search.main.search_routes", search)

    payload = _sample_payload()
    payload["duration"] = 0
    response = client.post("/api/search", json=payload)

    assert response.status_code == 422
    search.assert_not_awaited()


def test_api_search_maps_search_errors(monkeypatch):
    client = TestClient(app)

    monkeypatch.setattr("route_search.main.search_routes", AsyncMock(side_effect=LocationNotFoundError("Atlantis")))
    response = client.post("/api/search", json=_sample_payload())
    assert response.status_code == 404
    assert "Atlantis" in response.json()["detail"]

    monkeypatch.setattr("route_search.main.search_routes", AsyncMock(side_effect=RouteSearchError("upstream")))
    assert client.post("/api/search", json=_sample_payload()).status_code == 502


def test_health_and_index():
    client = TestClient(app)
    assert client.get("/api/health").json()["status"] == "ok"
    assert "POST /api/search" in client.get("/").json()["endpoints"]


def test_api_search_reports_geocoder_outage_as_502(monkeypatch):
    client = TestClient(app)
    providers = TravelDataProviders(
        geocode=AsyncMock(side_effect=RuntimeError("quota exceeded")),
        route=AsyncMock(),
        nearby_attractions=AsyncMock(),
    )
    monkeypatch.setattr("route_search.orchestrator.default_providers", lambda: providers)

    response = client.post("/api/search", json=_sample_payload())

    assert response.status_code == 502
    assert "quota exceeded" in response.json()["detail"]
