import asyncio
from typing import Any, Dict, List

import httpx
import pytest

from route_search import config
from route_search.providers import (
    place_from_google,
    place_from_opentripmap,
    smart_attractions,
    smart_geocode,
)
from route_search.schemas import Coordinates
from route_search.tools import attractions, geocoding, google_maps, routing
from route_search.tools.attractions import map_preferences_to_kinds
from route_search.tools.google_maps import map_preferences_to_google_types


class DummyResponse:
    def __init__(self, payload, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            request = httpx.Request("GET", "https://example.test")
            raise httpx.HTTPStatusError("error", request=request, response=httpx.Response(self.status_code))
        return None

    def json(self):
        return self._payload


class DummyAsyncClient:
    def __init__(self, response_payload, *args, status_code: int = 200, **kwargs):
        self.response_payload = response_payload
        self.status_code = status_code
        self.requests: List[tuple] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def get(self, url, params=None, headers=None):
        self.requests.append((url, params))
        return DummyResponse(self.response_payload, self.status_code)

    async def post(self, url, json=None, headers=None):
        self.requests.append((url, json))
        return DummyResponse(self.response_payload, self.status_code)


def _patch_client(monkeypatch, payload, status_code: int = 200) -> List[DummyAsyncClient]:
    created: List[DummyAsyncClient] = []

    def factory(*args, **kwargs):
        client = DummyAsyncClient(payload, status_code=status_code)
        created.append(client)
        return client

    monkeypatch.setattr(httpx, "AsyncClient", factory)
    return created


def test_nominatim_geocode_parses_first_hit(monkeypatch):
    clients = _patch_client(monkeypatch, [{"lat": "35.1796", "lon": "129.0756", "display_name": "Busan"}])

    coords = asyncio.run(geocoding.nominatim_geocode("Busan"))

    assert coords == Coordinates(lat=35.1796, lon=129.0756, display_name="Busan")
    url, params = clients[0].requests[0]
    assert url.endswith("/search") and params["q"] == "Busan"


def test_nominatim_geocode_returns_none_on_empty_or_error(monkeypatch):
    _patch_client(monkeypatch, [])
    assert asyncio.run(geocoding.nominatim_geocode("Atlantis")) is None

    _patch_client(monkeypatch, {}, status_code=503)
    assert asyncio.run(geocoding.nominatim_geocode("Busan")) is None


def test_openroute_directions_needs_key_and_parses_summary(monkeypatch):
    a = Coordinates(lat=37.5, lon=127.0)
    b = Coordinates(lat=35.1, lon=129.0)

    monkeypatch.setattr(config, "OPENROUTE_API_KEY", "")
    assert asyncio.run(routing.openroute_directions(a, b)) is None

    monkeypatch.setattr(config, "OPENROUTE_API_KEY", "ors-key")
    clients = _patch_client(monkeypatch, {"routes": [{"summary": {"distance": 395.2, "duration": 16200}}]})

    route = asyncio.run(routing.openroute_directions(a, b))

    assert route.distance_km == pytest.approx(395.2)
    assert route.duration_minutes == 270
    assert route.source == "openroute"
    _, body = clients[0].requests[0]
    assert body["coordinates"][0] == [127.0, 37.5]


def test_google_directions_converts_units(monkeypatch):
    monkeypatch.setattr(config, "GOOGLE_MAPS_API_KEY", "g" * 20)
    _patch_client(
        monkeypatch,
        {"status": "OK", "routes": [{"legs": [{"distance": {"value": 325000}, "duration": {"value": 14400}}]}]},
    )

    route = asyncio.run(google_maps.google_directions(Coordinates(lat=37.5, lon=127.0), Coordinates(lat=35.1, lon=129.0)))

    assert route.distance_km == pytest.approx(325.0)
    assert route.duration_minutes == 240
    assert route.source == "google"


def test_google_error_status_is_treated_as_no_result(monkeypatch):
    monkeypatch.setattr(config, "GOOGLE_MAPS_API_KEY", "g" * 20)
    _patch_client(monkeypatch, {"status": "REQUEST_DENIED"})
    assert asyncio.run(google_maps.google_geocode("Busan")) is None


def test_opentripmap_search_drops_unnamed(monkeypatch):
    monkeypatch.setattr(config, "OPENTRIPMAP_API_KEY", "otm-key")
    clients = _patch_client(
        monkeypatch,
        [
            {"name": "Beomeosa", "kinds": "religion,historic", "rate": 3, "point": {"lat": 35.28, "lon": 129.06}},
            {"name": "", "kinds": "other"},
        ],
    )

    raw = asyncio.run(attractions.opentripmap_search(Coordinates(lat=35.18, lon=129.07), 15, "historic"))

    assert [item["name"] for item in raw] == ["Beomeosa"]
    _, params = clients[0].requests[0]
    assert params["radius"] == "15000" and params["kinds"] == "historic"


def test_preference_mappings_dedupe():
    assert map_preferences_to_kinds(["Nature", "beach"]).split(",").count("beaches") == 1
    assert map_preferences_to_kinds(["unknown"]) == ""
    assert map_preferences_to_google_types([]) == ["tourist_attraction"]
    assert map_preferences_to_google_types(["food", "food"]) == ["restaurant", "cafe"]


def test_google_place_adapter():
    raw: Dict[str, Any] = {
        "name": "Haeundae Beach",
        "vicinity": "Haeundae-gu",
        "types": ["natural_feature", "tourist_attraction"],
        "rating": 4.6,
        "geometry": {"location": {"lat": 35.1587, "lng": 129.1604}},
    }

    place = place_from_google(raw)

    assert place.source == "google"
    assert place.popularity == pytest.approx(4.6)
    assert place.coordinates.lon == pytest.approx(129.1604)
    assert place.category_tags == ["natural_feature", "tourist_attraction"]
    assert place_from_google({"name": "  "}) is None


def test_opentripmap_adapter_rescales_rate():
    place = place_from_opentripmap(
        {"name": "Fortress", "kinds": "historic,fortifications", "rate": "7h", "point": {"lat": 35.1, "lon": 129.0}}
    )
    assert place.popularity == pytest.approx(5.0)
    assert place.category_tags == ["historic", "fortifications"]
    assert place.location == "35.1000, 129.0000"

    unrated = place_from_opentripmap({"name": "Somewhere", "kinds": ""})
    assert unrated.popularity == pytest.approx(3 / 7 * 5)
    assert unrated.coordinates is None


def test_smart_geocode_falls_back_to_nominatim(monkeypatch):
    async def no_google(address):
        return None

    async def nominatim(address, **kwargs):
        return Coordinates(lat=1.0, lon=2.0, display_name=address)

    monkeypatch.setattr(config, "GOOGLE_MAPS_API_KEY", "g" * 20)
    monkeypatch.setattr("route_search.providers.google_geocode", no_google)
    monkeypatch.setattr("route_search.providers.nominatim_geocode", nominatim)

    coords = asyncio.run(smart_geocode("CityB"))

    assert coords.display_name == "CityB"


def test_smart_attractions_uses_opentripmap_without_google(monkeypatch):
    async def otm(coords, radius_km, kinds=None, limit=50):
        return [
            {"name": "Fortress", "kinds": "historic", "rate": 7, "point": {"lat": 35.1, "lon": 129.0}},
            {"name": "fortress", "kinds": "historic", "rate": 3, "point": {"lat": 35.2, "lon": 129.1}},
        ]

    monkeypatch.setattr(config, "GOOGLE_MAPS_API_KEY", "")
    monkeypatch.setattr("route_search.providers.opentripmap_search", otm)

    places = asyncio.run(smart_attractions(Coordinates(lat=35.1, lon=129.0), 15, ["history"]))

    assert [p.name for p in places] == ["Fortress"]
    assert places[0].source == "opentripmap"
