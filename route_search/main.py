from __future__ import annotations

import asyncio
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, List

from fastapi import Body, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from route_search.cache import APICache
from route_search.config import SearchSettings
from route_search.orchestrator import LocationNotFoundError, RouteSearchError, search_routes
from route_search.schemas import TravelRequest

# One cache for the process; searches share geocoding/route lookups.
api_cache = APICache()


@asynccontextmanager
async def lifespan(_: FastAPI):
    sweeper = asyncio.create_task(api_cache.run_periodic_cleanup())
    try:
        yield
    finally:
        sweeper.cancel()


app = FastAPI(title="Route Search API", lifespan=lifespan)

# Browser frontends call the API directly; scope with ROUTE_SEARCH_ALLOWED_ORIGINS.
raw_origins = os.getenv("ROUTE_SEARCH_ALLOWED_ORIGINS") or "*"
allowed_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
if not allowed_origins:
    allowed_origins = ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def _search_from_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Validate the incoming payload and run one search."""
    try:
        request = TravelRequest.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_context=False)) from exc

    progress: List[Dict[str, str]] = []

    def on_progress(stage, detail: str) -> None:
        progress.append({"stage": stage.value, "detail": detail})

    try:
        result = await search_routes(
            request,
            cache=api_cache,
            settings=SearchSettings.from_env(),
            on_progress=on_progress,
        )
    except LocationNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except RouteSearchError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    body = result.model_dump(mode="json")
    body["progress"] = progress
    return body


@app.post("/api/search")
async def api_search(payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    return await _search_from_payload(payload)


@app.get("/api/health")
def health() -> Dict[str, Any]:
    return {"status": "ok", "cache": api_cache.stats()["size"]}


@app.get("/")
def index() -> Dict[str, Any]:
    return {
        "service": "route-search",
        "endpoints": {
            "POST /api/search": "Search ranked itineraries for a travel request",
            "GET /api/health": "Liveness probe",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("route_search.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=True)
