from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from triplist.config import ACTIVITY_PAGE_SIZE, DEFAULT_PAGE_SIZE, allowed_origins
from triplist.pagination import PageRequest
from triplist.schemas import TripCreate, TripUpdate
from triplist.stores.errors import (
    DayNotFoundError,
    InvalidCursorError,
    TripNotFoundError,
    TripValidationError,
)
from triplist.stores.itinerary_store import InMemoryItineraryStore
from triplist.stores.trip_store import InMemoryTripStore

app = FastAPI(title="Trip List API")

# Local development UIs hit the API from other origins; operators can narrow
# this via TRIP_LIST_ALLOWED_ORIGINS.
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

itinerary_store = InMemoryItineraryStore()
trip_store = InMemoryTripStore(itinerary=itinerary_store)


def _validate(model, payload: Dict[str, Any]):
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=422, detail=exc.errors(include_url=False, include_context=False)
        ) from exc


@app.get("/api/users/{user_id}/trips")
async def list_trips(
    user_id: str,
    page_size: int = Query(DEFAULT_PAGE_SIZE),
    cursor: Optional[str] = Query(None),
) -> Dict[str, Any]:
    """Trips for a user, newest first."""
    try:
        page = await trip_store.fetch_trips_page(user_id, PageRequest(page_size=page_size, cursor=cursor))
    except InvalidCursorError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return page.model_dump(mode="json")


@app.get("/api/users/{user_id}/trips/search")
async def search_trips(
    user_id: str,
    q: str = Query(""),
    page_size: int = Query(DEFAULT_PAGE_SIZE),
    cursor: Optional[str] = Query(None),
) -> Dict[str, Any]:
    try:
        page = await trip_store.search_trips_page(
            user_id, q, PageRequest(page_size=page_size, cursor=cursor)
        )
    except TripValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors) from exc
    except InvalidCursorError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return page.model_dump(mode="json")


@app.post("/api/users/{user_id}/trips", status_code=201)
async def create_trip(user_id: str, payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    data = _validate(TripCreate, payload)
    trip = trip_store.create_trip(user_id, data)
    return trip.model_dump(mode="json")


@app.patch("/api/trips/{trip_id}")
async def update_trip(trip_id: str, payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    patch = _validate(TripUpdate, payload)
    try:
        trip = trip_store.update_trip(trip_id, patch)
    except TripNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except TripValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors) from exc
    return trip.model_dump(mode="json")


@app.delete("/api/trips/{trip_id}", status_code=204)
async def delete_trip(trip_id: str) -> Response:
    try:
        trip_store.delete_trip(trip_id)
    except TripNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(status_code=204)


@app.get("/api/trips/{trip_id}/days/{day_index}/activities")
async def list_day_activities(
    trip_id: str,
    day_index: int,
    page_size: int = Query(ACTIVITY_PAGE_SIZE),
    start_index: int = Query(0),
) -> Dict[str, Any]:
    """Activities of one itinerary day, ordered by start time."""
    try:
        page = await itinerary_store.fetch_day_activities_page(
            trip_id, day_index, PageRequest(page_size=page_size, start_index=start_index)
        )
    except (TripNotFoundError, DayNotFoundError) as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return page.model_dump(mode="json")
