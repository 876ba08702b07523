"""In-memory trip store exposing paged fetch functions."""
from __future__ import annotations

import itertools
import logging
import os
import uuid
from datetime import date, datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from triplist.config import MAX_PAGE_SIZE, clamp_page_size
from triplist.pagination import PageRequest
from triplist.schemas import PageResult, Trip, TripCreate, TripStatus, TripUpdate
from triplist.stores.errors import InvalidCursorError, TripNotFoundError, TripValidationError
from triplist.stores.itinerary_store import InMemoryItineraryStore

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TRIP_LIST_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False


def infer_trip_status(start: date, end: date, today: date) -> TripStatus:
    if end < today:
        return "completed"
    if start <= today <= end:
        return "active"
    return "planning"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryTripStore:
    def __init__(
        self,
        *,
        itinerary: Optional[InMemoryItineraryStore] = None,
        clock: Callable[[], datetime] = _utcnow,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        self.itinerary = itinerary
        self._clock = clock
        self.max_page_size = max_page_size
        self._trips: Dict[str, Trip] = {}
        # insertion sequence breaks created_at ties
        self._seq: Dict[str, int] = {}
        self._counter = itertools.count()

    # ---------- CRUD ----------
    def create_trip(self, user_id: str, data: TripCreate) -> Trip:
        if not user_id:
            raise TripValidationError(["user_id is required"])
        now = self._clock()
        trip = Trip(
            id=uuid.uuid4().hex,
            user_id=user_id,
            name=data.name.strip(),
            location=data.location.strip(),
            description=data.description,
            start_date=data.start_date,
            end_date=data.end_date,
            status=infer_trip_status(data.start_date, data.end_date, now.date()),
            created_at=now,
            updated_at=now,
        )
        self._trips[trip.id] = trip
        self._seq[trip.id] = next(self._counter)
        logger.info("Created trip %s for user %s", trip.id, user_id)

        if self.itinerary is not None:
            self.itinerary.initialize_itinerary(trip.id, trip.start_date, trip.end_date)
        return trip

    def get_trip(self, trip_id: str, user_id: Optional[str] = None) -> Trip:
        trip = self._trips.get(trip_id)
        if trip is None or (user_id is not None and trip.user_id != user_id):
            raise TripNotFoundError(f"Trip not found: {trip_id}")
        return trip

    def update_trip(self, trip_id: str, patch: TripUpdate, user_id: Optional[str] = None) -> Trip:
        existing = self.get_trip(trip_id, user_id)
        changes = patch.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise TripValidationError(["update data is required"])

        merged = existing.model_copy(update=changes)
        if merged.end_date <= merged.start_date:
            raise TripValidationError(["End date must be after start date"])

        now = self._clock()
        updated = merged.model_copy(
            update={
                "status": infer_trip_status(merged.start_date, merged.end_date, now.date()),
                "updated_at": now,
            }
        )
        self._trips[trip_id] = updated
        logger.info("Updated trip %s fields: %s", trip_id, ", ".join(sorted(changes)))
        return updated

    def delete_trip(self, trip_id: str, user_id: Optional[str] = None) -> None:
        self.get_trip(trip_id, user_id)
        del self._trips[trip_id]
        del self._seq[trip_id]
        if self.itinerary is not None:
            self.itinerary.drop_itinerary(trip_id)
        logger.info("Deleted trip %s", trip_id)

    # ---------- paging ----------
    def _ordered_for(self, user_id: str) -> List[Trip]:
        trips = [t for t in self._trips.values() if t.user_id == user_id]
        return sorted(trips, key=lambda t: (t.created_at, self._seq[t.id]), reverse=True)

    @staticmethod
    def _after_cursor(trips: List[Trip], cursor: Optional[str]) -> List[Trip]:
        if cursor is None:
            return trips
        for idx, trip in enumerate(trips):
            if trip.id == cursor:
                return trips[idx + 1:]
        raise InvalidCursorError(f"Unknown cursor: {cursor}")

    def _slice(self, trips: List[Trip], page_size: int) -> Tuple[List[Trip], bool]:
        page = trips[:page_size]
        return page, len(trips) > page_size

    async def fetch_trips_page(self, user_id: str, options: PageRequest) -> PageResult:
        """Trips for ``user_id``, newest first; the cursor is the last trip id."""
        if not user_id:
            raise TripValidationError(["user_id is required"])
        page_size = clamp_page_size(options.page_size, self.max_page_size)
        remaining = self._after_cursor(self._ordered_for(user_id), options.cursor)
        page, has_more = self._slice(remaining, page_size)

        logger.info("Retrieved %d trips for user %s (paginated)", len(page), user_id)
        return PageResult(
            items=page,
            cursor=page[-1].id if page else None,
            has_more=has_more,
            total_retrieved=len(page),
        )

    async def search_trips_page(self, user_id: str, term: str, options: PageRequest) -> PageResult:
        """Trips whose name, location or description contains ``term``."""
        if not user_id:
            raise TripValidationError(["user_id is required"])
        if not term or not term.strip():
            raise TripValidationError(["search term is required"])

        needle = term.strip().lower()
        page_size = clamp_page_size(options.page_size, self.max_page_size)
        remaining = self._after_cursor(self._ordered_for(user_id), options.cursor)
        matches = [
            t
            for t in remaining
            if needle in t.name.lower()
            or needle in t.location.lower()
            or needle in (t.description or "").lower()
        ]
        page, has_more = self._slice(matches, page_size)

        logger.info("Found %d trips matching %r (paginated)", len(page), term)
        return PageResult(
            items=page,
            cursor=page[-1].id if page else None,
            has_more=has_more,
            total_retrieved=len(page),
        )
