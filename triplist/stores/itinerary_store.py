"""In-memory itinerary store: days per trip, activities per day."""
from __future__ import annotations

import logging
import os
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Type

from pydantic import AliasChoices, BaseModel, ValidationError

from triplist.config import MAX_PAGE_SIZE, clamp_page_size
from triplist.pagination import PageRequest
from triplist.schemas import Activity, Day, PageResult
from triplist.stores.errors import (
    ActivityNotFoundError,
    DayNotFoundError,
    TripNotFoundError,
    TripValidationError,
)

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TRIP_LIST_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

TIMES_REQUIRED = "Activity start and end times are required"
TITLE_REQUIRED = "Activity title is required"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _by_field_name(model: Type[BaseModel], changes: Mapping[str, Any]) -> Dict[str, Any]:
    """Rewrite camelCase aliases in ``changes`` to the model's field names."""
    names: Dict[str, str] = {}
    for name, info in model.model_fields.items():
        alias = info.validation_alias
        if isinstance(alias, AliasChoices):
            for choice in alias.choices:
                if isinstance(choice, str):
                    names[choice] = name
    return {names.get(key, key): value for key, value in changes.items()}


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _validation_error(exc: ValidationError) -> TripValidationError:
    return TripValidationError([err["msg"] for err in exc.errors()])


class InMemoryItineraryStore:
    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = _utcnow,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        self._clock = clock
        self.max_page_size = max_page_size
        self._days: Dict[str, List[Day]] = {}

    # ---------- days ----------
    def initialize_itinerary(self, trip_id: str, start: date, end: date) -> List[Day]:
        """One empty day per calendar date of the trip, inclusive.

        An itinerary that already has days is left as it is.
        """
        existing = self._days.get(trip_id)
        if existing:
            logger.info("Itinerary for trip %s already has days; skipping initialization", trip_id)
            return existing

        span = max(0, (end - start).days)
        now = self._clock()
        days = [
            Day(day_date=start + timedelta(days=offset), title=f"Day {offset + 1}", updated_at=now)
            for offset in range(span + 1)
        ]
        self._days[trip_id] = days
        logger.info("Initialized itinerary for trip %s with %d days", trip_id, len(days))
        return days

    def drop_itinerary(self, trip_id: str) -> None:
        self._days.pop(trip_id, None)

    def get_days(self, trip_id: str) -> List[Day]:
        try:
            return self._days[trip_id]
        except KeyError:
            raise TripNotFoundError(f"No itinerary for trip: {trip_id}") from None

    def get_day(self, trip_id: str, day_index: int) -> Day:
        days = self.get_days(trip_id)
        if day_index < 0 or day_index >= len(days):
            raise DayNotFoundError(f"Day {day_index} not found for trip {trip_id}")
        return days[day_index]

    def add_day(self, trip_id: str, title: str = "") -> Day:
        days = self._days.setdefault(trip_id, [])
        next_date: Optional[date] = None
        if days and days[-1].day_date is not None:
            next_date = days[-1].day_date + timedelta(days=1)
        day = Day(day_date=next_date, title=title or f"Day {len(days) + 1}", updated_at=self._clock())
        days.append(day)
        return day

    def add_days(self, trip_id: str, start_day: int, end_day: int) -> List[Day]:
        """Make sure days ``start_day``..``end_day`` (1-based) exist.

        Day numbers already covered are skipped; only the missing days are
        appended and returned.
        """
        if start_day < 1 or end_day < start_day:
            raise TripValidationError(["Valid start and end day numbers are required"])
        current = len(self._days.get(trip_id, []))
        added = [self.add_day(trip_id) for number in range(start_day, end_day + 1) if number > current]
        logger.info("Added %d new days to itinerary for trip %s", len(added), trip_id)
        return added

    def update_day(self, trip_id: str, day_index: int, changes: Mapping[str, Any]) -> Day:
        day = self.get_day(trip_id, day_index)
        if not changes:
            raise TripValidationError(["Update data is required"])
        merged = {**day.model_dump(), **_by_field_name(Day, changes), "updated_at": self._clock()}
        try:
            updated = Day.model_validate(merged)
        except ValidationError as exc:
            raise _validation_error(exc) from exc
        self._days[trip_id][day_index] = updated
        return updated

    def delete_day(self, trip_id: str, day_index: int) -> None:
        self.get_day(trip_id, day_index)
        del self._days[trip_id][day_index]
        logger.info("Deleted day %d from trip %s", day_index, trip_id)

    def reorder_days(self, trip_id: str, new_order: Sequence[int]) -> List[Day]:
        """Rearrange days; ``new_order[i]`` is the current index of the new day ``i``."""
        days = self.get_days(trip_id)
        for index in new_order:
            if index < 0 or index >= len(days):
                raise TripValidationError([f"Invalid day index: {index}"])
        if sorted(new_order) != list(range(len(days))):
            raise TripValidationError(["New order must list every day exactly once"])
        days[:] = [days[index] for index in new_order]
        return days

    # ---------- activities ----------
    def add_activity(self, trip_id: str, day_index: int, data: Mapping[str, Any]) -> Activity:
        day = self.get_day(trip_id, day_index)
        fields = _by_field_name(Activity, data)
        if _blank(fields.get("name")):
            raise TripValidationError([TITLE_REQUIRED])
        if _blank(fields.get("start_time")) or _blank(fields.get("end_time")):
            raise TripValidationError([TIMES_REQUIRED])

        now = self._clock()
        fields.update(
            id=uuid.uuid4().hex,
            name=fields["name"].strip(),
            notes=(fields.get("notes") or "").strip(),
            location=fields.get("location") or "",
            type=fields.get("type") or "general",
            created_at=now,
            updated_at=now,
        )
        try:
            activity = Activity.model_validate(fields)
        except ValidationError as exc:
            raise _validation_error(exc) from exc
        day.activities.append(activity)
        day.updated_at = now
        logger.info("Added activity %s to trip %s day %d", activity.id, trip_id, day_index)
        return activity

    def _locate(self, trip_id: str, day_index: int, activity_id: str) -> int:
        day = self.get_day(trip_id, day_index)
        for idx, activity in enumerate(day.activities):
            if activity.id == activity_id:
                return idx
        raise ActivityNotFoundError(f"Activity not found: {activity_id}")

    def update_activity(
        self, trip_id: str, day_index: int, activity_id: str, changes: Mapping[str, Any]
    ) -> Activity:
        idx = self._locate(trip_id, day_index, activity_id)
        day = self.get_day(trip_id, day_index)
        fields = _by_field_name(Activity, changes)
        if not fields:
            raise TripValidationError(["Update data is required"])
        if "name" in fields and _blank(fields["name"]):
            raise TripValidationError([TITLE_REQUIRED])
        if any(key in fields and _blank(fields[key]) for key in ("start_time", "end_time")):
            raise TripValidationError([TIMES_REQUIRED])

        current = day.activities[idx]
        now = self._clock()
        merged = {
            **current.model_dump(),
            **fields,
            "id": activity_id,
            "created_at": current.created_at,
            "updated_at": now,
        }
        try:
            updated = Activity.model_validate(merged)
        except ValidationError as exc:
            raise _validation_error(exc) from exc
        day.activities[idx] = updated
        day.updated_at = now
        return updated

    def delete_activity(self, trip_id: str, day_index: int, activity_id: str) -> None:
        idx = self._locate(trip_id, day_index, activity_id)
        del self.get_day(trip_id, day_index).activities[idx]

    async def fetch_day_activities_page(
        self, trip_id: str, day_index: int, options: PageRequest
    ) -> PageResult:
        """Activities of one day ordered by start time, sliced by start index."""
        day = self.get_day(trip_id, day_index)
        ordered = sorted(day.activities, key=lambda activity: activity.start_time)
        page_size = clamp_page_size(options.page_size, self.max_page_size)
        start = max(0, int(options.start_index or 0))
        page = ordered[start:start + page_size]
        next_start = start + len(page)

        logger.info(
            "Retrieved %d of %d activities for trip %s day %d",
            len(page),
            len(ordered),
            trip_id,
            day_index,
        )
        return PageResult(
            items=page,
            has_more=next_start < len(ordered),
            total_retrieved=len(page),
            total_available=len(ordered),
            next_start_index=next_start,
        )
