from datetime import date, datetime
from typing import Any, List, Literal, Optional
from pydantic import BaseModel, Field, AliasChoices, ConfigDict, model_validator

TripStatus = Literal["planning", "active", "completed"]

# ------- Trip records -------
class TripCreate(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=100)
    location: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=500)
    start_date: date = Field(..., validation_alias=AliasChoices("start_date", "startDate"))
    end_date: date = Field(..., validation_alias=AliasChoices("end_date", "endDate"))

    @model_validator(mode="after")
    def _check_dates(self) -> "TripCreate":
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class TripUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    location: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    start_date: Optional[date] = Field(None, validation_alias=AliasChoices("start_date", "startDate"))
    end_date: Optional[date] = Field(None, validation_alias=AliasChoices("end_date", "endDate"))

class Trip(BaseModel):
    id: str
    user_id: str
    name: str
    location: str
    description: str = ""
    start_date: date
    end_date: date
    status: TripStatus = "planning"
    created_at: datetime
    updated_at: datetime

# ------- Itinerary records -------
class Activity(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    name: str = Field(..., validation_alias=AliasChoices("name", "title"))
    start_time: str = Field(..., validation_alias=AliasChoices("start_time", "startTime"))
    end_time: str = Field(..., validation_alias=AliasChoices("end_time", "endTime"))
    location: str = ""
    notes: str = ""
    type: str = "general"
    created_at: Optional[datetime] = Field(None, validation_alias=AliasChoices("created_at", "createdAt"))
    updated_at: Optional[datetime] = Field(None, validation_alias=AliasChoices("updated_at", "updatedAt"))

class Day(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    day_date: Optional[date] = Field(None, validation_alias=AliasChoices("day_date", "date"))
    title: str = ""
    notes: str = ""
    activities: List[Activity] = Field(default_factory=list)
    updated_at: Optional[datetime] = Field(None, validation_alias=AliasChoices("updated_at", "updatedAt"))

# ------- Paging -------
class PageResult(BaseModel):
    """One page handed back by a fetch function.

    Fetch functions may return this model or a plain dict; the camelCase keys
    and the ``trips``/``activities`` collection names used by older paged
    services are accepted as aliases.
    """
    model_config = ConfigDict(extra="ignore")

    items: List[Any] = Field(
        default_factory=list,
        validation_alias=AliasChoices("items", "trips", "activities"),
    )
    cursor: Optional[Any] = Field(
        None, validation_alias=AliasChoices("cursor", "lastDocument", "last_document")
    )
    has_more: bool = Field(False, validation_alias=AliasChoices("has_more", "hasMore"))
    total_retrieved: Optional[int] = Field(
        None, validation_alias=AliasChoices("total_retrieved", "totalRetrieved")
    )
    total_available: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("total_available", "totalAvailable", "totalItems", "totalActivities"),
    )
    next_start_index: Optional[int] = Field(
        None, validation_alias=AliasChoices("next_start_index", "nextStartIndex")
    )

    @model_validator(mode="after")
    def _default_total_retrieved(self) -> "PageResult":
        if self.total_retrieved is None:
            self.total_retrieved = len(self.items)
        return self
