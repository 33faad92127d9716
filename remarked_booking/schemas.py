"""Pydantic schemas for API responses/requests."""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .remarked_types import EventTag, Slot


class BookingCreate(BaseModel):
    """Booking form as posted by the site.

    Every field is optional here so that missing ones are reported together
    by the booking service instead of by request parsing.
    """

    restaurant_id: Optional[str] = Field(default=None, alias="restaurantId")
    name: Optional[str] = None
    phone: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    guests_count: Optional[int] = None
    duration: Optional[int] = None
    comment: Optional[str] = None
    table_ids: Optional[List[int]] = None
    event_tags: Optional[List[int]] = Field(default=None, alias="eventTags")
    confirm_code: Optional[int] = None
    request_id: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("restaurant_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value


class BookingData(BaseModel):
    """Created reservation as returned to the site."""

    reserve_id: Optional[int] = None
    form_url: Optional[str] = None
    message: str


class BookingEnvelope(BaseModel):
    success: bool = True
    data: BookingData


class FailureEnvelope(BaseModel):
    success: bool = False
    message: str


class SlotsData(BaseModel):
    slots: List[Slot]
    date: str
    guests_count: int


class SlotsEnvelope(BaseModel):
    success: bool = True
    data: SlotsData


class DayStateResponse(BaseModel):
    date: str
    is_free: bool


class DaysData(BaseModel):
    days: List[DayStateResponse]


class DaysEnvelope(BaseModel):
    success: bool = True
    data: DaysData


class EventTagsData(BaseModel):
    event_tags: List[EventTag]


class EventTagsEnvelope(BaseModel):
    success: bool = True
    data: EventTagsData


class HealthResponse(BaseModel):
    status: str = "ok"
    cache: str
