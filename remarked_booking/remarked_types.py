"""Pydantic models for ReMarked RESERVES API V1 requests and replies."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

InnerStatus = Literal["new", "waiting", "confirmed", "started", "closed", "canceled"]
OperationStatus = Literal["new", "waiting", "confirmed", "canceled", "started", "closed", "error"]
DepositStatus = Literal["no_deposit", "not_paid", "paid"]
ReserveType = Literal["booking", "banquet"]
ReserveSource = Literal["site", "mobile_app"]
CancelReason = Literal[
    "guest_didnt_connect",
    "rescheduled_by_guest",
    "didnt_make_deposit",
    "canceled_by_guest",
    "guest_confirmed_but_didnt_come",
    "canceled_by_appwteguide",
    "other",
]
SortBy = Literal["id", "estimated_time"]
SortDirection = Literal["ASC", "DESC"]


class _ProviderModel(BaseModel):
    """Replies keep unknown fields so nothing the provider adds is lost."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


# ---------------------------------------------------------------------------
# Request parts
# ---------------------------------------------------------------------------


class DatePeriod(BaseModel):
    """Inclusive range of calendar days."""

    date_from: date = Field(alias="from")
    date_to: date = Field(alias="to")

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def _check_order(self) -> "DatePeriod":
        if self.date_from > self.date_to:
            raise ValueError("period start must not be after its end")
        return self

    @classmethod
    def single_day(cls, day: date) -> "DatePeriod":
        return cls(date_from=day, date_to=day)

    def to_payload(self) -> dict[str, str]:
        return self.model_dump(mode="json", by_alias=True)


class SlotOptions(BaseModel):
    """Optional GetSlots flags; unset ones are left out of the request."""

    with_rooms: Optional[bool] = None
    slot_duration: Optional[int] = Field(default=None, ge=300, le=86400)


class ReserveData(BaseModel):
    """Reservation body for CreateReserve."""

    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    date: str = Field(min_length=1)
    time: str = Field(min_length=1)
    guests_count: int = Field(ge=1)
    email: Optional[str] = None
    utm: Optional[str] = None
    deposit_sum: Optional[float] = None
    deposit_status: Optional[DepositStatus] = None
    comment: Optional[str] = None
    type: Optional[ReserveType] = None
    source: Optional[ReserveSource] = None
    duration: Optional[int] = None
    table_ids: Optional[List[int]] = None
    event_tags: Optional[List[int]] = Field(default=None, alias="eventTags")
    is_subscription: Optional[bool] = None

    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ReserveFilters(BaseModel):
    """Paging and filtering for GetReservesByPhone."""

    limit: Optional[int] = Field(default=None, ge=1, le=1000)
    offset: Optional[int] = Field(default=None, ge=0)
    sort_by: Optional[SortBy] = None
    sort_direction: Optional[SortDirection] = None
    date_from: Optional[date] = Field(default=None, alias="from")
    date_to: Optional[date] = Field(default=None, alias="to")

    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        # The provider declares limit and offset as strings.
        for key in ("limit", "offset"):
            if key in payload:
                payload[key] = str(payload[key])
        return payload


# ---------------------------------------------------------------------------
# Replies
# ---------------------------------------------------------------------------


class Capacity(_ProviderModel):
    min: int
    max: int


class TokenResult(_ProviderModel):
    """GetToken reply. ``from_cache`` is set locally, never by the provider."""

    token: str
    capacity: Optional[Capacity] = None
    from_cache: bool = Field(default=False, exclude=True)


class DayState(_ProviderModel):
    date: str
    is_free: bool


class DaysStatesResult(_ProviderModel):
    status: Optional[str] = None
    slots: Dict[str, DayState] = Field(default_factory=dict)


class Slot(_ProviderModel):
    start_stamp: int
    end_stamp: int
    duration: int
    start_datetime: str
    end_datetime: str
    is_free: bool
    tables_count: Optional[int] = None
    tables_ids: Optional[List[int]] = None
    table_bundles: Optional[List[Any]] = None


class SlotsResult(_ProviderModel):
    status: Optional[str] = None
    slots: List[Slot] = Field(default_factory=list)


class StatusResult(_ProviderModel):
    status: Optional[str] = None


class ReserveResult(_ProviderModel):
    status: Optional[str] = None
    reserve_id: Optional[int] = None
    form_url: Optional[str] = None


class Reserve(_ProviderModel):
    id: Optional[int] = None
    surname: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    estimated_time: Optional[str] = None
    duration: Optional[Union[int, str]] = None
    guests_count: Optional[Union[int, str]] = None
    inner_status: Optional[str] = None
    tables: Optional[Any] = None
    comment: Optional[str] = None
    manager: Optional[str] = None
    source: Optional[str] = None
    orders: Optional[str] = None
    cancel_reason: Optional[str] = None
    point: Optional[int] = None
    restaurant: Optional[str] = None


class ReservesPage(_ProviderModel):
    total: int = 0
    count: int = 0
    offset: int = 0
    limit: int = 0
    reserves: List[Reserve] = Field(default_factory=list)


class ReserveStatusResult(_ProviderModel):
    status: Optional[str] = None
    reserve_id: Optional[int] = None


class ReserveDetail(_ProviderModel):
    reserve: Reserve


class ReadReceipt(_ProviderModel):
    status: Optional[str] = None
    is_read: bool


class EventTag(_ProviderModel):
    id: int
    name: str
    color: Optional[str] = None
