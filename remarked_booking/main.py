"""FastAPI entrypoint and API surface for the booking service."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .booking_service import BookingService
from .cache import CacheBackend, RedisCacheBackend, RestaurantCache, TokenCache, build_cache_backend
from .config import get_settings
from .db import Base, engine, get_session
from .errors import BookingError
from .gateway import RemarkedGateway
from .remarked_client import RemarkedClient
from .remarked_types import SlotOptions
from .schemas import (
    BookingCreate,
    BookingData,
    BookingEnvelope,
    DayStateResponse,
    DaysData,
    DaysEnvelope,
    EventTagsData,
    EventTagsEnvelope,
    FailureEnvelope,
    HealthResponse,
    SlotsData,
    SlotsEnvelope,
)

settings = get_settings()
logger = logging.getLogger("remarked_booking")

app = FastAPI(title="ReMarked Booking", version="1.0.0")

MSG_INVALID_REQUEST = "Некорректные данные запроса"


@app.on_event("startup")
async def on_startup() -> None:
    """Create schema and the single ReMarked client for this process."""
    Base.metadata.create_all(bind=engine)
    cache = build_cache_backend(settings)
    app.state.cache = cache
    app.state.remarked_client = RemarkedClient(
        RemarkedGateway(settings.remarked_base_url, timeout=settings.remarked_timeout_seconds),
        TokenCache(cache, settings.remarked_token_ttl_seconds),
    )


@app.on_event("shutdown")
async def on_shutdown() -> None:
    """Close outbound connections."""
    client: RemarkedClient | None = getattr(app.state, "remarked_client", None)
    if client:
        await client.close()
    cache = getattr(app.state, "cache", None)
    if isinstance(cache, RedisCacheBackend):
        await cache.close()


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=FailureEnvelope(message=exc.message).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Rejected request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=400,
        content=FailureEnvelope(message=MSG_INVALID_REQUEST).model_dump(),
    )


def get_cache_backend(request: Request) -> CacheBackend:
    return request.app.state.cache


def get_remarked_client(request: Request) -> RemarkedClient:
    return request.app.state.remarked_client


def get_booking_service(
    client: RemarkedClient = Depends(get_remarked_client),
    cache: CacheBackend = Depends(get_cache_backend),
    db: Session = Depends(get_session),
) -> BookingService:
    restaurants = RestaurantCache(cache, settings.restaurant_cache_ttl_seconds)
    return BookingService(client, restaurants, db, settings)


@app.post(
    "/api/booking",
    response_model=BookingEnvelope,
    response_model_exclude_none=True,
    status_code=201,
)
async def create_booking(
    payload: BookingCreate,
    service: BookingService = Depends(get_booking_service),
) -> BookingEnvelope:
    """Create a table reservation with ReMarked."""
    result = await service.create_booking(payload)
    return BookingEnvelope(data=BookingData(**result.to_dict()))


@app.get("/api/booking/slots", response_model=SlotsEnvelope, response_model_exclude_none=True)
async def booking_slots(
    restaurant_id: str = Query(..., alias="restaurantId"),
    day: date = Query(..., alias="date"),
    guests_count: int = Query(..., ge=1),
    with_rooms: bool | None = Query(None),
    slot_duration: int | None = Query(None, ge=300, le=86400),
    service: BookingService = Depends(get_booking_service),
) -> SlotsEnvelope:
    """Return bookable slots for one day."""
    options = SlotOptions(with_rooms=with_rooms, slot_duration=slot_duration)
    slots = await service.list_slots(restaurant_id, day, guests_count, options)
    return SlotsEnvelope(
        data=SlotsData(slots=slots, date=day.isoformat(), guests_count=guests_count)
    )


@app.get("/api/booking/days", response_model=DaysEnvelope)
async def booking_days(
    restaurant_id: str = Query(..., alias="restaurantId"),
    date_from: date = Query(..., alias="from"),
    date_to: date = Query(..., alias="to"),
    guests_count: int = Query(..., ge=1),
    service: BookingService = Depends(get_booking_service),
) -> DaysEnvelope:
    """Return per-day availability for a period."""
    states = await service.list_days_states(restaurant_id, date_from, date_to, guests_count)
    days = [DayStateResponse(date=state.date, is_free=state.is_free) for state in states]
    return DaysEnvelope(data=DaysData(days=days))


@app.get("/api/booking/event-tags", response_model=EventTagsEnvelope)
async def booking_event_tags(
    restaurant_id: str = Query(..., alias="restaurantId"),
    service: BookingService = Depends(get_booking_service),
) -> EventTagsEnvelope:
    """Return the event tags a guest may attach to a booking."""
    tags = await service.list_event_tags(restaurant_id)
    return EventTagsEnvelope(data=EventTagsData(event_tags=tags))


@app.get("/api/health", response_model=HealthResponse)
def health(cache: CacheBackend = Depends(get_cache_backend)) -> HealthResponse:
    return HealthResponse(cache=cache.name)
