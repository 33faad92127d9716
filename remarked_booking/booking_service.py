"""Booking use cases on top of the ReMarked client."""

from __future__ import annotations

import logging
import re
import time
import uuid
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any

from pydantic import ValidationError
from sqlalchemy.orm import Session

from .cache import RestaurantCache
from .config import Settings, get_settings
from .errors import BookingError, ErrorKind, ProviderError, RemarkedError, RemarkedTimeout
from .models import Restaurant
from .remarked_client import RemarkedClient, TokenState
from .remarked_types import (
    DatePeriod,
    DayState,
    EventTag,
    ReserveData,
    ReserveSource,
    Slot,
    SlotOptions,
)
from .schemas import BookingCreate

logger = logging.getLogger("remarked_booking")

REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("restaurant_id", "restaurantId"),
    ("name", "name"),
    ("phone", "phone"),
    ("date", "date"),
    ("time", "time"),
    ("guests_count", "guests_count"),
)
PHONE_PATTERN = re.compile(r"^\+\d{10,15}$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

MSG_CREATED = "Бронирование успешно создано."
MSG_CREATED_NEEDS_PAYMENT = "Бронирование создано. Для подтверждения необходимо внести депозит."
MSG_MISSING_FIELDS = "Не заполнены обязательные поля: {fields}"
MSG_BAD_PHONE = "Введите корректный номер телефона в формате +7XXXXXXXXXX"
MSG_BAD_DATE = "Некорректная дата, ожидается формат ГГГГ-ММ-ДД"
MSG_BAD_TIME = "Некорректное время, ожидается формат ЧЧ:ММ"
MSG_BAD_GUESTS = "Количество гостей должно быть не меньше 1"
MSG_BAD_PERIOD = "Некорректный период дат"
MSG_RESTAURANT_NOT_FOUND = "Ресторан не найден"
MSG_RESTAURANT_INACTIVE = "Ресторан недоступен для бронирования"
MSG_NOT_CONFIGURED = "Бронирование для этого ресторана не настроено"
MSG_SERVICE_UNAVAILABLE = "Сервис бронирования временно недоступен. Попробуйте позже."
MSG_AUTH_FAILURE = "Внутренняя ошибка сервиса бронирования. Попробуйте позже."
MSG_TIMEOUT = "Сервис бронирования не ответил вовремя. Попробуйте позже."
MSG_CREATE_FAILED = "Не удалось создать бронирование. Попробуйте позже."
MSG_READ_FAILED = "Не удалось получить данные бронирования. Попробуйте позже."


@dataclass(frozen=True)
class RestaurantRef:
    """The part of a restaurant row the booking path needs."""

    id: str
    name: str
    is_active: bool
    remarked_point_id: int | None

    @classmethod
    def from_model(cls, restaurant: Restaurant) -> "RestaurantRef":
        return cls(
            id=restaurant.id,
            name=restaurant.name,
            is_active=bool(restaurant.is_active),
            remarked_point_id=restaurant.remarked_point_id,
        )

    @classmethod
    def from_cache(cls, data: dict[str, Any]) -> "RestaurantRef | None":
        try:
            return cls(
                id=str(data["id"]),
                name=str(data.get("name") or ""),
                is_active=bool(data["is_active"]),
                remarked_point_id=data.get("remarked_point_id"),
            )
        except KeyError:
            return None


@dataclass(frozen=True)
class BookingResult:
    reserve_id: int | None
    message: str
    form_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"reserve_id": self.reserve_id}
        if self.form_url:
            data["form_url"] = self.form_url
        data["message"] = self.message
        return data


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def missing_fields(payload: BookingCreate) -> list[str]:
    """Return the wire names of required booking fields that are absent."""
    return [
        wire_name
        for attr, wire_name in REQUIRED_FIELDS
        if _is_blank(getattr(payload, attr))
    ]


def build_reserve(payload: BookingCreate, source: ReserveSource | None = None) -> ReserveData:
    """Validate a booking form and turn it into a CreateReserve body.

    Raises BookingError (400) before any provider call is made.
    """
    missing = missing_fields(payload)
    if missing:
        raise BookingError(400, MSG_MISSING_FIELDS.format(fields=", ".join(missing)))

    phone = re.sub(r"[\s()-]", "", payload.phone)
    if not PHONE_PATTERN.match(phone):
        raise BookingError(400, MSG_BAD_PHONE)
    booking_date = payload.date.strip()
    if not DATE_PATTERN.match(booking_date):
        raise BookingError(400, MSG_BAD_DATE)
    try:
        booking_date = date.fromisoformat(booking_date).isoformat()
    except ValueError:
        raise BookingError(400, MSG_BAD_DATE) from None
    booking_time = payload.time.strip()
    if not TIME_PATTERN.match(booking_time):
        raise BookingError(400, MSG_BAD_TIME)
    if payload.guests_count < 1:
        raise BookingError(400, MSG_BAD_GUESTS)

    comment = payload.comment.strip() if payload.comment else None
    return ReserveData(
        name=payload.name.strip(),
        phone=phone,
        date=booking_date,
        time=booking_time,
        guests_count=payload.guests_count,
        duration=payload.duration,
        comment=comment or None,
        table_ids=payload.table_ids or None,
        event_tags=payload.event_tags or None,
        source=source,
    )


def _describe(exc: RemarkedError) -> dict[str, Any]:
    if isinstance(exc, ProviderError):
        return exc.to_dict()
    return {"kind": "timeout", "message": str(exc)}


class BookingService:
    """Validates bookings and runs them against ReMarked."""

    def __init__(
        self,
        client: RemarkedClient,
        restaurants: RestaurantCache,
        db: Session,
        settings: Settings | None = None,
    ) -> None:
        self.client = client
        self.restaurants = restaurants
        self.db = db
        self.settings = settings or get_settings()

    async def get_restaurant(self, restaurant_id: str) -> RestaurantRef:
        """Look a restaurant up in the cache, falling back to the database."""
        cached = await self.restaurants.get(restaurant_id)
        if cached:
            ref = RestaurantRef.from_cache(cached)
            if ref is not None:
                return ref

        restaurant = self.db.get(Restaurant, restaurant_id)
        if restaurant is None:
            raise BookingError(404, MSG_RESTAURANT_NOT_FOUND)
        ref = RestaurantRef.from_model(restaurant)
        await self.restaurants.set(restaurant_id, asdict(ref))
        return ref

    async def get_bookable_restaurant(self, restaurant_id: str | None) -> RestaurantRef:
        """Return the restaurant if it accepts online bookings."""
        if _is_blank(restaurant_id):
            raise BookingError(400, MSG_MISSING_FIELDS.format(fields="restaurantId"))
        restaurant = await self.get_restaurant(restaurant_id.strip())
        if not restaurant.is_active:
            raise BookingError(400, MSG_RESTAURANT_INACTIVE)
        if not restaurant.remarked_point_id:
            raise BookingError(400, MSG_NOT_CONFIGURED)
        return restaurant

    async def _token_for(self, restaurant: RestaurantRef) -> str:
        resolution = await self.client.resolve_token(restaurant.remarked_point_id)
        if resolution.state is TokenState.FETCH_FAILED:
            logger.error(
                "Token request failed for restaurant %s (point %s): %s",
                restaurant.id,
                restaurant.remarked_point_id,
                _describe(resolution.error),
            )
            raise BookingError(500, MSG_SERVICE_UNAVAILABLE)
        logger.debug(
            "Token for point %s resolved: %s", restaurant.remarked_point_id, resolution.state.value
        )
        return resolution.token

    async def _forget_token(self, restaurant: RestaurantRef, exc: RemarkedError) -> None:
        if isinstance(exc, ProviderError) and exc.is_auth_error:
            await self.client.token_cache.invalidate(restaurant.remarked_point_id)

    async def create_booking(self, payload: BookingCreate) -> BookingResult:
        """Validate, resolve the restaurant, get a token and create the reserve."""
        reserve = build_reserve(payload, source=self.settings.remarked_reserve_source)
        restaurant = await self.get_bookable_restaurant(payload.restaurant_id)
        token = await self._token_for(restaurant)

        request_id = payload.request_id or str(uuid.uuid4())
        started = time.perf_counter()
        try:
            result = await self.client.create_reserve(
                token,
                reserve,
                confirm_code=payload.confirm_code,
                request_id=request_id,
            )
        except RemarkedError as exc:
            elapsed = time.perf_counter() - started
            logger.error(
                "CreateReserve failed for restaurant %s (point %s, request %s) after %.2fs: %s",
                restaurant.id,
                restaurant.remarked_point_id,
                request_id,
                elapsed,
                _describe(exc),
            )
            await self._forget_token(restaurant, exc)
            raise self._booking_failure(exc) from exc

        if result.status != "success" or result.reserve_id is None:
            logger.error(
                "CreateReserve for restaurant %s (point %s, request %s) returned no reservation: %s",
                restaurant.id,
                restaurant.remarked_point_id,
                request_id,
                result.model_dump(),
            )
            raise BookingError(500, MSG_CREATE_FAILED)

        logger.info(
            "Reserve %s created for restaurant %s (request %s)",
            result.reserve_id,
            restaurant.id,
            request_id,
        )
        message = MSG_CREATED_NEEDS_PAYMENT if result.form_url else MSG_CREATED
        return BookingResult(reserve_id=result.reserve_id, message=message, form_url=result.form_url)

    @staticmethod
    def _booking_failure(exc: RemarkedError) -> BookingError:
        if isinstance(exc, RemarkedTimeout):
            return BookingError(504, MSG_TIMEOUT)
        if exc.kind is ErrorKind.BAD_REQUEST:
            return BookingError(400, exc.message)
        if exc.is_auth_error:
            return BookingError(500, MSG_AUTH_FAILURE)
        return BookingError(500, MSG_CREATE_FAILED)

    @staticmethod
    def _read_failure(exc: RemarkedError) -> BookingError:
        if isinstance(exc, RemarkedTimeout):
            return BookingError(504, MSG_TIMEOUT)
        if exc.kind is ErrorKind.BAD_REQUEST:
            return BookingError(400, exc.message)
        return BookingError(500, MSG_READ_FAILED)

    async def _read(self, restaurant: RestaurantRef, operation: str, call):
        try:
            return await call
        except RemarkedError as exc:
            logger.error(
                "%s failed for restaurant %s (point %s): %s",
                operation,
                restaurant.id,
                restaurant.remarked_point_id,
                _describe(exc),
            )
            await self._forget_token(restaurant, exc)
            raise self._read_failure(exc) from exc

    async def list_slots(
        self,
        restaurant_id: str | None,
        day: date,
        guests_count: int,
        options: SlotOptions | None = None,
    ) -> list[Slot]:
        """Slots for one day, as the booking form shows them."""
        if guests_count < 1:
            raise BookingError(400, MSG_BAD_GUESTS)
        restaurant = await self.get_bookable_restaurant(restaurant_id)
        token = await self._token_for(restaurant)
        result = await self._read(
            restaurant,
            "GetSlots",
            self.client.get_slots(token, DatePeriod.single_day(day), guests_count, options),
        )
        return result.slots

    async def list_days_states(
        self,
        restaurant_id: str | None,
        date_from: date,
        date_to: date,
        guests_count: int,
    ) -> list[DayState]:
        if guests_count < 1:
            raise BookingError(400, MSG_BAD_GUESTS)
        try:
            period = DatePeriod(date_from=date_from, date_to=date_to)
        except ValidationError:
            raise BookingError(400, MSG_BAD_PERIOD) from None
        restaurant = await self.get_bookable_restaurant(restaurant_id)
        token = await self._token_for(restaurant)
        result = await self._read(
            restaurant, "GetDaysStates", self.client.get_days_states(token, period, guests_count)
        )
        return sorted(result.slots.values(), key=lambda state: state.date)

    async def list_event_tags(self, restaurant_id: str | None) -> list[EventTag]:
        restaurant = await self.get_bookable_restaurant(restaurant_id)
        token = await self._token_for(restaurant)
        return await self._read(restaurant, "getEventTags", self.client.get_event_tags(token))
