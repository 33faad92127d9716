"""Client for the ReMarked RESERVES API V1.

Every operation builds the provider's request envelope and hands it to the
gateway. Widget operations POST ``{"method": <Name>, ...params}`` to
``/ApiReservesWidget``; event tags are only served over JSON-RPC 2.0 at
``/api``. Gateway errors are propagated as-is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from .cache import TokenCache
from .errors import ErrorKind, ProviderError, RemarkedError, provider_error_from_response
from .gateway import RemarkedGateway
from .remarked_types import (
    CancelReason,
    DatePeriod,
    DaysStatesResult,
    EventTag,
    OperationStatus,
    ReadReceipt,
    ReserveData,
    ReserveDetail,
    ReserveFilters,
    ReserveResult,
    ReserveStatusResult,
    ReservesPage,
    SlotOptions,
    SlotsResult,
    StatusResult,
    TokenResult,
)

logger = logging.getLogger("remarked_booking")

WIDGET_ENDPOINT = "/ApiReservesWidget"
JSONRPC_ENDPOINT = "/api"
EVENT_TAGS_METHOD = "ReservesWidgetApi.getEventTags"

ModelT = TypeVar("ModelT", bound=BaseModel)


class TokenState(str, Enum):
    CACHE_HIT = "cache_hit"
    FETCHED = "fetched"
    FETCH_FAILED = "fetch_failed"


@dataclass(frozen=True)
class TokenResolution:
    """Outcome of looking up a usable token for a point."""

    point_id: int
    state: TokenState
    token: str | None = None
    error: RemarkedError | None = None

    @property
    def ok(self) -> bool:
        return self.token is not None


def _parse(model: type[ModelT], data: Any) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ProviderError(
            kind=ErrorKind.UNKNOWN,
            code=520,
            message=f"Unexpected {model.__name__} reply: {exc.error_count()} invalid field(s)",
        ) from exc


def _with_request_id(payload: dict[str, Any], request_id: str | None) -> dict[str, Any]:
    if request_id:
        payload["request_id"] = request_id
    return payload


class RemarkedClient:
    """Typed facade over the ReMarked widget API."""

    def __init__(self, gateway: RemarkedGateway, token_cache: TokenCache) -> None:
        self.gateway = gateway
        self.token_cache = token_cache

    async def _widget_call(self, method: str, **params: Any) -> dict[str, Any]:
        return await self.gateway.send(WIDGET_ENDPOINT, {"method": method, **params})

    async def get_token(
        self,
        point_id: int,
        additional_info: bool = False,
        request_id: str | None = None,
        use_cache: bool = True,
    ) -> TokenResult:
        """Issue a token for a point, reusing a cached one where allowed.

        A reply requested with ``additional_info`` carries capacity data and is
        neither read from nor written to the cache.
        """
        cacheable = use_cache and not additional_info
        if cacheable:
            cached = await self.token_cache.get(point_id)
            if cached:
                return TokenResult(token=cached, from_cache=True)

        payload = _with_request_id(
            {"method": "GetToken", "point": point_id, "additional_info": additional_info},
            request_id,
        )
        data = await self.gateway.send(WIDGET_ENDPOINT, payload)
        result = _parse(TokenResult, data)

        if cacheable and result.token:
            await self.token_cache.set(point_id, result.token)
        return result

    async def resolve_token(self, point_id: int) -> TokenResolution:
        """Return a token for ``point_id`` without raising provider failures."""
        try:
            result = await self.get_token(point_id)
        except RemarkedError as exc:
            return TokenResolution(point_id=point_id, state=TokenState.FETCH_FAILED, error=exc)
        state = TokenState.CACHE_HIT if result.from_cache else TokenState.FETCHED
        return TokenResolution(point_id=point_id, state=state, token=result.token)

    async def get_days_states(
        self, token: str, period: DatePeriod, guests_count: int
    ) -> DaysStatesResult:
        data = await self._widget_call(
            "GetDaysStates",
            token=token,
            reserve_date_period=period.to_payload(),
            guests_count=guests_count,
        )
        return _parse(DaysStatesResult, data)

    async def get_slots(
        self,
        token: str,
        period: DatePeriod,
        guests_count: int,
        options: SlotOptions | None = None,
    ) -> SlotsResult:
        extra = options.model_dump(exclude_none=True) if options else {}
        data = await self._widget_call(
            "GetSlots",
            token=token,
            reserve_date_period=period.to_payload(),
            guests_count=guests_count,
            **extra,
        )
        return _parse(SlotsResult, data)

    async def get_sms_code(
        self, token: str, phone: str, request_id: str | None = None
    ) -> StatusResult:
        """Ask the provider to text a confirmation code to ``phone``."""
        payload = _with_request_id(
            {"method": "GetSMSCode", "token": token, "phone": phone}, request_id
        )
        data = await self.gateway.send(WIDGET_ENDPOINT, payload)
        return _parse(StatusResult, data)

    async def create_reserve(
        self,
        token: str,
        reserve: ReserveData,
        confirm_code: int | None = None,
        request_id: str | None = None,
    ) -> ReserveResult:
        """Create a reservation; ``confirm_code`` is only sent when given."""
        payload: dict[str, Any] = {
            "method": "CreateReserve",
            "token": token,
            "reserve": reserve.to_payload(),
        }
        if confirm_code is not None:
            payload["confirm_code"] = confirm_code
        data = await self.gateway.send(WIDGET_ENDPOINT, _with_request_id(payload, request_id))
        return _parse(ReserveResult, data)

    async def get_reserves_by_phone(
        self,
        token: str,
        phone: str,
        guests_count: int,
        filters: ReserveFilters | None = None,
        request_id: str | None = None,
    ) -> ReservesPage:
        payload: dict[str, Any] = {
            "method": "GetReservesByPhone",
            "token": token,
            "phone": phone,
            "guests_count": guests_count,
        }
        if filters:
            payload.update(filters.to_payload())
        data = await self.gateway.send(WIDGET_ENDPOINT, _with_request_id(payload, request_id))
        return _parse(ReservesPage, data)

    async def change_reserve_status(
        self,
        token: str,
        reserve_id: int,
        status: OperationStatus,
        cancel_reason: CancelReason | None = None,
    ) -> ReserveStatusResult:
        payload: dict[str, Any] = {
            "method": "ChangeReserveStatus",
            "token": token,
            "reserve_id": reserve_id,
            "status": status,
        }
        if cancel_reason and status == "canceled":
            payload["cancel_reason"] = cancel_reason
        elif cancel_reason:
            logger.debug("Ignoring cancel reason for status %s", status)
        data = await self.gateway.send(WIDGET_ENDPOINT, payload)
        return _parse(ReserveStatusResult, data)

    async def get_reserve_by_id(
        self, token: str, reserve_id: int, request_id: str | None = None
    ) -> ReserveDetail:
        payload = _with_request_id(
            {"method": "GetReserveByID", "token": token, "reserve_id": reserve_id}, request_id
        )
        data = await self.gateway.send(WIDGET_ENDPOINT, payload)
        return _parse(ReserveDetail, data)

    async def is_reserve_read(
        self, token: str, reserve_id: int, request_id: str | None = None
    ) -> ReadReceipt:
        payload = _with_request_id(
            {"method": "IsReserveRead", "token": token, "reserve_id": reserve_id}, request_id
        )
        data = await self.gateway.send(WIDGET_ENDPOINT, payload)
        return _parse(ReadReceipt, data)

    async def get_event_tags(self, token: str, request_id: str | None = None) -> list[EventTag]:
        """List event tags via the JSON-RPC endpoint."""
        payload: dict[str, Any] = {
            "method": EVENT_TAGS_METHOD,
            "jsonrpc": "2.0",
            "params": {"token": token},
        }
        if request_id:
            payload["id"] = request_id
        data = await self.gateway.send(JSONRPC_ENDPOINT, payload)

        rpc_error = data.get("error")
        if rpc_error:
            code = rpc_error.get("code") if isinstance(rpc_error, dict) else None
            if isinstance(code, int) and 400 <= code < 600:
                raise provider_error_from_response(code, rpc_error)
            message = rpc_error.get("message") if isinstance(rpc_error, dict) else str(rpc_error)
            raise ProviderError(
                kind=ErrorKind.UNKNOWN, code=520, message=message or "Unknown Error"
            )

        result = data.get("result") or {}
        tags = result.get("eventTags") if isinstance(result, dict) else None
        if tags is None and isinstance(result, dict):
            tags = []
        if not isinstance(tags, list):
            raise ProviderError(
                kind=ErrorKind.UNKNOWN, code=520, message="Unexpected getEventTags reply"
            )
        return [_parse(EventTag, tag) for tag in tags]

    async def close(self) -> None:
        await self.gateway.close()
