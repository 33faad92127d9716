"""Gateway tests against a mocked ReMarked endpoint."""

from __future__ import annotations

import json

import httpx
import pytest

from remarked_booking.errors import ErrorKind, ProviderError, RemarkedTimeout

WIDGET_URL = "https://remarked.test/api/v1/ApiReservesWidget"

pytestmark = pytest.mark.anyio


async def test_send_posts_json_and_returns_body(gateway, remarked_router):
    route = remarked_router.post(WIDGET_URL).respond(json={"status": "success"})

    result = await gateway.send("/ApiReservesWidget", {"method": "GetSMSCode", "phone": "+79991234567"})

    assert result == {"status": "success"}
    request = route.calls.last.request
    assert request.method == "POST"
    assert request.headers["content-type"] == "application/json"
    assert json.loads(request.content) == {"method": "GetSMSCode", "phone": "+79991234567"}


async def test_401_error_body_is_mapped(gateway, remarked_router):
    remarked_router.post(WIDGET_URL).respond(401, json={"message": "Empty Bearer Token"})

    with pytest.raises(ProviderError) as caught:
        await gateway.send("/ApiReservesWidget", {"method": "GetSlots"})

    assert caught.value.kind is ErrorKind.UNAUTHORIZED
    assert caught.value.code == 401
    assert caught.value.message == "Empty Bearer Token"


async def test_unparseable_404_body_gets_default_message(gateway, remarked_router):
    remarked_router.post(WIDGET_URL).respond(404, text="<html>nope</html>")

    with pytest.raises(ProviderError) as caught:
        await gateway.send("/ApiReservesWidget", {"method": "GetReserveByID"})

    assert caught.value.kind is ErrorKind.NOT_FOUND
    assert caught.value.message == "Not Found"


async def test_timeout_is_distinct_and_not_retried(gateway, remarked_router):
    route = remarked_router.post(WIDGET_URL).mock(side_effect=httpx.ReadTimeout)

    with pytest.raises(RemarkedTimeout) as caught:
        await gateway.send("/ApiReservesWidget", {"method": "CreateReserve"})

    assert not isinstance(caught.value, ProviderError)
    assert caught.value.endpoint == "/ApiReservesWidget"
    assert route.call_count == 1


async def test_connection_failure_is_unknown_provider_error(gateway, remarked_router):
    remarked_router.post(WIDGET_URL).mock(side_effect=httpx.ConnectError)

    with pytest.raises(ProviderError) as caught:
        await gateway.send("/ApiReservesWidget", {"method": "GetToken"})

    assert caught.value.kind is ErrorKind.UNKNOWN
    assert caught.value.code == 520


@pytest.mark.parametrize("body", [[], "ok", 42])
async def test_non_object_body_is_malformed(gateway, remarked_router, body):
    remarked_router.post(WIDGET_URL).respond(json=body)

    with pytest.raises(ProviderError) as caught:
        await gateway.send("/ApiReservesWidget", {"method": "GetSlots"})

    assert caught.value.kind is ErrorKind.UNKNOWN
    assert caught.value.code == 520
    assert caught.value.message == "Malformed response body"


async def test_non_json_success_body_is_malformed(gateway, remarked_router):
    remarked_router.post(WIDGET_URL).respond(200, text="<html>maintenance</html>")

    with pytest.raises(ProviderError) as caught:
        await gateway.send("/ApiReservesWidget", {"method": "GetSlots"})

    assert caught.value.code == 520


async def test_gateway_timeout_is_configured(gateway):
    assert gateway.timeout == 30
    assert gateway.base_url == "https://remarked.test/api/v1"
