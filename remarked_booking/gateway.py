"""HTTP gateway for the ReMarked API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .errors import ErrorKind, ProviderError, RemarkedTimeout, provider_error_from_response

logger = logging.getLogger("remarked_booking")


class RemarkedGateway:
    """Thin wrapper around httpx: one JSON POST per call, no retries."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def send(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST ``payload`` to ``endpoint`` and return the decoded JSON body."""
        try:
            response = await self._client.post(endpoint, json=payload)
        except httpx.TimeoutException as exc:
            logger.warning("ReMarked %s timed out after %ss", endpoint, self.timeout)
            raise RemarkedTimeout(endpoint, self.timeout) from exc
        except httpx.TransportError as exc:
            raise ProviderError(
                kind=ErrorKind.UNKNOWN,
                code=520,
                message=f"Connection error: {exc}",
            ) from exc

        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = {}
            raise provider_error_from_response(response.status_code, body)

        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderError(
                kind=ErrorKind.UNKNOWN,
                code=520,
                message="Malformed response body",
            ) from exc
        if not isinstance(body, dict):
            logger.warning("ReMarked %s replied with a %s body", endpoint, type(body).__name__)
            raise ProviderError(
                kind=ErrorKind.UNKNOWN,
                code=520,
                message="Malformed response body",
            )
        return body

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
