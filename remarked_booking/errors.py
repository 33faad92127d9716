"""Error types raised by the ReMarked client and the booking service."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Status classes the ReMarked API reports."""

    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"
    OTHER = "other"


_STATUS_KINDS: dict[int, ErrorKind] = {
    400: ErrorKind.BAD_REQUEST,
    401: ErrorKind.UNAUTHORIZED,
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
    520: ErrorKind.UNKNOWN,
}

_DEFAULT_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.UNAUTHORIZED: "Empty Bearer Token",
    ErrorKind.FORBIDDEN: "Access Denied",
    ErrorKind.NOT_FOUND: "Not Found",
    ErrorKind.UNKNOWN: "Unknown Error",
}


class RemarkedError(Exception):
    """Base exception for failed ReMarked calls."""


class ProviderError(RemarkedError):
    """Non-2xx reply (or unusable transport) from the ReMarked API."""

    def __init__(self, kind: ErrorKind, code: int, message: str, date: datetime | None = None):
        self.kind = kind
        self.code = code
        self.message = message
        self.date = date or datetime.now(tz=UTC)
        super().__init__(f"[{code}] {message}")

    @property
    def is_auth_error(self) -> bool:
        return self.kind in (ErrorKind.UNAUTHORIZED, ErrorKind.FORBIDDEN)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": "error",
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
            "date": self.date.isoformat(),
        }


class RemarkedTimeout(RemarkedError):
    """The provider did not answer within the configured timeout."""

    def __init__(self, endpoint: str, timeout: float):
        self.endpoint = endpoint
        self.timeout = timeout
        super().__init__(f"Request to {endpoint} timed out after {timeout:g}s")


def provider_error_from_response(status_code: int, body: Any) -> ProviderError:
    """Build a ProviderError from an HTTP status and a (possibly unparsed) body."""
    kind = _STATUS_KINDS.get(status_code, ErrorKind.OTHER)
    message = None
    if isinstance(body, dict):
        message = body.get("message")
    if not message:
        message = _DEFAULT_MESSAGES.get(kind, "Unknown error")
    return ProviderError(kind=kind, code=status_code, message=str(message))


class BookingError(Exception):
    """Failure that is safe to show to the person making a booking."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(message)
