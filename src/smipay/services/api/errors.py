"""Failure taxonomy of the request pipeline and user-facing error descriptions."""
from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Any, Mapping

from smipay.config import const

__all__ = [
    "ApiError",
    "TransportError",
    "SessionAuthError",
    "CredentialAuthError",
    "ServerError",
    "FriendlyError",
    "describe_error",
    "server_message",
    "is_network_error",
    "is_server_error",
    "is_client_error",
]


class ApiError(RuntimeError):
    """Normalised rejection surfaced to callers of the backend client."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        error_code: str | None = None,
        payload: Any | None = None,
        method: str | None = None,
        path: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.payload = payload
        self.method = method
        self.path = path

    def as_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": False, "message": self.message, "statusCode": self.status_code}
        if self.payload is not None:
            result["data"] = self.payload
        return result


class TransportError(ApiError):
    """No response: offline, DNS, refused connection or timeout."""

    def __init__(self, message: str = const.NETWORK_ERROR_MESSAGE, *, timeout: bool = False, **kw: Any):
        kw.setdefault("status_code", 0)
        super().__init__(message, **kw)
        self.timeout = timeout


class ServerError(ApiError):
    """Any non-2xx response that is not an authentication failure."""


class SessionAuthError(ApiError):
    """401 on a session-bearing endpoint; the local session has been invalidated."""


class CredentialAuthError(ApiError):
    """401 on a session-less endpoint (wrong credentials, bad OTP)."""


def server_message(payload: Any) -> str | None:
    """Message from the backend's error envelope (``message``, ``detail`` or ``error``)."""
    if not isinstance(payload, Mapping):
        return None
    for key in ("message", "detail", "error"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
        if isinstance(value, (list, tuple)) and value:
            return ", ".join(str(item) for item in value)
    return None


# ---------------------------------------------------------------------------
# user-facing descriptions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FriendlyError:
    message: str
    code: str
    status_code: int | None = None


def is_network_error(exc: BaseException) -> bool:
    return isinstance(exc, TransportError)


def is_server_error(exc: BaseException) -> bool:
    return isinstance(exc, ApiError) and 500 <= exc.status_code < 600


def is_client_error(exc: BaseException) -> bool:
    return isinstance(exc, ApiError) and 400 <= exc.status_code < 500


def _retry_hint(payload: Any) -> str:
    retry_after: Any = 120
    if isinstance(payload, Mapping):
        data = payload.get("data")
        if isinstance(data, Mapping) and data.get("retry_after"):
            retry_after = data["retry_after"]
    try:
        seconds = float(retry_after)
    except (TypeError, ValueError):
        seconds = 120.0
    if seconds > 60:
        return f"{math.ceil(seconds / 60)} minutes"
    return f"{int(seconds)} seconds"


def describe_error(exc: BaseException) -> FriendlyError:
    """Turn a pipeline failure into a message suitable for end users."""
    if not isinstance(exc, ApiError):
        return FriendlyError(
            "We're experiencing technical difficulties. Please try again in a few moments.",
            "UNKNOWN_ERROR",
        )
    if isinstance(exc, TransportError):
        if exc.timeout:
            return FriendlyError(
                "Request timed out. Please check your internet connection and try again.",
                "TIMEOUT",
            )
        return FriendlyError(
            "Unable to connect to our servers. Please check your internet connection and try again.",
            "NETWORK_ERROR",
        )

    status = exc.status_code
    payload = exc.payload
    raw = payload.get("message") if isinstance(payload, Mapping) else None
    message = server_message(payload)

    if status == 400:
        if isinstance(raw, (list, tuple)) and raw:
            return FriendlyError(", ".join(str(item) for item in raw), "VALIDATION_ERROR", 400)
        if message:
            return FriendlyError(message, "BAD_REQUEST", 400)
        return FriendlyError("Invalid request. Please check your information and try again.", "BAD_REQUEST", 400)
    if status == 401:
        return FriendlyError(
            message or "Invalid credentials. Please check your email/phone and password.",
            "UNAUTHORIZED",
            401,
        )
    if status == 403:
        return FriendlyError(message or "You don't have permission to perform this action.", "FORBIDDEN", 403)
    if status == 404:
        return FriendlyError(
            "We're experiencing technical difficulties. Our team has been notified. Please try again later.",
            "SERVICE_UNAVAILABLE",
            404,
        )
    if status == 409:
        return FriendlyError(
            message or "This information is already registered. Please use different details.",
            "CONFLICT",
            409,
        )
    if status == 429:
        return FriendlyError(
            message or f"Too many attempts. Please try again in {_retry_hint(payload)}.",
            "RATE_LIMIT_EXCEEDED",
            429,
        )
    if status in (500, 502, 503, 504):
        return FriendlyError(
            "Our servers are currently experiencing issues. Please try again in a few moments.",
            "SERVER_ERROR",
            status,
        )
    return FriendlyError(
        message or "Something went wrong. Please try again or contact support if the issue persists.",
        "UNKNOWN_ERROR",
        status,
    )
