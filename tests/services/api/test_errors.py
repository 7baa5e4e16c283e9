from __future__ import annotations

import pytest

from smipay.services.api import (
    ApiError,
    CredentialAuthError,
    ServerError,
    SessionAuthError,
    TransportError,
    describe_error,
    is_client_error,
    is_network_error,
    is_server_error,
    server_message,
)


def _server(status, payload=None):
    return ServerError("x", status_code=status, payload=payload)


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"message": "nope"}, "nope"),
        ({"message": ["email is required", "password too short"]}, "email is required, password too short"),
        ({"detail": "gone"}, "gone"),
        ({"error": "Bad Request"}, "Bad Request"),
        ({"message": ""}, None),
        ("plain text", None),
        (None, None),
    ],
)
def test_server_message(payload, expected):
    assert server_message(payload) == expected


def test_taxonomy():
    assert issubclass(TransportError, ApiError)
    assert issubclass(SessionAuthError, ApiError)
    assert issubclass(CredentialAuthError, ApiError)
    assert TransportError().status_code == 0


@pytest.mark.parametrize(
    "error, code",
    [
        (TransportError(timeout=True), "TIMEOUT"),
        (TransportError(), "NETWORK_ERROR"),
        (_server(400, {"message": ["a", "b"]}), "VALIDATION_ERROR"),
        (_server(400, {"message": "bad"}), "BAD_REQUEST"),
        (CredentialAuthError("x", status_code=401), "UNAUTHORIZED"),
        (_server(403), "FORBIDDEN"),
        (_server(404), "SERVICE_UNAVAILABLE"),
        (_server(409), "CONFLICT"),
        (_server(429), "RATE_LIMIT_EXCEEDED"),
        (_server(502), "SERVER_ERROR"),
        (_server(418), "UNKNOWN_ERROR"),
        (RuntimeError("boom"), "UNKNOWN_ERROR"),
    ],
)
def test_describe_error_codes(error, code):
    assert describe_error(error).code == code


def test_validation_messages_are_joined():
    friendly = describe_error(_server(400, {"message": ["email is required", "phone is invalid"]}))
    assert friendly.message == "email is required, phone is invalid"
    assert friendly.status_code == 400


def test_rate_limit_hint_in_minutes_and_seconds():
    assert "in 2 minutes" in describe_error(_server(429)).message
    assert "in 30 seconds" in describe_error(_server(429, {"data": {"retry_after": 30}})).message
    assert "in 3 minutes" in describe_error(_server(429, {"data": {"retry_after": 150}})).message
    assert describe_error(_server(429, {"message": "Slow down"})).message == "Slow down"


def test_predicates():
    assert is_network_error(TransportError())
    assert not is_network_error(_server(500))
    assert is_server_error(_server(503))
    assert not is_server_error(_server(404))
    assert is_client_error(_server(404))
    assert not is_client_error(ValueError())
