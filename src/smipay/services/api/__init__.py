from .auth_api import AuthApi
from .client import BackendClient
from .errors import (
    ApiError,
    CredentialAuthError,
    FriendlyError,
    ServerError,
    SessionAuthError,
    TransportError,
    describe_error,
    is_client_error,
    is_network_error,
    is_server_error,
    server_message,
)
from .models import AuthTokens
from .user_api import UserApi

__all__ = [
    "ApiError",
    "AuthApi",
    "AuthTokens",
    "BackendClient",
    "CredentialAuthError",
    "FriendlyError",
    "ServerError",
    "SessionAuthError",
    "TransportError",
    "UserApi",
    "describe_error",
    "is_client_error",
    "is_network_error",
    "is_server_error",
    "server_message",
]
