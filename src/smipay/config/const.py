# src/smipay/config/const.py
from __future__ import annotations

# Hard defaults (changed by developers in code/build, not at runtime)
DEFAULT_BASE_URL: str = "http://localhost:3001"
DEFAULT_API_VERSION: str = "/api/v1"
DEFAULT_TIMEOUT: float = 30.0
DEFAULT_API_SECRET: str = "default-secret-key"
DEFAULT_PLATFORM: str = "web"

# Sentinels used when there is no interactive client context
SERVER_DEVICE_ID: str = "device-server"
SERVER_FINGERPRINT: str = "fp-server"

GEO_TTL_SECONDS: float = 5 * 60
GEO_TIMEOUT_SECONDS: float = 10.0

SESSION_TIMEOUT_SECONDS: float = 15 * 60
SESSION_WARNING_SECONDS: float = 2 * 60
SESSION_CHECK_INTERVAL_SECONDS: float = 10.0
ACTIVITY_THROTTLE_SECONDS: float = 5.0
AUTH_COOKIE_DAYS: int = 7

SESSION_EXPIRED_MESSAGE: str = "Your session has expired. Please sign in again."
INACTIVITY_MESSAGE: str = "Your session has expired due to inactivity."
NETWORK_ERROR_MESSAGE: str = "Network error. Please check your internet connection."

# Durable keys
DEVICE_ID_KEY: str = "smipay-device-id"
ACCESS_TOKEN_KEY: str = "smipay-access-token"
REFRESH_TOKEN_KEY: str = "smipay-refresh-token"
USER_KEY: str = "smipay-user"
LAST_ACTIVITY_KEY: str = "smipay-last-activity"
TOKEN_EXPIRY_KEY: str = "smipay-token-expiry"
CLIENT_STATE_KEY: str = "smipay-auth"
AUTH_COOKIE_NAME: str = ACCESS_TOKEN_KEY

# Ephemeral keys
FINGERPRINT_KEY: str = "smipay-device-fingerprint"
GEO_CACHE_KEY: str = "smipay-geo-cache"

# 401 on these paths means "bad credentials", not "session expired"
SESSION_LESS_PATHS: tuple[str, ...] = (
    "/auth/minimal-register/login",
    "/auth/minimal-register/register",
    "/auth/minimal-register/request-email-otp",
    "/auth/minimal-register/verify-email-otp",
    "/auth/request-password-reset",
    "/auth/verify-password-reset-otp",
    "/auth/reset-password",
)

# Outbound header names
H_DEVICE_ID = "x-device-id"
H_FINGERPRINT = "x-device-fingerprint"
H_DEVICE_NAME = "x-device-name"
H_DEVICE_MODEL = "x-device-model"
H_PLATFORM = "platform"
H_OS_NAME = "x-os-name"
H_OS_VERSION = "x-os-version"
H_APP_VERSION = "x-app-version"
H_LATITUDE = "x-latitude"
H_LONGITUDE = "x-longitude"
H_TIMESTAMP = "x-timestamp"
H_NONCE = "x-nonce"
H_SIGNATURE = "x-signature"
H_REQUEST_ID = "x-request-id"
H_AUTHORIZATION = "Authorization"

# Event bus topics
TOPIC_SESSION_TERMINATED = "session.terminated"
TOPIC_SESSION_WARNING = "session.warning"
TOPIC_APP_FOREGROUND = "app.foreground"
