"""Authentication endpoints: registration, sign-in, password reset and logout."""
from __future__ import annotations

from typing import Any, Mapping
import logging

from pydantic import ValidationError

from smipay.domain import Session

from .client import BackendClient
from .errors import ApiError
from .models import AuthTokens

__all__ = ["AuthApi"]

_log = logging.getLogger("smipay.api.auth")


def _data(response: Any) -> Mapping[str, Any] | None:
    if isinstance(response, Mapping):
        data = response.get("data")
        if isinstance(data, Mapping):
            return data
    return None


class AuthApi:
    def __init__(self, client: BackendClient) -> None:
        self._client = client

    @property
    def client(self) -> BackendClient:
        return self._client

    # ---------- registration -------------------------------------------
    async def request_email_otp(self, email: str) -> Any:
        return await self._client.post("/auth/minimal-register/request-email-otp", {"email": email})

    async def verify_email_otp(self, email: str, otp: str) -> Any:
        return await self._client.post("/auth/minimal-register/verify-email-otp", {"email": email, "otp": otp})

    async def register(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        phone_number: str,
        password: str,
        referral_code: str | None = None,
    ) -> Any:
        payload: dict[str, Any] = {
            "first_name": first_name,
            "last_name": last_name,
            "email": email,
            "phone_number": phone_number,
            "password": password,
        }
        if referral_code:
            payload["referral_code"] = referral_code
        response = await self._client.post("/auth/minimal-register/register", payload)
        self._store_session(response)
        return response

    # ---------- sign-in ------------------------------------------------
    async def login(self, password: str, *, email: str | None = None, phone_number: str | None = None) -> Any:
        """Sign in with an email or phone number; a returned token becomes the current session."""
        if not email and not phone_number:
            raise ValueError("email or phone_number is required")
        credentials: dict[str, Any] = {"password": password}
        if email:
            credentials["email"] = email
        if phone_number:
            credentials["phone_number"] = phone_number
        response = await self._client.post("/auth/minimal-register/login", credentials)
        self._store_session(response)
        return response

    def _store_session(self, response: Any) -> Session | None:
        data = _data(response)
        token = data.get("access_token") if data is not None else None
        if not isinstance(token, str) or not token:
            return None
        try:
            tokens = AuthTokens.model_validate(data)
        except ValidationError as exc:
            _log.warning("ignoring malformed token metadata: %s", exc)
            tokens = AuthTokens(access_token=token)
        user = data.get("user") if isinstance(data.get("user"), Mapping) else None
        session = self._client.context.sessions.save(
            tokens.access_token,
            user,
            expires_in=tokens.expires_in,
            refresh_token=tokens.refresh_token,
        )
        self._client.context.session_started()
        _log.info("signed in")
        return session

    # ---------- password reset -----------------------------------------
    async def request_password_reset(self, email: str) -> Any:
        return await self._client.post("/auth/request-password-reset", {"email": email})

    async def verify_password_reset_otp(self, email: str, otp: str, new_password: str) -> Any:
        return await self._client.post(
            "/auth/verify-password-reset-otp",
            {"email": email, "otp": otp, "newPassword": new_password},
        )

    # ---------- session ------------------------------------------------
    async def logout(self) -> Any:
        """Tell the backend (best effort), then clear the local session without a termination signal."""
        response: Any = None
        try:
            response = await self._client.post("/auth/logout", invalidate_on_401=False)
        except ApiError as exc:
            _log.info("server logout failed (%s); clearing locally", exc)
        self._client.context.invalidator.end_session()
        return response

    async def refresh_token(self, refresh_token: str | None = None) -> Any:
        token = refresh_token or self._client.context.sessions.refresh_token()
        if not token:
            raise ValueError("no refresh token available")
        response = await self._client.post("/auth/refresh", {"refreshToken": token})
        self._store_session(response)
        return response

    async def verify_email(self, token: str) -> Any:
        return await self._client.post("/auth/verify-email", {"token": token})

    async def resend_verification(self) -> Any:
        return await self._client.post("/auth/resend-verification")
