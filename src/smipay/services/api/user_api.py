from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import quote

from .client import BackendClient

__all__ = ["UserApi"]


class UserApi:
    """Profile, password, device and settings endpoints of the signed-in user."""

    def __init__(self, client: BackendClient) -> None:
        self._client = client

    async def get_profile(self) -> Any:
        response = await self._client.get("/user/profile")
        data = response.get("data") if isinstance(response, Mapping) else None
        if isinstance(data, Mapping) and self._client.context.sessions.access_token():
            self._client.context.sessions.update_user(data)
        return response

    async def update_profile(
        self,
        *,
        first_name: str | None = None,
        last_name: str | None = None,
        phone_number: str | None = None,
    ) -> Any:
        payload = {
            key: value
            for key, value in (("first_name", first_name), ("last_name", last_name), ("phone_number", phone_number))
            if value is not None
        }
        return await self._client.patch("/user/profile", payload)

    async def change_password(self, current_password: str, new_password: str) -> Any:
        return await self._client.post(
            "/user/change-password",
            {"currentPassword": current_password, "newPassword": new_password},
        )

    async def list_devices(self) -> Any:
        return await self._client.get("/user/devices")

    async def remove_device(self, device_id: str) -> Any:
        return await self._client.delete(f"/user/devices/{quote(device_id, safe='')}")

    async def update_settings(self, settings: Mapping[str, Any]) -> Any:
        return await self._client.patch("/user/settings", dict(settings))
