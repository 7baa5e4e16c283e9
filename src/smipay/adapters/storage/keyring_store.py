from __future__ import annotations

from typing import Iterable

from .base import StorageUnavailableError

SERVICE_NAME = "smipay-client"


class KeyringUnavailableError(StorageUnavailableError):
    """Raised when the system keyring backend is not available."""


def _require_keyring():
    try:
        import keyring  # type: ignore
    except ImportError as exc:  # pragma: no cover - import failure path
        raise KeyringUnavailableError("system keyring is unavailable") from exc
    return keyring


class KeyringStore:
    """Secret values kept in the OS keyring, one entry per key and profile."""

    def __init__(self, profile: str = "default", *, service: str = SERVICE_NAME) -> None:
        self._profile = profile
        self._service = service
        self._known: set[str] = set()

    def _username(self, key: str) -> str:
        return f"{self._profile}:{key}"

    def get(self, key: str) -> str | None:
        keyring = _require_keyring()
        try:
            value = keyring.get_password(self._service, self._username(key))
        except keyring.errors.KeyringError as exc:
            raise KeyringUnavailableError(f"failed to load {key} from keyring") from exc
        if value:
            self._known.add(key)
        return value or None

    def set(self, key: str, value: str) -> None:
        keyring = _require_keyring()
        try:
            keyring.set_password(self._service, self._username(key), value)
        except keyring.errors.KeyringError as exc:
            raise KeyringUnavailableError(f"failed to write {key} to keyring") from exc
        self._known.add(key)

    def delete(self, key: str) -> None:
        keyring = _require_keyring()
        try:
            keyring.delete_password(self._service, self._username(key))
        except keyring.errors.PasswordDeleteError:
            pass
        except keyring.errors.KeyringError as exc:
            raise KeyringUnavailableError(f"failed to delete {key} from keyring") from exc
        self._known.discard(key)

    def delete_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.delete(key)

    def clear(self) -> None:
        # keyring cannot enumerate entries; only keys touched by this process are known
        for key in list(self._known):
            self.delete(key)


__all__ = ["KeyringStore", "KeyringUnavailableError", "SERVICE_NAME"]
