from __future__ import annotations

from typing import Iterable, Protocol, runtime_checkable

__all__ = ["KeyValueStore", "StorageUnavailableError"]


class StorageUnavailableError(RuntimeError):
    """Raised when a storage backend cannot be read or written."""


@runtime_checkable
class KeyValueStore(Protocol):
    """String key/value storage; durable or session-scoped depending on the backend."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def delete_many(self, keys: Iterable[str]) -> None:
        """Remove ``keys`` in a single write where the backend allows it."""
        ...

    def clear(self) -> None: ...
