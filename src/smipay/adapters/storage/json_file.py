"""Durable key/value store persisted as a single JSON document."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable
import json
import os

from .base import StorageUnavailableError

__all__ = ["JsonFileStore", "state_path"]


def state_path(base_dir: Path) -> Path:
    return base_dir / "state.json"


class JsonFileStore:
    """Installation-scoped storage (the client's "local storage")."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as exc:
            raise StorageUnavailableError(f"failed to parse {self._path}: {exc}") from exc
        except OSError as exc:
            raise StorageUnavailableError(f"failed to read {self._path}") from exc
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, payload: dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
            try:
                os.chmod(tmp, 0o600)
            except PermissionError:
                pass
            os.replace(tmp, self._path)
        except OSError as exc:
            raise StorageUnavailableError(f"failed to write {self._path}") from exc

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            data.pop(key)
            self._save(data)

    def delete_many(self, keys: Iterable[str]) -> None:
        """All-or-nothing: one read and at most one write."""
        data = self._load()
        removed = [key for key in keys if data.pop(key, None) is not None]
        if removed:
            self._save(data)

    def clear(self) -> None:
        if self._path.exists():
            self._save({})
