"""Client settings resolved from defaults, an optional YAML file and the environment."""
from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping
import logging
import os

import yaml

from smipay.build_info import APP_VERSION
from smipay.config import const

__all__ = ["Settings", "SettingsError"]

_log = logging.getLogger("smipay.settings")

ENV_PREFIX = "SMIPAY_"
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


class SettingsError(ValueError):
    """Raised when a configuration value cannot be interpreted."""


@dataclass(frozen=True, slots=True)
class Settings:
    base_url: str = const.DEFAULT_BASE_URL
    api_version: str = const.DEFAULT_API_VERSION
    timeout: float = const.DEFAULT_TIMEOUT
    api_secret: str = const.DEFAULT_API_SECRET
    bypass_security_headers: bool = False
    app_version: str = APP_VERSION
    state_dir: Path = Path("~/.smipay")
    profile: str = "default"
    platform: str = const.DEFAULT_PLATFORM
    device_name: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    geo_ttl: float = const.GEO_TTL_SECONDS
    geo_timeout: float = const.GEO_TIMEOUT_SECONDS
    session_timeout: float = const.SESSION_TIMEOUT_SECONDS
    session_warning: float = const.SESSION_WARNING_SECONDS
    session_check_interval: float = const.SESSION_CHECK_INTERVAL_SECONDS
    crypto_backend: str = "auto"
    require_strong_crypto: bool = False
    use_keyring: bool = False
    session_less_paths: tuple[str, ...] = const.SESSION_LESS_PATHS
    log_level: str = "INFO"

    # ---------- construction ---------------------------------------------
    @classmethod
    def from_sources(
        cls,
        *,
        env: Mapping[str, str] | None = None,
        config_path: Path | str | None = None,
    ) -> "Settings":
        """Layer defaults <- YAML file <- ``SMIPAY_*`` environment variables."""
        environ = os.environ if env is None else env
        values: dict[str, Any] = {}

        path = cls._config_file(environ, config_path)
        if path is not None:
            values.update(cls._read_yaml(path))

        for f in fields(cls):
            raw = environ.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is not None:
                values[f.name] = raw

        return cls().with_overrides(**values)

    def with_overrides(self, **overrides: Any) -> "Settings":
        known = {f.name: f for f in fields(self)}
        coerced: dict[str, Any] = {}
        for name, value in overrides.items():
            if name not in known:
                raise SettingsError(f"unknown setting '{name}'")
            coerced[name] = _coerce(name, value, getattr(self, name))
        updated = replace(self, **coerced)
        if updated.crypto_backend not in {"auto", "cryptography", "hashlib", "weak"}:
            raise SettingsError(f"unsupported crypto_backend '{updated.crypto_backend}'")
        return updated

    # ---------- derived values -------------------------------------------
    @property
    def api_base(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.api_version.strip('/')}".rstrip("/")

    def state_path(self) -> Path:
        return Path(self.state_dir).expanduser() / self.profile

    def logs_dir(self) -> Path:
        return self.state_path() / "logs"

    @property
    def uses_default_secret(self) -> bool:
        return self.api_secret == const.DEFAULT_API_SECRET

    # ---------- helpers --------------------------------------------------
    @staticmethod
    def _config_file(environ: Mapping[str, str], explicit: Path | str | None) -> Path | None:
        if explicit is not None:
            return Path(explicit).expanduser()
        raw = environ.get(f"{ENV_PREFIX}CONFIG")
        if raw:
            return Path(raw).expanduser()
        state_dir = Path(environ.get(f"{ENV_PREFIX}STATE_DIR", "~/.smipay")).expanduser()
        candidate = state_dir / "config.yaml"
        return candidate if candidate.exists() else None

    @staticmethod
    def _read_yaml(path: Path) -> dict[str, Any]:
        if not path.exists():
            raise SettingsError(f"config file {path} does not exist")
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise SettingsError(f"failed to parse {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise SettingsError(f"{path} must contain a mapping")
        _log.debug("loaded settings from %s", path)
        return data


def _coerce(name: str, value: Any, current: Any) -> Any:
    if name == "state_dir":
        return Path(value).expanduser() if value is not None else current
    if name in {"device_name", "latitude", "longitude"}:
        if value is None or value == "":
            return None
        return str(value) if name == "device_name" else _as_float(name, value)
    if isinstance(current, bool):
        return _as_bool(name, value)
    if isinstance(current, float):
        return _as_float(name, value)
    if isinstance(current, tuple):
        if isinstance(value, str):
            return tuple(part.strip() for part in value.split(",") if part.strip())
        return tuple(str(item) for item in value)
    return str(value)


def _as_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise SettingsError(f"setting '{name}' expects a boolean, got {value!r}")


def _as_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise SettingsError(f"setting '{name}' expects a number, got {value!r}") from exc
