"""Best-effort location attestation with a TTL cache and background refresh."""
from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Awaitable, Callable, Protocol, runtime_checkable

from smipay.adapters.storage import KeyValueStore
from smipay.config import const
from smipay.domain import GeoPosition

__all__ = [
    "LocationError",
    "LocationPermissionDenied",
    "LocationUnavailable",
    "LocationProvider",
    "NullLocationProvider",
    "StaticLocationProvider",
    "CallbackLocationProvider",
    "GeolocationAttester",
]

_log = logging.getLogger("smipay.attest.geo")


class LocationError(RuntimeError):
    """Base error for location acquisition."""


class LocationPermissionDenied(LocationError):
    """The user (or platform policy) refused access to location."""


class LocationUnavailable(LocationError):
    """No fix could be obtained."""


@runtime_checkable
class LocationProvider(Protocol):
    async def current_position(self) -> tuple[float, float]: ...


class NullLocationProvider:
    async def current_position(self) -> tuple[float, float]:
        raise LocationUnavailable("no location source configured")


class StaticLocationProvider:
    """Fixed coordinates, e.g. for a kiosk or a configured branch office."""

    def __init__(self, lat: float, lng: float) -> None:
        self._coords = (float(lat), float(lng))

    async def current_position(self) -> tuple[float, float]:
        return self._coords


class CallbackLocationProvider:
    """Adapts a host coroutine function returning ``(lat, lng)`` or ``None``."""

    def __init__(self, callback: Callable[[], Awaitable[tuple[float, float] | None]]) -> None:
        self._callback = callback

    async def current_position(self) -> tuple[float, float]:
        result = await self._callback()
        if result is None:
            raise LocationUnavailable("host returned no position")
        lat, lng = result
        return float(lat), float(lng)


class GeolocationAttester:
    """Keeps the latest position fresh for the ``x-latitude``/``x-longitude`` headers.

    ``_position`` is read and replaced without locking; the value is advisory.
    """

    def __init__(
        self,
        provider: LocationProvider,
        session_store: KeyValueStore,
        *,
        ttl: float = const.GEO_TTL_SECONDS,
        timeout: float = const.GEO_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._provider = provider
        self._session = session_store
        self._ttl = float(ttl)
        self._timeout = float(timeout)
        self._clock = clock
        self._position: GeoPosition | None = None
        self._started = False
        self._task: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def started(self) -> bool:
        return self._started

    # ---------- lifecycle -------------------------------------------------
    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        self._position = self._load_persisted()
        self._task = asyncio.create_task(self._run(), name="smipay-geo-poller")
        _log.debug("geolocation polling started ttl=%ss", self._ttl)

    async def stop(self) -> None:
        tasks = [t for t in (self._task, *self._pending) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._task = None
        self._pending.clear()
        self._started = False

    def notify_foreground(self) -> None:
        """Host application returned to the foreground: re-acquire now."""
        if not self._started:
            return
        task = asyncio.get_running_loop().create_task(self.refresh(), name="smipay-geo-foreground")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _run(self) -> None:
        try:
            while True:
                await self.refresh()
                await asyncio.sleep(self._ttl)
        except asyncio.CancelledError:
            pass

    # ---------- acquisition ----------------------------------------------
    async def refresh(self) -> GeoPosition | None:
        try:
            lat, lng = await asyncio.wait_for(self._provider.current_position(), timeout=self._timeout)
        except LocationPermissionDenied:
            _log.debug("location permission denied")
            return None
        except (LocationError, asyncio.TimeoutError) as exc:
            _log.debug("location unavailable: %s", exc or "timeout")
            return None
        except Exception:
            _log.warning("location provider failed", exc_info=True)
            return None
        position = GeoPosition(lat=lat, lng=lng, captured_at=self._clock())
        self.record(position)
        return position

    def current(self) -> GeoPosition | None:
        position = self._position
        if position is not None and position.is_fresh(self._clock(), self._ttl):
            return position
        return None

    def record(self, position: GeoPosition) -> None:
        self._position = position
        self._session.set(const.GEO_CACHE_KEY, json.dumps(position.to_cache()))

    def clear(self) -> None:
        self._position = None
        self._session.delete(const.GEO_CACHE_KEY)

    def _load_persisted(self) -> GeoPosition | None:
        raw = self._session.get(const.GEO_CACHE_KEY)
        if not raw:
            return None
        try:
            position = GeoPosition.from_cache(json.loads(raw))
        except (ValueError, KeyError, TypeError):
            self._session.delete(const.GEO_CACHE_KEY)
            return None
        if not position.is_fresh(self._clock(), self._ttl):
            return None
        return position
