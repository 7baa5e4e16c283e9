from __future__ import annotations

import asyncio
import json

import pytest

from smipay.adapters.storage import MemoryStore
from smipay.config import const
from smipay.domain import GeoPosition
from smipay.services.attestation import (
    CallbackLocationProvider,
    GeolocationAttester,
    LocationPermissionDenied,
    StaticLocationProvider,
)


class _CountingProvider:
    def __init__(self, coords=(6.5244, 3.3792)):
        self.calls = 0
        self.coords = coords

    async def current_position(self):
        self.calls += 1
        return self.coords


class _DeniedProvider:
    async def current_position(self):
        raise LocationPermissionDenied("user said no")


class _HangingProvider:
    async def current_position(self):
        await asyncio.Event().wait()


async def _settle():
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.mark.anyio
async def test_position_is_fresh_strictly_before_ttl(clock):
    attester = GeolocationAttester(StaticLocationProvider(1.5, 2.5), MemoryStore(), ttl=300, clock=clock)
    position = await attester.refresh()
    assert position == GeoPosition(lat=1.5, lng=2.5, captured_at=clock.now)

    clock.advance(299.999)
    assert attester.current() == position
    clock.advance(0.001)
    assert attester.current() is None


@pytest.mark.anyio
async def test_refresh_persists_cache_entry(clock):
    session = MemoryStore()
    attester = GeolocationAttester(StaticLocationProvider(1.0, 2.0), session, clock=clock)
    await attester.refresh()
    cached = json.loads(session.get(const.GEO_CACHE_KEY))
    assert cached == {"lat": 1.0, "lng": 2.0, "timestamp": int(clock.now * 1000)}


@pytest.mark.anyio
async def test_denial_is_swallowed_and_keeps_existing_entry(clock):
    attester = GeolocationAttester(_DeniedProvider(), MemoryStore(), ttl=300, clock=clock)
    previous = GeoPosition(lat=9.0, lng=8.0, captured_at=clock.now)
    attester.record(previous)
    clock.advance(10)
    assert await attester.refresh() is None
    assert attester.current() == previous


@pytest.mark.anyio
async def test_timeout_is_swallowed(clock):
    attester = GeolocationAttester(_HangingProvider(), MemoryStore(), timeout=0.01, clock=clock)
    assert await attester.refresh() is None
    assert attester.current() is None


@pytest.mark.anyio
async def test_callback_provider_returning_none_is_unavailable(clock):
    async def _nothing():
        return None

    attester = GeolocationAttester(CallbackLocationProvider(_nothing), MemoryStore(), clock=clock)
    assert await attester.refresh() is None


@pytest.mark.anyio
async def test_unexpected_provider_error_is_logged(clock, caplog):
    async def _broken():
        raise KeyError("lat")

    attester = GeolocationAttester(CallbackLocationProvider(_broken), MemoryStore(), clock=clock)
    with caplog.at_level("WARNING", logger="smipay"):
        assert await attester.refresh() is None
    assert "location provider failed" in caplog.text


@pytest.mark.anyio
async def test_start_loads_fresh_persisted_entry_and_is_idempotent(clock):
    session = MemoryStore()
    cached = GeoPosition(lat=4.0, lng=5.0, captured_at=clock.now - 60)
    session.set(const.GEO_CACHE_KEY, json.dumps(cached.to_cache()))
    attester = GeolocationAttester(_HangingProvider(), session, ttl=300, clock=clock)

    await attester.start()
    await attester.start()
    try:
        assert attester.started
        assert attester.current() == cached
    finally:
        await attester.stop()
    assert not attester.started


@pytest.mark.anyio
async def test_stale_persisted_entry_is_ignored(clock):
    session = MemoryStore()
    stale = GeoPosition(lat=4.0, lng=5.0, captured_at=clock.now - 301)
    session.set(const.GEO_CACHE_KEY, json.dumps(stale.to_cache()))
    attester = GeolocationAttester(_HangingProvider(), session, ttl=300, clock=clock)
    await attester.start()
    try:
        assert attester.current() is None
    finally:
        await attester.stop()


@pytest.mark.anyio
async def test_start_polls_immediately_and_foreground_refreshes(clock):
    provider = _CountingProvider()
    attester = GeolocationAttester(provider, MemoryStore(), ttl=300, clock=clock)
    await attester.start()
    try:
        await _settle()
        assert provider.calls == 1
        attester.notify_foreground()
        await _settle()
        assert provider.calls == 2
    finally:
        await attester.stop()


@pytest.mark.anyio
async def test_foreground_before_start_is_ignored(clock):
    provider = _CountingProvider()
    attester = GeolocationAttester(provider, MemoryStore(), clock=clock)
    attester.notify_foreground()
    await _settle()
    assert provider.calls == 0


@pytest.mark.anyio
async def test_clear_drops_position_and_cache(clock):
    session = MemoryStore()
    attester = GeolocationAttester(StaticLocationProvider(1.0, 1.0), session, clock=clock)
    await attester.refresh()
    attester.clear()
    assert attester.current() is None
    assert const.GEO_CACHE_KEY not in session
