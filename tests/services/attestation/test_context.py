from __future__ import annotations

import asyncio

import pytest

from smipay.adapters.storage import MemoryStore
from smipay.config import const
from smipay.services.attestation import AttestationContext, StaticLocationProvider


@pytest.mark.anyio
async def test_metadata_headers_for_desktop_client(make_context):
    ctx = make_context()
    headers = await ctx.device_metadata_headers()
    assert headers["x-device-id"].startswith("device-")
    assert headers["x-device-fingerprint"].startswith("fp-")
    assert headers["x-device-name"] == "Desktop Client"
    assert headers["x-device-model"] == "X11; Linux x86_64"
    assert headers["platform"] == "web"
    assert headers["x-os-name"] == "Linux"
    assert headers["x-app-version"] == "1.2.3"
    assert "x-os-version" not in headers
    assert "x-latitude" not in headers and "x-longitude" not in headers


@pytest.mark.anyio
async def test_configured_device_name_wins(make_context):
    ctx = make_context(device_name="Till 3")
    assert (await ctx.device_metadata_headers())["x-device-name"] == "Till 3"


@pytest.mark.anyio
async def test_fresh_position_adds_coordinates(make_context, clock):
    ctx = make_context(provider=StaticLocationProvider(6.5, 3.25))
    await ctx.geolocation.refresh()
    headers = await ctx.device_metadata_headers()
    assert headers["x-latitude"] == "6.5"
    assert headers["x-longitude"] == "3.25"

    clock.advance(const.GEO_TTL_SECONDS)
    headers = await ctx.device_metadata_headers()
    assert "x-latitude" not in headers


@pytest.mark.anyio
async def test_server_context_sends_sentinels_only(make_context):
    durable = MemoryStore()
    ctx = make_context(durable=durable, interactive=False)
    headers = await ctx.device_metadata_headers()
    assert headers == {"x-device-id": const.SERVER_DEVICE_ID, "x-device-fingerprint": const.SERVER_FINGERPRINT}
    assert const.DEVICE_ID_KEY not in durable


@pytest.mark.anyio
async def test_get_request_envelope_has_empty_signature(make_context):
    ctx = make_context()
    envelope = await ctx.security_envelope(None)
    assert envelope.signature == ""
    for value in (envelope.timestamp, envelope.nonce, envelope.request_id, envelope.device_id, envelope.fingerprint):
        assert value


def test_capability_flags(make_context):
    assert make_context().crypto_degraded is False
    weak = make_context(crypto_backend="weak")
    assert weak.crypto_backend == "weak"
    assert weak.crypto_degraded is True


def test_default_secret_is_reported(settings, environment, caplog):
    with caplog.at_level("WARNING", logger="smipay"):
        AttestationContext.from_settings(
            settings.with_overrides(api_secret=const.DEFAULT_API_SECRET),
            environment=environment,
            durable=MemoryStore(),
        )
    assert "default secret" in caplog.text


def test_file_backed_context_uses_profile_directory(settings, environment):
    ctx = AttestationContext.from_settings(settings, environment=environment)
    device_id = ctx.identity.get_device_id()
    assert (settings.state_path() / "state.json").exists()
    again = AttestationContext.from_settings(settings, environment=environment)
    assert again.identity.get_device_id() == device_id


@pytest.mark.anyio
async def test_foreground_event_triggers_refresh(make_context):
    calls = []

    class _Provider:
        async def current_position(self):
            calls.append(1)
            return (1.0, 2.0)

    ctx = make_context(provider=_Provider())
    async with ctx:
        for _ in range(5):
            await asyncio.sleep(0)
        before = len(calls)
        await ctx.bus.emit(const.TOPIC_APP_FOREGROUND)
        for _ in range(5):
            await asyncio.sleep(0)
        assert len(calls) == before + 1
    assert not ctx.geolocation.started


@pytest.mark.anyio
async def test_aclose_drops_session_scoped_state(make_context):
    ephemeral = MemoryStore()
    ctx = make_context(provider=StaticLocationProvider(1.0, 1.0), ephemeral=ephemeral)
    await ctx.start()
    await ctx.device_metadata_headers()
    await ctx.geolocation.refresh()
    assert const.FINGERPRINT_KEY in ephemeral
    await ctx.aclose()
    assert ephemeral.snapshot() == {}
    assert ctx.geolocation.current() is None
