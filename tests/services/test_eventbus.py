from __future__ import annotations

import pytest

from smipay.services.eventbus import LocalEventBus


@pytest.mark.anyio
async def test_prefix_subscriptions_and_async_handlers():
    bus = LocalEventBus()
    seen = []

    async def async_handler(event):
        seen.append(("async", event.type))

    bus.subscribe("session.", lambda event: seen.append(("sync", event.type)))
    bus.subscribe("session.terminated", async_handler)
    bus.subscribe("app.", lambda event: seen.append(("app", event.type)))

    delivered = await bus.emit("session.terminated", {"reason": "x"}, source="test")
    assert delivered == 2
    assert seen == [("sync", "session.terminated"), ("async", "session.terminated")]


@pytest.mark.anyio
async def test_failing_handler_does_not_block_others(caplog):
    bus = LocalEventBus()
    seen = []

    def broken(event):
        raise RuntimeError("handler bug")

    bus.subscribe("session.", broken)
    bus.subscribe("session.", lambda event: seen.append(event.payload))
    with caplog.at_level("WARNING", logger="smipay.bus"):
        assert await bus.emit("session.warning", {"seconds_remaining": 5}) == 1
    assert seen == [{"seconds_remaining": 5}]
    assert "event handler failed" in caplog.text


@pytest.mark.anyio
async def test_unsubscribe():
    bus = LocalEventBus()
    seen = []
    unsubscribe = bus.subscribe("app.foreground", seen.append)
    unsubscribe()
    unsubscribe()
    assert await bus.emit("app.foreground") == 0
    assert seen == []
