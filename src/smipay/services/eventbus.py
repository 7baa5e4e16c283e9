from __future__ import annotations

import inspect
import logging
import time
from typing import Any, Awaitable, Callable, Union

from smipay.domain import Event

__all__ = ["Handler", "LocalEventBus"]

_log = logging.getLogger("smipay.bus")

Handler = Callable[[Event], Union[None, Awaitable[None]]]


class LocalEventBus:
    """In-process pub/sub; subscriptions match on topic prefix."""

    def __init__(self) -> None:
        self._subs: list[tuple[str, Handler]] = []

    def subscribe(self, prefix: str, handler: Handler) -> Callable[[], None]:
        entry = (prefix, handler)
        self._subs.append(entry)

        def _unsubscribe() -> None:
            if entry in self._subs:
                self._subs.remove(entry)

        return _unsubscribe

    async def emit(self, topic: str, payload: Any = None, source: str = "") -> int:
        """Deliver to every matching handler; returns the number of deliveries."""
        event = Event(type=topic, payload=payload, source=source, ts=time.time())
        delivered = 0
        for prefix, handler in list(self._subs):
            if not topic.startswith(prefix):
                continue
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                _log.warning("event handler failed topic=%s handler=%r", topic, handler, exc_info=True)
                continue
            delivered += 1
        return delivered
