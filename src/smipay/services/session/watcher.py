"""Periodic inactivity check for the stored session."""
from __future__ import annotations

import asyncio
import logging
import math

from smipay.config import const
from smipay.services.eventbus import LocalEventBus

from .invalidator import SessionInvalidator
from .store import SessionStore

__all__ = ["SessionWatcher"]

_log = logging.getLogger("smipay.session.watcher")


class SessionWatcher:
    def __init__(
        self,
        sessions: SessionStore,
        invalidator: SessionInvalidator,
        bus: LocalEventBus,
        *,
        interval: float = const.SESSION_CHECK_INTERVAL_SECONDS,
        warning: float = const.SESSION_WARNING_SECONDS,
    ) -> None:
        self._sessions = sessions
        self._invalidator = invalidator
        self._bus = bus
        self._interval = float(interval)
        self._warning = float(warning)
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._task and not self._task.done():
            return
        self._task = asyncio.create_task(self._run(), name="smipay-session-watcher")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    async def _run(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._interval)
                try:
                    await self.check()
                except Exception:
                    _log.warning("session check failed", exc_info=True)
        except asyncio.CancelledError:
            pass

    async def check(self) -> str:
        """One pass: ``inactive``, ``ok``, ``warning`` or ``expired``."""
        if self._invalidator.invalidated:
            if self._invalidator.clear_pending:
                await self._invalidator.invalidate()
            return "inactive"
        if self._sessions.access_token() is None:
            return "inactive"
        if self._sessions.is_expired():
            await self._invalidator.invalidate("inactivity", const.INACTIVITY_MESSAGE)
            return "expired"
        remaining = self._sessions.time_until_expiry()
        if remaining <= self._warning:
            await self._bus.emit(
                const.TOPIC_SESSION_WARNING,
                {"seconds_remaining": math.ceil(remaining)},
                source="session",
            )
            return "warning"
        return "ok"
