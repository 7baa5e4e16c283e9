from __future__ import annotations

import logging

from smipay.adapters.storage import StorageUnavailableError
from smipay.config import const
from smipay.domain import SessionTerminated
from smipay.services.eventbus import LocalEventBus

from .store import SessionStore

__all__ = ["SessionInvalidator"]

_log = logging.getLogger("smipay.session")


class SessionInvalidator:
    """Tears the local session down once per session lifetime.

    The latch is set before the first suspension point, so any number of
    concurrent 401 handlers on the same event loop produce exactly one
    clearing pass and one :class:`SessionTerminated` signal.  :meth:`rearm`
    is called when a new session is stored.

    If storage refuses the clearing pass, the next call to :meth:`invalidate`
    or :meth:`end_session` retries it without signalling again.
    """

    def __init__(self, sessions: SessionStore, bus: LocalEventBus) -> None:
        self._sessions = sessions
        self._bus = bus
        self._invalidated = False
        self._clear_pending = False

    @property
    def invalidated(self) -> bool:
        return self._invalidated

    @property
    def clear_pending(self) -> bool:
        return self._clear_pending

    def rearm(self) -> None:
        self._invalidated = False
        self._clear_pending = False

    def _clear(self) -> bool:
        try:
            self._sessions.clear()
        except StorageUnavailableError:
            self._clear_pending = True
            _log.error("failed to clear durable session state", exc_info=True)
            return False
        self._clear_pending = False
        return True

    def end_session(self) -> None:
        """User-initiated logout: clear state and latch without a termination signal."""
        self._invalidated = True
        self._clear()
        _log.info("session ended by user")

    async def invalidate(self, reason: str = "unauthorized", message: str = const.SESSION_EXPIRED_MESSAGE) -> bool:
        """Return ``True`` if this call performed the invalidation."""
        if self._invalidated:
            if self._clear_pending and self._clear():
                _log.info("leftover session state cleared")
            return False
        self._invalidated = True

        self._clear()
        _log.warning("session invalidated reason=%s", reason)

        await self._bus.emit(
            const.TOPIC_SESSION_TERMINATED,
            SessionTerminated(reason=reason, message=message),
            source="session",
        )
        return True
