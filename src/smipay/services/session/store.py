"""Durable session state: bearer token, cached user, activity and expiry."""
from __future__ import annotations

from typing import Any, Callable, Mapping
import json
import logging
import time

from smipay.adapters.storage import KeyValueStore, StorageUnavailableError
from smipay.config import const
from smipay.domain import Session

from .cookies import AuthCookieJar

__all__ = ["SessionStore", "DURABLE_SESSION_KEYS"]

_log = logging.getLogger("smipay.session")

DURABLE_SESSION_KEYS: tuple[str, ...] = (
    const.ACCESS_TOKEN_KEY,
    const.REFRESH_TOKEN_KEY,
    const.USER_KEY,
    const.LAST_ACTIVITY_KEY,
    const.TOKEN_EXPIRY_KEY,
    const.CLIENT_STATE_KEY,
)


def _ms(value: float) -> str:
    return str(int(value * 1000))


def _seconds(raw: str | None) -> float | None:
    if not raw:
        return None
    try:
        return int(raw) / 1000.0
    except ValueError:
        return None


class SessionStore:
    """Reads and writes the session keys; timestamps are stored as epoch milliseconds.

    When ``secrets`` is given (the OS keyring) the refresh token lives there
    instead of the durable JSON state.
    """

    def __init__(
        self,
        durable: KeyValueStore,
        *,
        cookies: AuthCookieJar,
        secrets: KeyValueStore | None = None,
        timeout: float = const.SESSION_TIMEOUT_SECONDS,
        activity_throttle: float = const.ACTIVITY_THROTTLE_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._durable = durable
        self._cookies = cookies
        self._secrets = secrets
        self._timeout = float(timeout)
        self._throttle = float(activity_throttle)
        self._clock = clock
        self._last_touch = 0.0

    @property
    def cookies(self) -> AuthCookieJar:
        return self._cookies

    @property
    def timeout(self) -> float:
        return self._timeout

    # ---------- write ----------------------------------------------------
    def save(
        self,
        access_token: str,
        user: Mapping[str, Any] | None = None,
        *,
        expires_in: float | None = None,
        refresh_token: str | None = None,
    ) -> Session:
        now = self._clock()
        self._durable.set(const.ACCESS_TOKEN_KEY, access_token)
        if user is not None:
            self.update_user(user)
        self._durable.set(const.LAST_ACTIVITY_KEY, _ms(now))
        self._last_touch = now
        if expires_in:
            self._durable.set(const.TOKEN_EXPIRY_KEY, _ms(now + float(expires_in)))
        else:
            self._durable.delete(const.TOKEN_EXPIRY_KEY)
        if refresh_token:
            (self._secrets or self._durable).set(const.REFRESH_TOKEN_KEY, refresh_token)
        self._cookies.set_token(access_token)
        _log.info("session saved")
        session = self.load()
        if session is None:
            raise StorageUnavailableError("session was not persisted")
        return session

    def update_user(self, user: Mapping[str, Any]) -> None:
        payload = json.dumps(dict(user), ensure_ascii=False, default=str)
        self._durable.set(const.USER_KEY, payload)
        # persisted client-state snapshot, same shape the web store keeps
        self._durable.set(const.CLIENT_STATE_KEY, json.dumps({"state": {"user": dict(user)}, "version": 0}, default=str))

    def touch(self, *, force: bool = False) -> bool:
        """Record activity; writes at most once per throttle window."""
        if self.access_token() is None:
            return False
        now = self._clock()
        if not force and now - self._last_touch < self._throttle:
            return False
        self._last_touch = now
        self._durable.set(const.LAST_ACTIVITY_KEY, _ms(now))
        return True

    def clear(self) -> None:
        """Drop every session key in one durable write.

        The keyring entry and the auth cookie are removed even when the
        durable write fails; the storage error is re-raised afterwards.
        """
        self._last_touch = 0.0
        try:
            self._durable.delete_many(DURABLE_SESSION_KEYS)
        finally:
            try:
                if self._secrets is not None:
                    self._secrets.delete(const.REFRESH_TOKEN_KEY)
            finally:
                self._cookies.expire()

    # ---------- read -----------------------------------------------------
    def access_token(self) -> str | None:
        return self._durable.get(const.ACCESS_TOKEN_KEY) or None

    def refresh_token(self) -> str | None:
        store = self._secrets or self._durable
        return store.get(const.REFRESH_TOKEN_KEY) or None

    def user(self) -> dict[str, Any] | None:
        raw = self._durable.get(const.USER_KEY)
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return None
        return data if isinstance(data, dict) else None

    def load(self) -> Session | None:
        token = self.access_token()
        if token is None:
            return None
        return Session(
            access_token=token,
            cached_user=self.user(),
            last_activity=_seconds(self._durable.get(const.LAST_ACTIVITY_KEY)),
            token_expiry=_seconds(self._durable.get(const.TOKEN_EXPIRY_KEY)),
        )

    def expires_at(self) -> float | None:
        session = self.load()
        if session is None:
            return None
        deadlines = []
        if session.last_activity is not None:
            deadlines.append(session.last_activity + self._timeout)
        if session.token_expiry is not None:
            deadlines.append(session.token_expiry)
        return min(deadlines) if deadlines else None

    def time_until_expiry(self) -> float:
        deadline = self.expires_at()
        if deadline is None:
            return float("inf") if self.access_token() else 0.0
        return max(0.0, deadline - self._clock())

    def is_expired(self) -> bool:
        """True for a stored session past its inactivity window or token expiry."""
        deadline = self.expires_at()
        return deadline is not None and self._clock() >= deadline
