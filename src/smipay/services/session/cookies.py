"""Authentication cookie mirroring the bearer token in the HTTP client's jar."""
from __future__ import annotations

from http.cookiejar import Cookie, CookieJar, LoadError, LWPCookieJar
from pathlib import Path
from typing import Callable
import logging
import os
import time

from smipay.adapters.storage import StorageUnavailableError
from smipay.config import const

__all__ = ["AuthCookieJar", "cookie_domain"]

_log = logging.getLogger("smipay.session.cookies")


def cookie_domain(host: str) -> str:
    """Domain the jar files a host-only cookie under (dot-less hosts get ``.local``)."""
    host = host.lower()
    return host if "." in host else f"{host}.local"


class AuthCookieJar:
    def __init__(
        self,
        host: str,
        *,
        path: Path | None = None,
        name: str = const.AUTH_COOKIE_NAME,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._domain = cookie_domain(host)
        self._name = name
        self._path = path
        self._clock = clock
        jar: CookieJar
        if path is not None:
            jar = LWPCookieJar(str(path))
            if path.exists():
                try:
                    jar.load(ignore_discard=True)
                except (LoadError, OSError) as exc:
                    _log.warning("ignoring unreadable cookie jar %s: %s", path, exc)
        else:
            jar = CookieJar()
        self._jar = jar

    @property
    def jar(self) -> CookieJar:
        """The jar shared with the HTTP client (pass it as ``cookies=``)."""
        return self._jar

    def _cookie(self, value: str, expires: int) -> Cookie:
        return Cookie(
            version=0,
            name=self._name,
            value=value,
            port=None,
            port_specified=False,
            domain=self._domain,
            domain_specified=False,
            domain_initial_dot=False,
            path="/",
            path_specified=True,
            secure=False,
            expires=expires,
            discard=False,
            comment=None,
            comment_url=None,
            rest={"SameSite": "Strict"},
        )

    def _save(self) -> None:
        if not isinstance(self._jar, LWPCookieJar) or self._path is None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._jar.save(ignore_discard=True)
            try:
                os.chmod(self._path, 0o600)
            except PermissionError:
                pass
        except OSError as exc:
            raise StorageUnavailableError(f"failed to write cookie jar {self._path}") from exc

    def set_token(self, token: str, *, days: int = const.AUTH_COOKIE_DAYS) -> None:
        expires = int(self._clock()) + days * 24 * 3600
        self._jar.set_cookie(self._cookie(token, expires))
        self._save()

    def expire(self) -> None:
        """Overwrite with a 1970 expiry so the jar drops it."""
        self._jar.set_cookie(self._cookie("", 0))
        self._jar.clear_expired_cookies()
        self._save()

    def token(self) -> str | None:
        for cookie in self._jar:
            if cookie.name == self._name and cookie.domain == self._domain and cookie.value:
                if cookie.expires is not None and cookie.expires <= self._clock():
                    return None
                return cookie.value
        return None
