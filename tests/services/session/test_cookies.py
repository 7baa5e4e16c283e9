from __future__ import annotations

import os
import sys

import pytest

from smipay.config import const
from smipay.services.session import AuthCookieJar, cookie_domain


def test_cookie_domain():
    assert cookie_domain("API.Smipay.com") == "api.smipay.com"
    assert cookie_domain("localhost") == "localhost.local"


def test_token_roundtrip_and_expiry(clock):
    cookies = AuthCookieJar("localhost", clock=clock)
    cookies.set_token("tok-1")
    assert cookies.token() == "tok-1"
    (cookie,) = list(cookies.jar)
    assert cookie.name == const.AUTH_COOKIE_NAME
    assert cookie.path == "/"
    assert cookie.expires == int(clock.now) + 7 * 24 * 3600
    assert cookie.get_nonstandard_attr("SameSite") == "Strict"

    clock.advance(7 * 24 * 3600)
    assert cookies.token() is None


def test_expire_removes_cookie(clock):
    cookies = AuthCookieJar("localhost", clock=clock)
    cookies.set_token("tok-1")
    cookies.expire()
    assert cookies.token() is None
    assert list(cookies.jar) == []


def test_file_jar_survives_restart(tmp_path, clock):
    path = tmp_path / "cookies.lwp"
    AuthCookieJar("api.smipay.test", path=path, clock=clock).set_token("tok-2")
    assert AuthCookieJar("api.smipay.test", path=path, clock=clock).token() == "tok-2"
    if sys.platform != "win32":
        assert os.stat(path).st_mode & 0o777 == 0o600


def test_unreadable_jar_is_ignored(tmp_path, clock):
    path = tmp_path / "cookies.lwp"
    path.write_text("garbage\n", encoding="utf-8")
    assert AuthCookieJar("localhost", path=path, clock=clock).token() is None


@pytest.mark.anyio
async def test_jar_is_shared_with_http_client(clock):
    import httpx

    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["cookie"] = request.headers.get("cookie")
        return httpx.Response(200, json={})

    cookies = AuthCookieJar("localhost", clock=clock)
    async with httpx.AsyncClient(cookies=cookies.jar, transport=httpx.MockTransport(handler)) as client:
        cookies.set_token("tok-3")
        await client.get("http://localhost/api/v1/user/profile")
    assert seen["cookie"] == f"{const.AUTH_COOKIE_NAME}=tok-3"
