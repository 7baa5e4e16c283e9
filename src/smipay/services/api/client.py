# src/smipay/services/api/client.py
from __future__ import annotations

from typing import Any, Mapping, MutableMapping
from urllib.parse import urlsplit
import asyncio
import logging

import httpx

from smipay.adapters.storage import StorageUnavailableError
from smipay.config import const
from smipay.services.attestation.context import AttestationContext
from smipay.services.attestation.signing import Body, canonical_body

from .errors import CredentialAuthError, ServerError, SessionAuthError, TransportError, server_message

__all__ = ["BackendClient"]

_log = logging.getLogger("smipay.api")


class BackendClient:
    """Async HTTP client that attaches device metadata, the signed envelope and the bearer token.

    Every outbound request carries whatever attestation material could be
    produced; a failure in any one step is logged and the request goes out
    without it.  Responses are normalised into :class:`ApiError` subclasses:

    * no response at all -> :class:`TransportError`
    * 401 on a session-less path -> :class:`CredentialAuthError`
    * 401 anywhere else -> session invalidated, :class:`SessionAuthError`
    * any other non-2xx, redirects included -> :class:`ServerError`
    """

    def __init__(
        self,
        context: AttestationContext,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._context = context
        settings = context.settings
        self._timeout = float(timeout if timeout is not None else settings.timeout)
        self._api_prefix = "/" + settings.api_version.strip("/") if settings.api_version.strip("/") else ""
        self._session_less = tuple(settings.session_less_paths)
        self._bypass_warned = False
        self._http = httpx.AsyncClient(
            base_url=settings.api_base,
            timeout=self._timeout,
            transport=transport,
            headers=dict(headers or {}),
            cookies=context.sessions.cookies.jar,
        )

    @property
    def context(self) -> AttestationContext:
        return self._context

    # ---------- lifecycle ------------------------------------------------
    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ---------- path classification -------------------------------------
    def is_session_less(self, path: str) -> bool:
        """True when a 401 on ``path`` means bad credentials rather than an expired session."""
        route = urlsplit(path).path or "/"
        if self._api_prefix and (route == self._api_prefix or route.startswith(self._api_prefix + "/")):
            route = route[len(self._api_prefix):] or "/"
        route = "/" + route.lstrip("/")
        for allowed in self._session_less:
            if route == allowed or route.startswith(allowed.rstrip("/") + "/"):
                return True
        return False

    # ---------- header assembly -----------------------------------------
    async def build_headers(self, body_text: str | None) -> dict[str, str]:
        headers: dict[str, str] = {}
        ctx = self._context

        try:
            headers.update(await ctx.device_metadata_headers())
        except (StorageUnavailableError, ValueError, RuntimeError) as exc:
            _log.warning("device metadata unavailable: %s", exc)

        if ctx.settings.bypass_security_headers:
            if not self._bypass_warned:
                _log.warning("security headers are disabled (bypass_security_headers); requests are unsigned")
                self._bypass_warned = True
        else:
            try:
                envelope = await ctx.security_envelope(body_text)
                headers.update(envelope.as_headers())
            except (StorageUnavailableError, ValueError, RuntimeError) as exc:
                _log.warning("security envelope unavailable: %s", exc)

        try:
            token = ctx.sessions.access_token()
        except StorageUnavailableError as exc:
            _log.warning("access token unavailable: %s", exc)
            token = None
        if token:
            headers[const.H_AUTHORIZATION] = f"Bearer {token}"
        return headers

    # ---------- request pipeline ----------------------------------------
    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Body | None = None,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        invalidate_on_401: bool = True,
    ) -> Any:
        method = method.upper()
        body_text = canonical_body(json)
        request_headers: MutableMapping[str, str] = await self.build_headers(body_text)
        if headers:
            request_headers.update({str(k): str(v) for k, v in headers.items()})
        content: bytes | None = None
        if body_text is not None:
            content = body_text.encode("utf-8")
            request_headers.setdefault("Content-Type", "application/json")

        limit = timeout or self._timeout
        try:
            response = await asyncio.wait_for(
                self._http.request(method, path, params=params, content=content, headers=request_headers),
                timeout=limit,
            )
        except asyncio.TimeoutError as exc:
            _log.warning("%s %s timed out after %.1fs", method, path, limit)
            raise TransportError(timeout=True, method=method, path=path) from exc
        except httpx.TimeoutException as exc:
            _log.warning("%s %s timed out: %s", method, path, exc)
            raise TransportError(timeout=True, method=method, path=path) from exc
        except httpx.RequestError as exc:
            _log.warning("%s %s failed: %s", method, path, exc)
            raise TransportError(method=method, path=path) from exc

        return await self._handle(method, path, response, invalidate_on_401=invalidate_on_401)

    async def _handle(
        self, method: str, path: str, response: httpx.Response, *, invalidate_on_401: bool = True
    ) -> Any:
        content: Any | None = None
        if response.content:
            try:
                content = response.json()
            except ValueError:
                content = response.text

        status = response.status_code
        if 200 <= status < 300:
            try:
                self._context.sessions.touch()
            except StorageUnavailableError as exc:
                _log.debug("activity not recorded: %s", exc)
            return content if content is not None else {}

        message = server_message(content) or f"Request failed with status code {status}"
        error_code: str | None = None
        if isinstance(content, Mapping):
            code = content.get("code") or content.get("error")
            if isinstance(code, str):
                error_code = code
        kw = dict(status_code=status, error_code=error_code, payload=content, method=method, path=path)

        if status == 401:
            if self.is_session_less(path):
                _log.info("%s %s rejected credentials", method, path)
                raise CredentialAuthError(message, **kw)
            if invalidate_on_401:
                await self._context.invalidator.invalidate("unauthorized")
            raise SessionAuthError(message, **kw)

        _log.debug("%s %s -> %s", method, path, status)
        raise ServerError(message, **kw)

    # ---------- verbs ----------------------------------------------------
    async def get(self, path: str, *, params: Mapping[str, Any] | None = None, **kw: Any) -> Any:
        return await self.request("GET", path, params=params, **kw)

    async def post(self, path: str, json: Body | None = None, **kw: Any) -> Any:
        return await self.request("POST", path, json=json, **kw)

    async def put(self, path: str, json: Body | None = None, **kw: Any) -> Any:
        return await self.request("PUT", path, json=json, **kw)

    async def patch(self, path: str, json: Body | None = None, **kw: Any) -> Any:
        return await self.request("PATCH", path, json=json, **kw)

    async def delete(self, path: str, **kw: Any) -> Any:
        return await self.request("DELETE", path, **kw)
