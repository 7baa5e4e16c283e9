"""Nonces, request ids, body signatures and the per-request security envelope.

Signatures are HMAC-SHA256 over the canonical body, hex encoded.  Mappings and
sequences are canonicalised as compact JSON with sorted keys; the HTTP client
sends exactly these bytes, so the server verifies what was signed.
"""
from __future__ import annotations

import json
import logging
import os
import random
import secrets
import string
import time
import uuid
from typing import Any, Awaitable, Callable, Mapping, Sequence, Union

from smipay.domain import SecurityEnvelope

from .crypto import CryptoCapability
from .identity import IdentityStore

__all__ = [
    "Body",
    "SignatureEngine",
    "canonical_body",
    "canonical_json",
    "generate_nonce",
    "generate_request_id",
]

_log = logging.getLogger("smipay.attest.signing")

Body = Union[str, bytes, Mapping[str, Any], Sequence[Any]]

_BASE36 = string.digits + string.ascii_lowercase
_weak_random_warned = False


def canonical_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def canonical_body(body: Body | None) -> str | None:
    """Return the exact text that is signed and sent, or ``None`` when there is no body."""
    if body is None:
        return None
    if isinstance(body, bytes):
        try:
            return body.decode("utf-8") if body else None
        except UnicodeDecodeError as exc:
            raise ValueError(f"request body bytes are not valid UTF-8: {exc.reason} at offset {exc.start}") from exc
    if isinstance(body, str):
        return body or None
    return canonical_json(body)


def _random_bytes(size: int) -> bytes:
    global _weak_random_warned
    try:
        return os.urandom(size)
    except NotImplementedError:
        # no OS entropy source: Mersenne Twister, predictable
        if not _weak_random_warned:
            _log.warning("os.urandom unavailable, nonces fall back to a non-cryptographic PRNG")
            _weak_random_warned = True
        return random.getrandbits(size * 8).to_bytes(size, "big")


def generate_nonce() -> str:
    """UUID version 4 string."""
    return str(uuid.UUID(bytes=_random_bytes(16), version=4))


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    out: list[str] = []
    while value:
        value, idx = divmod(value, 36)
        out.append(_BASE36[idx])
    return "".join(reversed(out))


def generate_request_id(now_ms: int | None = None) -> str:
    """Correlation id only; not meant to be unguessable."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"req-{now_ms}-{_base36(secrets.randbits(32))}"


class SignatureEngine:
    def __init__(
        self,
        *,
        secret: str,
        crypto: CryptoCapability,
        identity: IdentityStore,
        fingerprint: Callable[[], Awaitable[str]],
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secret = secret
        self._crypto = crypto
        self._identity = identity
        self._fingerprint = fingerprint
        self._clock = clock

    @property
    def crypto(self) -> CryptoCapability:
        return self._crypto

    def generate_nonce(self) -> str:
        return generate_nonce()

    def generate_request_id(self) -> str:
        return generate_request_id(int(self._clock() * 1000))

    def generate_signature(self, body: Body, secret: str | None = None) -> str:
        text = canonical_body(body)
        key = (self._secret if secret is None else secret).encode("utf-8")
        return self._crypto.hmac(key, (text or "").encode("utf-8")).hex()

    async def build_security_envelope(self, body: Body | None = None) -> SecurityEnvelope:
        text = canonical_body(body)
        return SecurityEnvelope(
            timestamp=str(int(self._clock() * 1000)),
            nonce=self.generate_nonce(),
            signature=self.generate_signature(text) if text is not None else "",
            request_id=self.generate_request_id(),
            device_id=self._identity.get_device_id(),
            fingerprint=await self._fingerprint(),
        )
