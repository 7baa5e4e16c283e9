"""Digest/HMAC capabilities selected once per attestation context.

Three implementations share one small interface:

* :class:`CryptographyCapability` - the native path backed by OpenSSL through
  :mod:`cryptography`;
* :class:`HashlibCapability` - the portable path using the interpreter's own
  :mod:`hashlib`/:mod:`hmac`;
* :class:`WeakHashCapability` - a 32-bit rolling string hash used only when
  neither of the above passes its self-test.  Its ``hmac`` is a plain keyed
  hash ``h(message || key)`` and is **not** a MAC.

:func:`detect_crypto` runs an RFC 4231 known-answer test against each
candidate in order and returns the first one that passes, so a broken or
FIPS-restricted backend is never silently used.
"""
from __future__ import annotations

import hashlib
import hmac as std_hmac
import logging
from typing import Iterable, Protocol, Sequence, runtime_checkable

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import hmac as crypto_hmac

__all__ = [
    "CryptoCapability",
    "CryptographyCapability",
    "HashlibCapability",
    "WeakHashCapability",
    "CryptoUnavailableError",
    "detect_crypto",
    "weak_hash",
]

_log = logging.getLogger("smipay.attest.crypto")

# RFC 4231, test case 2
_KAT_KEY = b"Jefe"
_KAT_MESSAGE = b"what do ya want for nothing?"
_KAT_HMAC = bytes.fromhex("5bdcc146bf60754e6a042426089575c75a003f089d2739839dec58b964ec3843")
# FIPS 180-2, "abc"
_KAT_DIGEST = bytes.fromhex("ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad")


class CryptoUnavailableError(RuntimeError):
    """Raised when a strong digest/HMAC primitive is required but none works."""


@runtime_checkable
class CryptoCapability(Protocol):
    name: str
    strong: bool

    def digest(self, data: bytes) -> bytes: ...

    def hmac(self, key: bytes, data: bytes) -> bytes: ...


class CryptographyCapability:
    name = "cryptography"
    strong = True

    def digest(self, data: bytes) -> bytes:
        h = hashes.Hash(hashes.SHA256())
        h.update(data)
        return h.finalize()

    def hmac(self, key: bytes, data: bytes) -> bytes:
        h = crypto_hmac.HMAC(key, hashes.SHA256())
        h.update(data)
        return h.finalize()


class HashlibCapability:
    name = "hashlib"
    strong = True

    def digest(self, data: bytes) -> bytes:
        return hashlib.sha256(data).digest()

    def hmac(self, key: bytes, data: bytes) -> bytes:
        return std_hmac.new(key, data, hashlib.sha256).digest()


def _code_units(data: bytes) -> Sequence[int]:
    # UTF-8 text is hashed per UTF-16 code unit, matching the web client's charCodeAt walk
    try:
        encoded = data.decode("utf-8").encode("utf-16-le")
    except UnicodeDecodeError:
        return data
    return [int.from_bytes(encoded[i:i + 2], "little") for i in range(0, len(encoded), 2)]


def weak_hash(data: bytes) -> int:
    """31-multiplier rolling hash folded to signed 32 bits, returned as its absolute value."""
    value = 0
    for unit in _code_units(data):
        value = (value * 31 + unit) & 0xFFFFFFFF
    if value & 0x80000000:
        value -= 1 << 32
    return abs(value)


class WeakHashCapability:
    name = "weak"
    strong = False

    def digest(self, data: bytes) -> bytes:
        return weak_hash(data).to_bytes(4, "big")

    def hmac(self, key: bytes, data: bytes) -> bytes:
        return self.digest(data + key)


_CANDIDATES = {
    "cryptography": CryptographyCapability,
    "hashlib": HashlibCapability,
    "weak": WeakHashCapability,
}


def _passes_self_test(capability: CryptoCapability) -> bool:
    if not capability.strong:
        return True
    try:
        return capability.digest(b"abc") == _KAT_DIGEST and capability.hmac(_KAT_KEY, _KAT_MESSAGE) == _KAT_HMAC
    except (UnsupportedAlgorithm, ValueError) as exc:
        _log.warning("crypto backend %s failed self-test: %s", capability.name, exc)
        return False


def _order(preference: str) -> Iterable[str]:
    default = ("cryptography", "hashlib", "weak")
    if preference == "auto":
        return default
    if preference not in _CANDIDATES:
        raise ValueError(f"unknown crypto backend '{preference}'")
    return (preference,) + tuple(name for name in default if name != preference)


def detect_crypto(preference: str = "auto", *, require_strong: bool = False) -> CryptoCapability:
    """Return the first capability (in preference order) that passes its self-test."""
    for name in _order(preference):
        capability = _CANDIDATES[name]()
        if require_strong and not capability.strong:
            continue
        if _passes_self_test(capability):
            if capability.strong:
                _log.info("crypto backend selected: %s", capability.name)
            else:
                _log.warning("crypto backend degraded: using non-cryptographic %s hash for signing", capability.name)
            return capability
    raise CryptoUnavailableError("no strong digest/HMAC primitive is available")
