"""Session-scoped environmental fingerprint."""
from __future__ import annotations

import logging

from smipay.adapters.storage import KeyValueStore
from smipay.config import const
from smipay.domain import DeviceFingerprint

from .crypto import CryptoCapability, weak_hash
from .device import DeviceEnvironment

__all__ = ["FingerprintGenerator"]

_log = logging.getLogger("smipay.attest.fingerprint")


class FingerprintGenerator:
    """Hash of the device environment, computed at most once per session.

    The value is cached in the session (ephemeral) store so a new session over
    a changed environment yields a new fingerprint.
    """

    def __init__(
        self,
        environment: DeviceEnvironment | None,
        session_store: KeyValueStore,
        crypto: CryptoCapability,
    ) -> None:
        self._environment = environment
        self._session = session_store
        self._crypto = crypto

    def canonical_string(self) -> str:
        if self._environment is None:
            raise RuntimeError("no device environment in a server context")
        return "|".join(self._environment.components())

    def compute(self) -> str:
        material = self.canonical_string().encode("utf-8")
        if self._crypto.strong:
            suffix = self._crypto.digest(material).hex()[:16]
        else:
            suffix = format(weak_hash(material), "x")
        return f"fp-{suffix}"

    async def get_fingerprint(self) -> str:
        if self._environment is None:
            return const.SERVER_FINGERPRINT
        cached = self._session.get(const.FINGERPRINT_KEY)
        if cached:
            return cached
        fingerprint = self.compute()
        self._session.set(const.FINGERPRINT_KEY, fingerprint)
        _log.debug("computed device fingerprint via %s", self._crypto.name)
        return fingerprint

    async def try_get_fingerprint(self) -> str:
        """Like :meth:`get_fingerprint` but returns ``""`` when computation fails."""
        try:
            return await self.get_fingerprint()
        except Exception:
            _log.warning("fingerprint computation failed, omitting header", exc_info=True)
            return ""

    async def fingerprint(self) -> DeviceFingerprint:
        return DeviceFingerprint(fingerprint=await self.get_fingerprint())
