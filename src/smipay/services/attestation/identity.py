"""Installation-scoped device identity."""
from __future__ import annotations

import logging
import uuid

from smipay.adapters.storage import KeyValueStore, StorageUnavailableError
from smipay.config import const
from smipay.domain import DeviceIdentity

__all__ = ["IdentityStore", "new_device_id"]

_log = logging.getLogger("smipay.attest.identity")


def new_device_id() -> str:
    return f"device-{uuid.uuid4()}"


class IdentityStore:
    """Returns the persisted device id, creating it on first use.

    Without durable storage (``store is None``, e.g. a server-side render or a
    batch job) the fixed :data:`~smipay.config.const.SERVER_DEVICE_ID` sentinel
    is returned and nothing is written.
    """

    def __init__(self, store: KeyValueStore | None) -> None:
        self._store = store

    def get_device_id(self) -> str:
        if self._store is None:
            return const.SERVER_DEVICE_ID
        try:
            device_id = self._store.get(const.DEVICE_ID_KEY)
            if not device_id:
                device_id = new_device_id()
                self._store.set(const.DEVICE_ID_KEY, device_id)
                _log.info("created device identity")
        except StorageUnavailableError as exc:
            _log.warning("durable storage unavailable, using sentinel device id: %s", exc)
            return const.SERVER_DEVICE_ID
        return device_id

    def identity(self) -> DeviceIdentity:
        return DeviceIdentity(device_id=self.get_device_id())

    def reset(self) -> None:
        """Forget the persisted id; the next lookup mints a new one."""
        if self._store is not None:
            self._store.delete(const.DEVICE_ID_KEY)
            _log.info("device identity reset")
