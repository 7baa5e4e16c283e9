from __future__ import annotations

from smipay.adapters.storage import MemoryStore, StorageUnavailableError
from smipay.config import const
from smipay.services.attestation import IdentityStore


class _BrokenStore:
    def get(self, key):
        raise StorageUnavailableError("disk gone")

    def set(self, key, value):
        raise StorageUnavailableError("disk gone")

    def delete(self, key):
        raise StorageUnavailableError("disk gone")

    def clear(self):
        raise StorageUnavailableError("disk gone")


def test_device_id_is_created_once_and_persisted():
    store = MemoryStore()
    identity = IdentityStore(store)
    first = identity.get_device_id()
    assert first.startswith("device-")
    assert store.get(const.DEVICE_ID_KEY) == first
    assert identity.get_device_id() == first
    assert IdentityStore(store).get_device_id() == first


def test_clearing_storage_yields_new_id():
    store = MemoryStore()
    first = IdentityStore(store).get_device_id()
    store.clear()
    second = IdentityStore(store).get_device_id()
    assert second != first
    assert second.startswith("device-")


def test_reset_mints_new_id():
    identity = IdentityStore(MemoryStore())
    first = identity.get_device_id()
    identity.reset()
    assert identity.get_device_id() != first


def test_no_storage_returns_sentinel():
    assert IdentityStore(None).get_device_id() == const.SERVER_DEVICE_ID
    assert IdentityStore(None).identity().device_id == const.SERVER_DEVICE_ID


def test_unavailable_storage_returns_sentinel(caplog):
    with caplog.at_level("WARNING", logger="smipay.attest.identity"):
        assert IdentityStore(_BrokenStore()).get_device_id() == const.SERVER_DEVICE_ID
    assert "sentinel" in caplog.text
