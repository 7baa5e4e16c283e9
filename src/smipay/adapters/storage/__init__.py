from .base import KeyValueStore, StorageUnavailableError
from .json_file import JsonFileStore
from .keyring_store import KeyringStore, KeyringUnavailableError
from .memory import MemoryStore

__all__ = [
    "KeyValueStore",
    "StorageUnavailableError",
    "JsonFileStore",
    "KeyringStore",
    "KeyringUnavailableError",
    "MemoryStore",
]
