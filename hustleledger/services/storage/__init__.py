"""
Storage Services Package

Provides the abstract key-value and audit storage interfaces and the
bundled implementations (in-memory and a JSON file on disk).
"""

from hustleledger.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStorageInterface,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from hustleledger.services.storage.json_file import JsonFileKeyValueStorage
from hustleledger.services.storage.json_helpers import get_json, remove_key, set_json
from hustleledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryKeyValueStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStorageInterface",
    # Exceptions
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryKeyValueStorage",
    "JsonFileKeyValueStorage",
    # Helpers
    "get_json",
    "remove_key",
    "set_json",
]
