"""
Abstract Storage Interface

The mobile client persists everything through a flat string key-value
store. We mirror that contract here so that:
1. The engines never depend on a storage backend
2. Tests can run against an in-memory store
3. A host can plug in its own backend (device storage, a file, a DB)

Values are strings; callers that store structured data use the JSON
helpers in hustleledger.services.storage.json_helpers.
"""

from abc import ABC, abstractmethod
from typing import Optional

from hustleledger.models.audit import AuditEvent


class KeyValueStorageInterface(ABC):
    """
    Abstract interface for key-value storage.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def get_item(self, key: str) -> Optional[str]:
        """
        Read the value stored under key.

        Returns:
            The stored string, or None if the key is absent

        Raises:
            StorageReadError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """
        Store value under key, replacing any previous value.

        Raises:
            StorageWriteError: If the backend cannot be written
        """
        pass

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """
        Remove key. Removing an absent key is not an error.

        Raises:
            StorageWriteError: If the backend cannot be written
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific record, in chronological order.
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageReadError(StorageError):
    """Stored data could not be read."""
    pass


class StorageWriteError(StorageError):
    """Data could not be written to storage."""
    pass
