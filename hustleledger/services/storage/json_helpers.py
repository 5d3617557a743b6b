"""
JSON helpers over a key-value store.

Reads fall back to a default instead of raising: a missing key, an
unreadable backend and a corrupt payload all yield the fallback, so a
damaged entry never blocks the app from starting. Writes report success
as a bool.
"""

import json
from typing import Any

import structlog

from hustleledger.config import get_settings
from hustleledger.services.storage.interface import (
    KeyValueStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


def _warn(event: str, **kwargs) -> None:
    if get_settings().app.is_development:
        logger.warning(event, **kwargs)


async def get_json(storage: KeyValueStorageInterface, key: str, fallback: Any = None) -> Any:
    """Decode the JSON stored under key, or return fallback."""
    try:
        stored = await storage.get_item(key)
    except StorageError as e:
        _warn("storage_get_failed", key=key, error=str(e))
        return fallback
    if stored is None:
        return fallback
    try:
        return json.loads(stored)
    except (TypeError, ValueError) as e:
        _warn("storage_payload_invalid", key=key, error=str(e))
        return fallback


async def set_json(storage: KeyValueStorageInterface, key: str, value: Any) -> bool:
    """Encode value as JSON under key. Returns False if the write failed."""
    try:
        await storage.set_item(key, json.dumps(value))
        return True
    except (StorageError, TypeError, ValueError) as e:
        _warn("storage_set_failed", key=key, error=str(e))
        return False


async def remove_key(storage: KeyValueStorageInterface, key: str) -> bool:
    """Remove key. Returns False if the backend refused."""
    try:
        await storage.remove_item(key)
        return True
    except StorageError as e:
        _warn("storage_remove_failed", key=key, error=str(e))
        return False
