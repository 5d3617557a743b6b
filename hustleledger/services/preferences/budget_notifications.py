"""
Notification Preferences

Two user toggles are persisted in the key-value store:
- budget notifications (read by the budget engine when a caller does not
  say explicitly whether to notify)
- recurring-transaction notifications (read by the ledger orchestrator)

Both default to enabled when nothing is stored. Reads never raise: an
unreadable preference falls back to the default. Writes do raise, so the
settings screen can roll its toggle back.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import structlog

from hustleledger.config import get_settings
from hustleledger.services.storage.interface import (
    KeyValueStorageInterface,
    StorageError,
)
from hustleledger.services.storage.json_helpers import get_json, set_json


logger = structlog.get_logger(__name__)

_TRUE_STRINGS = ("true", "1", "yes", "on")
_FALSE_STRINGS = ("false", "0", "no", "off")


def parse_boolean(value: Any, default: bool = True) -> bool:
    """
    Interpret a stored preference value.

    Accepts booleans, numbers (0 is False) and the strings
    true/1/yes/on and false/0/no/off in any case. Anything else yields
    default.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_STRINGS:
            return True
        if normalized in _FALSE_STRINGS:
            return False
    return default


class PreferenceStoreInterface(ABC):
    """What the budget engine needs to know about user preferences."""

    @abstractmethod
    async def get_budget_notifications_enabled(self) -> bool:
        """Whether budget alerts should notify. True when unset."""
        pass


class BudgetNotificationPreferences(PreferenceStoreInterface):
    """Budget alert toggle persisted in a key-value store."""

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        key: Optional[str] = None,
        default: Optional[bool] = None,
    ):
        self._storage = storage
        self._key = key or get_settings().storage.budget_notifications_key
        self._default = (
            get_settings().budget.notifications_default if default is None else default
        )

    async def get_budget_notifications_enabled(self, default: Optional[bool] = None) -> bool:
        fallback = self._default if default is None else default
        try:
            stored = await self._storage.get_item(self._key)
        except StorageError as e:
            if get_settings().app.is_development:
                logger.warning(
                    "budget_notification_preference_read_failed",
                    key=self._key,
                    error=str(e),
                )
            return fallback
        if stored is None:
            return fallback
        return parse_boolean(stored, fallback)

    async def set_budget_notifications_enabled(self, enabled: bool) -> None:
        """Persist the toggle. Raises StorageError if the write fails."""
        try:
            await self._storage.set_item(self._key, "true" if enabled else "false")
        except StorageError as e:
            if get_settings().app.is_development:
                logger.warning(
                    "budget_notification_preference_write_failed",
                    key=self._key,
                    error=str(e),
                )
            raise

    async def reset_budget_notifications_preference(self, default: bool = True) -> None:
        """Forget the stored choice (default True) or pin it off."""
        if default:
            await self._storage.remove_item(self._key)
            return
        await self._storage.set_item(self._key, "false")


class RecurringNotificationPreference:
    """Recurring-transaction notification toggle (stored as a JSON bool)."""

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        key: Optional[str] = None,
    ):
        self._storage = storage
        self._key = key or get_settings().storage.recurring_notifications_key

    async def is_enabled(self) -> bool:
        stored = await get_json(self._storage, self._key, True)
        return stored is not False

    async def set_enabled(self, enabled: bool) -> bool:
        return await set_json(self._storage, self._key, bool(enabled))
