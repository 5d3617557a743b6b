"""Services package."""

from hustleledger.services.budgets import BudgetRepository
from hustleledger.services.haptics import (
    HapticsError,
    HapticsInterface,
    HapticSeverity,
)
from hustleledger.services.notifications import (
    NotificationError,
    NotificationInterface,
    NotificationRequest,
)
from hustleledger.services.preferences import (
    BudgetNotificationPreferences,
    PreferenceStoreInterface,
    RecurringNotificationPreference,
)
from hustleledger.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryKeyValueStorage,
    JsonFileKeyValueStorage,
    KeyValueStorageInterface,
    StorageError,
    StorageReadError,
    StorageWriteError,
)

__all__ = [
    # Budgets
    "BudgetRepository",
    # Haptics
    "HapticsError",
    "HapticsInterface",
    "HapticSeverity",
    # Notifications
    "NotificationError",
    "NotificationInterface",
    "NotificationRequest",
    # Preferences
    "BudgetNotificationPreferences",
    "PreferenceStoreInterface",
    "RecurringNotificationPreference",
    # Storage
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryKeyValueStorage",
    "JsonFileKeyValueStorage",
    "KeyValueStorageInterface",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
]
