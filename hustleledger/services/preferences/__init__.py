"""User preference services."""

from hustleledger.services.preferences.budget_notifications import (
    BudgetNotificationPreferences,
    PreferenceStoreInterface,
    RecurringNotificationPreference,
    parse_boolean,
)

__all__ = [
    "BudgetNotificationPreferences",
    "PreferenceStoreInterface",
    "RecurringNotificationPreference",
    "parse_boolean",
]
