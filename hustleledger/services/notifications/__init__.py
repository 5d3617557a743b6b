"""Notification collaborator package."""

from hustleledger.services.notifications.interface import (
    NotificationError,
    NotificationInterface,
    NotificationRequest,
)
from hustleledger.services.notifications.messages import (
    cancel_scheduled_notification,
    format_currency,
    reminder_time_for,
    schedule_reminder_notification,
    send_recurring_notification,
)

__all__ = [
    "NotificationError",
    "NotificationInterface",
    "NotificationRequest",
    "cancel_scheduled_notification",
    "format_currency",
    "reminder_time_for",
    "schedule_reminder_notification",
    "send_recurring_notification",
]
