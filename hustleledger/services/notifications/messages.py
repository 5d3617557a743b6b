"""
Recurring transaction notifications.

Builds the two messages the ledger sends for recurring series and
hands them to the host's NotificationInterface:
- "Recurring Transaction Added" when an occurrence is materialized
- "Upcoming Recurring Transaction" the day before the next occurrence

Delivery failures are logged and reported as None; they never abort
the ledger operation that triggered them.
"""

from datetime import datetime, timedelta
from typing import Any, Optional

import structlog

from hustleledger.config import get_settings
from hustleledger.models.coercion import to_finite_float
from hustleledger.models.transaction import RecurringTemplate, Transaction
from hustleledger.services.notifications.interface import (
    NotificationInterface,
    NotificationRequest,
)
from hustleledger.utils.dates import ensure_datetime, utcnow


logger = structlog.get_logger(__name__)


def _log_failure(event: str, **kwargs) -> None:
    if get_settings().app.is_development:
        logger.warning(event, **kwargs)


def format_currency(amount: Any, symbol: Optional[str] = None) -> str:
    """$1,200.00 style amount; non-numeric amounts render as 0.00."""
    symbol = get_settings().recurrence.currency_symbol if symbol is None else symbol
    value = to_finite_float(amount, 0.0)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def format_short_date(value: datetime) -> str:
    """Month abbreviation and day, e.g. "Oct 1"."""
    return f"{value:%b} {value.day}"


def build_recurring_added(instance: Transaction, occurrence: datetime) -> NotificationRequest:
    return NotificationRequest(
        title="Recurring Transaction Added",
        body=f"{instance.title} {format_currency(instance.amount)} added for {format_short_date(occurrence)}",
        fire_at=None,
    )


def reminder_time_for(template: RecurringTemplate) -> Optional[datetime]:
    """The day before next_occurrence, at the configured reminder hour."""
    if template.next_occurrence is None:
        return None
    hour = get_settings().recurrence.reminder_hour
    day_before = template.next_occurrence - timedelta(days=1)
    return day_before.replace(hour=hour, minute=0, second=0, microsecond=0)


async def send_recurring_notification(
    notifications: Optional[NotificationInterface],
    instance: Transaction,
    occurrence: datetime,
) -> Optional[str]:
    """Announce a materialized occurrence immediately."""
    if notifications is None:
        return None
    try:
        return await notifications.schedule(build_recurring_added(instance, occurrence))
    except Exception as e:
        _log_failure("recurring_notification_failed", transaction_id=instance.id, error=str(e))
        return None


async def schedule_reminder_notification(
    notifications: Optional[NotificationInterface],
    template: RecurringTemplate,
    now: Any = None,
) -> Optional[str]:
    """
    Schedule the day-before reminder for template's next occurrence.

    Returns:
        The notification handle, or None when reminders are off, the
        series has no next occurrence, the reminder time has already
        passed, or scheduling failed
    """
    if notifications is None or not template.remind_one_day_before:
        return None
    fire_at = reminder_time_for(template)
    if fire_at is None:
        return None
    if fire_at <= (ensure_datetime(now) or utcnow()):
        return None

    request = NotificationRequest(
        title="Upcoming Recurring Transaction",
        body=f"{template.title} is scheduled for tomorrow",
        fire_at=fire_at,
    )
    try:
        return await notifications.schedule(request)
    except Exception as e:
        _log_failure("reminder_schedule_failed", template_id=template.id, error=str(e))
        return None


async def cancel_scheduled_notification(
    notifications: Optional[NotificationInterface],
    handle: Optional[str],
) -> bool:
    """Cancel a scheduled notification. Returns True if a cancel was issued."""
    if notifications is None or not handle:
        return False
    try:
        await notifications.cancel(handle)
        return True
    except Exception as e:
        _log_failure("notification_cancel_failed", handle=handle, error=str(e))
        return False
