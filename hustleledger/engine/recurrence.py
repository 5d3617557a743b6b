"""
Recurrence Engine

Computes when a recurring series posts next and catches up on every
occurrence that fell due while the app was closed.

Calendar rules (monthly, yearly) use dateutil's relativedelta, which
clamps to the last day of a shorter month: Jan 31 + 1 month is Feb 28/29.
Day-based rules add whole days. Every step moves forward by at least one
day, so the catch-up walk always terminates.
"""

from datetime import datetime, timedelta
from typing import Any, NamedTuple, Optional

from dateutil.relativedelta import relativedelta

from hustleledger.models.coercion import coerce_interval_days
from hustleledger.models.transaction import RecurrenceRule, RecurringTemplate
from hustleledger.utils.dates import ensure_datetime, start_of_day, utcnow


RECURRENCE_TYPES = tuple(rule.value for rule in RecurrenceRule)

_STEPS = {
    RecurrenceRule.DAILY: relativedelta(days=1),
    RecurrenceRule.WEEKLY: relativedelta(weeks=1),
    RecurrenceRule.BIWEEKLY: relativedelta(weeks=2),
    RecurrenceRule.MONTHLY: relativedelta(months=1),
    RecurrenceRule.YEARLY: relativedelta(years=1),
}

_LABELS = {
    RecurrenceRule.DAILY: "Repeats daily",
    RecurrenceRule.WEEKLY: "Repeats weekly",
    RecurrenceRule.BIWEEKLY: "Repeats every 2 weeks",
    RecurrenceRule.MONTHLY: "Repeats monthly",
    RecurrenceRule.YEARLY: "Repeats yearly",
}


class OccurrenceBatch(NamedTuple):
    """Occurrences due up to a reference instant and the series' new pointer."""
    occurrences: list[datetime]
    next_occurrence: Optional[datetime]


def _parse_rule(rule: Any) -> Optional[RecurrenceRule]:
    if isinstance(rule, RecurrenceRule):
        return rule
    if not rule:
        return None
    try:
        return RecurrenceRule(str(rule).strip().lower())
    except ValueError:
        return None


def calculate_next_date(
    from_date: Any,
    rule: Any,
    interval_days: Any = None,
) -> Optional[datetime]:
    """
    Advance from_date by exactly one step of rule.

    Args:
        from_date: datetime, date or ISO-8601 string
        rule: a RecurrenceRule or its string value
        interval_days: step in days for the custom rule; anything that is
            not a positive integer counts as 1

    Returns:
        The next occurrence, or None if the date or rule is missing,
        unparseable or unknown
    """
    if not from_date or not rule:
        return None
    base = ensure_datetime(from_date)
    if base is None:
        return None

    parsed_rule = _parse_rule(rule)
    if parsed_rule is None:
        return None
    if parsed_rule is RecurrenceRule.CUSTOM:
        return base + timedelta(days=coerce_interval_days(interval_days))
    return base + _STEPS[parsed_rule]


def format_recurrence_label(template: Optional[RecurringTemplate]) -> str:
    """Human phrase describing how often a series repeats."""
    if template is None or not template.is_recurring:
        return "Not recurring"
    if template.recurrence is RecurrenceRule.CUSTOM:
        interval = template.interval_days or 1
        if interval == 1:
            return "Repeats every day"
        return f"Repeats every {interval} days"
    return _LABELS.get(template.recurrence, "Recurring")


def is_recurrence_finished(
    template: Optional[RecurringTemplate],
    reference: Any = None,
) -> bool:
    """True if the series is off or its end date is before the reference day."""
    if template is None or not template.is_recurring:
        return True
    if template.end_date is None:
        return False
    reference_dt = ensure_datetime(reference) or utcnow()
    return template.end_date < start_of_day(reference_dt)


def generate_occurrences_until(
    template: Optional[RecurringTemplate],
    reference: Any = None,
) -> OccurrenceBatch:
    """
    Collect every occurrence due on or before the reference day.

    Starting at template.next_occurrence, occurrences are emitted in
    chronological order while they fall on or before the start of the
    reference day. The first candidate beyond that becomes the new
    next_occurrence. A candidate past end_date exhausts the series and
    next_occurrence becomes None.
    """
    if template is None or not template.is_recurring or template.next_occurrence is None:
        return OccurrenceBatch([], None)

    limit = start_of_day(ensure_datetime(reference) or utcnow())
    end = template.end_date
    current: Optional[datetime] = template.next_occurrence
    occurrences: list[datetime] = []

    while current is not None and current <= limit:
        if end is not None and current > end:
            break
        occurrences.append(current)
        candidate = calculate_next_date(current, template.recurrence, template.interval_days)
        if candidate is None or (end is not None and candidate > end):
            current = None
            break
        current = candidate

    if current is not None and end is not None and current > end:
        current = None

    return OccurrenceBatch(occurrences, current)
