"""
Budget Alert Engine

Applies a transaction (or an edit of one) to a budget's running total
and decides which alert thresholds were crossed by that change.

Rules:
1. A threshold fires at most once per accounting period. The fired set
   only grows within a period; falling back below a threshold does not
   re-arm it.
2. Moving into a new period (a different period key) clears the fired
   set and re-arms every threshold.
3. One update can cross several thresholds (20% -> 120% fires 50, 80
   and 100). They fire in ascending order.
4. Haptic and notification collaborators are injected. A failing
   collaborator is logged and skipped; it never fails the update.

The engine never mutates its inputs. It returns a new Budget that the
caller persists.
"""

import math
from collections.abc import Mapping
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Union

import structlog

from hustleledger.config import get_settings
from hustleledger.models.budget import AlertState, Budget, BudgetCadence, coerce_cadence
from hustleledger.models.coercion import to_finite_float, to_number_list
from hustleledger.services.haptics.interface import HapticsInterface, HapticSeverity
from hustleledger.services.notifications.interface import (
    NotificationInterface,
    NotificationRequest,
)
from hustleledger.services.preferences.budget_notifications import (
    PreferenceStoreInterface,
    parse_boolean,
)
from hustleledger.utils.dates import ensure_datetime, start_of_day, utcnow


logger = structlog.get_logger(__name__)

BUDGET_THRESHOLDS = (50, 80, 100)


class InvalidBudgetError(ValueError):
    """Raised when an operation is called without a budget."""
    pass


def _log_failure(event: str, **kwargs) -> None:
    if get_settings().app.is_development:
        logger.warning(event, **kwargs)


def _round_half_up(value: float, places: int = 0) -> float:
    factor = 10 ** places
    return math.floor(value * factor + 0.5) / factor


# =============================================================================
# PERCENT & PERIOD MATH
# =============================================================================

def calculate_percent_used(spent: Any = 0, limit: Any = 0) -> float:
    """
    Percentage of limit consumed by spent, rounded to two decimals.

    Negative or non-finite inputs count as 0; a limit of 0 means there
    is no budget, so the result is 0.
    """
    safe_spent = to_finite_float(spent, 0.0)
    safe_limit = to_finite_float(limit, 0.0)
    safe_spent = safe_spent if safe_spent > 0 else 0.0
    if safe_limit <= 0:
        return 0.0
    return _round_half_up((safe_spent / safe_limit) * 100, 2)


def _resolve_cadence(cadence: Any) -> BudgetCadence:
    return coerce_cadence(cadence if cadence is not None else "monthly")


def get_period_key(instant: Any = None, cadence: Any = BudgetCadence.MONTHLY) -> str:
    """
    Identify the accounting period containing instant.

    daily -> YYYY-MM-DD, weekly -> ISO YYYY-W##, monthly -> YYYY-MM.
    An unparseable instant yields "invalid".
    """
    moment = utcnow() if instant is None else ensure_datetime(instant)
    if moment is None:
        return "invalid"

    resolved = _resolve_cadence(cadence)
    if resolved is BudgetCadence.DAILY:
        return f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
    if resolved is BudgetCadence.WEEKLY:
        iso_year, iso_week, _ = moment.isocalendar()
        return f"{iso_year:04d}-W{iso_week:02d}"
    return f"{moment.year:04d}-{moment.month:02d}"


def get_period_start(instant: Any = None, cadence: Any = BudgetCadence.MONTHLY) -> datetime:
    """Midnight at the start of the period containing instant (weeks start Monday)."""
    moment = ensure_datetime(instant) or utcnow()
    day = start_of_day(moment)

    resolved = _resolve_cadence(cadence)
    if resolved is BudgetCadence.DAILY:
        return day
    if resolved is BudgetCadence.WEEKLY:
        return day - timedelta(days=day.weekday())
    return day.replace(day=1)


def _alert_state_for_period(budget: Budget, period_key: str) -> AlertState:
    if budget.alerts.period_key == period_key:
        return AlertState(period_key=period_key, triggered=budget.alerts.triggered)
    return AlertState(period_key=period_key, triggered=[])


# =============================================================================
# TRANSACTION POLARITY
# =============================================================================

_INCOME_TYPES = ("income", "credit")
_EXPENSE_TYPES = ("expense", "debit")
_INCOME_DIRECTIONS = ("income", "credit", "incoming", "in")
_EXPENSE_DIRECTIONS = ("expense", "debit", "outgoing", "out")


def _field(transaction: Any, *names: str) -> Any:
    """First non-None value among names (mapping keys or attributes)."""
    for name in names:
        if isinstance(transaction, Mapping):
            value = transaction.get(name)
        else:
            value = getattr(transaction, name, None)
        if value is not None:
            return value
    return None


def _normalized(value: Any) -> str:
    if isinstance(value, Enum):
        value = value.value
    return str(value if value is not None else "").strip().lower()


def _by_type(transaction: Any, amount: float, raw: Optional[float]) -> Optional[float]:
    label = _normalized(_field(transaction, "type", "categoryType", "category_type"))
    if label in _INCOME_TYPES:
        return 0.0
    if label in _EXPENSE_TYPES:
        return amount
    return None


def _by_expense_flag(transaction: Any, amount: float, raw: Optional[float]) -> Optional[float]:
    flag = _field(transaction, "isExpense", "is_expense")
    if isinstance(flag, bool):
        return amount if flag else 0.0
    return None


def _by_direction(transaction: Any, amount: float, raw: Optional[float]) -> Optional[float]:
    label = _normalized(_field(transaction, "direction", "flow", "kind"))
    if label in _INCOME_DIRECTIONS:
        return 0.0
    if label in _EXPENSE_DIRECTIONS:
        return amount
    return None


def _by_sign(transaction: Any, amount: float, raw: Optional[float]) -> Optional[float]:
    if raw is not None and raw < 0:
        return abs(raw)
    return None


# Priority order matters: it decides how historical records with several
# polarity hints are counted.
EXPENSE_RESOLVERS: tuple[Callable[[Any, float, Optional[float]], Optional[float]], ...] = (
    _by_type,
    _by_expense_flag,
    _by_direction,
    _by_sign,
)


def extract_expense_amount(transaction: Any) -> float:
    """
    How much a transaction-like record adds to "spent".

    Resolution order:
    1. type / categoryType: income|credit -> 0, expense|debit -> |amount|
    2. boolean isExpense
    3. direction / flow / kind: income|credit|incoming|in -> 0,
       expense|debit|outgoing|out -> |amount|
    4. a negative raw amount counts as an expense of its magnitude
    5. otherwise |amount|
    """
    if transaction is None:
        return 0.0

    raw = to_finite_float(_field(transaction, "amount"))
    amount = abs(raw) if raw is not None else 0.0

    for resolver in EXPENSE_RESOLVERS:
        resolved = resolver(transaction, amount, raw)
        if resolved is not None:
            return resolved
    return amount


# =============================================================================
# THRESHOLDS & DISPATCH
# =============================================================================

def get_newly_crossed_thresholds(
    previous_percent: float,
    next_percent: float,
    triggered: Optional[Iterable[Any]] = None,
    thresholds: Optional[Iterable[Any]] = None,
) -> list[Union[float, int]]:
    """Thresholds t with previous < t <= next that have not fired yet, ascending."""
    seen = set(to_number_list(triggered))
    ordered = to_number_list(BUDGET_THRESHOLDS if thresholds is None else thresholds)
    return [
        threshold for threshold in ordered
        if threshold not in seen and previous_percent < threshold <= next_percent
    ]


def build_notification_content(
    budget: Budget,
    threshold: Union[float, int],
    percent_used: float,
) -> NotificationRequest:
    """Alert text for one crossed threshold."""
    name = budget.display_name
    rounded = int(_round_half_up(percent_used))

    title = f"{name} budget alert"
    if threshold >= 100:
        body = f"You've exceeded your {name} budget. {rounded}% spent."
    else:
        body = f"You've crossed {threshold}% of your {name} budget ({rounded}% spent)."
    return NotificationRequest(title=title, body=body, fire_at=None, sound=True)


async def _trigger_haptic(
    threshold: Union[float, int],
    haptics: Optional[HapticsInterface],
) -> None:
    if haptics is None:
        return
    severity = HapticSeverity.ERROR if threshold >= 100 else HapticSeverity.WARNING
    try:
        await haptics.notify(severity)
    except Exception as e:
        _log_failure("budget_haptic_failed", threshold=threshold, error=str(e))


async def _trigger_notification(
    threshold: Union[float, int],
    budget: Budget,
    percent_used: float,
    notifications: Optional[NotificationInterface],
) -> None:
    if notifications is None:
        return
    request = build_notification_content(budget, threshold, percent_used)
    try:
        await notifications.schedule(request)
    except Exception as e:
        _log_failure(
            "budget_notification_failed",
            threshold=threshold,
            budget_id=budget.id,
            error=str(e),
        )


async def dispatch_alerts(
    thresholds: Iterable[Union[float, int]],
    budget: Budget,
    percent_used: float,
    haptics: Optional[HapticsInterface] = None,
    notifications: Optional[NotificationInterface] = None,
) -> None:
    """Fire haptic then notification for each threshold, in the given order."""
    for threshold in thresholds:
        await _trigger_haptic(threshold, haptics)
        await _trigger_notification(threshold, budget, percent_used, notifications)


async def resolve_notifications_enabled(preferences: Optional[PreferenceStoreInterface]) -> bool:
    """Read the alert preference; a failed read yields the configured default."""
    default = get_settings().budget.notifications_default
    if preferences is None:
        return default
    try:
        value = await preferences.get_budget_notifications_enabled()
    except Exception as e:
        _log_failure("budget_notification_preference_failed", error=str(e))
        return default
    return parse_boolean(value, default)


# =============================================================================
# PUBLIC OPERATIONS
# =============================================================================

def _as_budget(budget: Any, operation: str) -> Budget:
    if budget is None:
        raise InvalidBudgetError(f"{operation} requires a budget")
    if isinstance(budget, Budget):
        return budget
    if isinstance(budget, Mapping):
        return Budget.model_validate(dict(budget))
    raise InvalidBudgetError(f"{operation} requires a budget, got {type(budget).__name__}")


def _resolve_thresholds(budget: Budget, thresholds: Optional[Iterable[Any]]) -> list:
    if thresholds is not None:
        resolved = to_number_list(thresholds)
    else:
        resolved = to_number_list(budget.thresholds)
    return resolved or to_number_list(get_settings().budget.thresholds_list)


async def update_budget_with_transaction(
    budget: Any,
    transaction: Any = None,
    previous_transaction: Any = None,
    notifications_enabled: Optional[bool] = None,
    haptics: Optional[HapticsInterface] = None,
    notifications: Optional[NotificationInterface] = None,
    preferences: Optional[PreferenceStoreInterface] = None,
    now: Any = None,
    thresholds: Optional[Iterable[Any]] = None,
    record_when_muted: Optional[bool] = None,
) -> Budget:
    """
    Apply a new or edited transaction to a budget.

    Args:
        budget: Budget (or a stored dict) to update
        transaction: the new transaction-like record
        previous_transaction: the record being replaced, for edits
        notifications_enabled: explicit toggle; when not a bool the
            preference store (or the configured default) decides
        haptics / notifications: side-effect collaborators, None = unavailable
        preferences: consulted only when notifications_enabled is not a bool
        now: the instant of the update (period key, timestamps)
        thresholds: alert thresholds; defaults to the budget's own
        record_when_muted: record crossings while muted; defaults to
            BudgetSettings.record_thresholds_when_muted

    Returns:
        A new Budget with spent, percent_used, period_start, alerts and
        last_updated_at recomputed

    Raises:
        InvalidBudgetError: if budget is missing
    """
    current = _as_budget(budget, "update_budget_with_transaction")
    moment = ensure_datetime(now) or utcnow()
    settings = get_settings().budget

    safe_limit = to_finite_float(current.limit, 0.0)
    safe_limit = safe_limit if safe_limit > 0 else 0.0
    safe_spent = to_finite_float(current.spent, 0.0)
    safe_spent = safe_spent if safe_spent >= 0 else 0.0

    stored_percent = to_finite_float(current.percent_used)
    previous_percent = (
        stored_percent
        if stored_percent is not None
        else calculate_percent_used(safe_spent, safe_limit)
    )

    delta = extract_expense_amount(transaction) - extract_expense_amount(previous_transaction)
    next_spent = max(0.0, safe_spent + delta)
    next_percent = calculate_percent_used(next_spent, safe_limit)

    period_key = get_period_key(moment, current.cadence)
    alert_state = _alert_state_for_period(current, period_key)
    newly_crossed = get_newly_crossed_thresholds(
        previous_percent,
        next_percent,
        alert_state.triggered,
        _resolve_thresholds(current, thresholds),
    )

    should_notify = notifications_enabled
    if not isinstance(should_notify, bool):
        should_notify = await resolve_notifications_enabled(preferences)

    record_muted = (
        settings.record_thresholds_when_muted if record_when_muted is None else record_when_muted
    )
    if should_notify or record_muted:
        triggered = to_number_list([*alert_state.triggered, *newly_crossed])
    else:
        triggered = list(alert_state.triggered)

    if should_notify and newly_crossed:
        await dispatch_alerts(newly_crossed, current, next_percent, haptics, notifications)

    return current.model_copy(update={
        "spent": next_spent,
        "percent_used": next_percent,
        "period_start": get_period_start(moment, current.cadence),
        "alerts": AlertState(period_key=period_key, triggered=triggered),
        "last_updated_at": moment,
    })


def reset_budget_thresholds(budget: Any, now: Any = None) -> Budget:
    """
    Clear alert history for the period containing now.

    Raises:
        InvalidBudgetError: if budget is missing
    """
    current = _as_budget(budget, "reset_budget_thresholds")
    moment = ensure_datetime(now) or utcnow()
    return current.model_copy(update={
        "alerts": AlertState(
            period_key=get_period_key(moment, current.cadence),
            triggered=[],
        ),
        "period_start": get_period_start(moment, current.cadence),
    })
