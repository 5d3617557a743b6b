"""
Engines Package

Pure computations over ledger records:
- recurrence: next-date arithmetic and catch-up of missed occurrences
- budget: spend totals, period keys and once-per-period threshold alerts
"""

from hustleledger.engine.budget import (
    BUDGET_THRESHOLDS,
    InvalidBudgetError,
    calculate_percent_used,
    extract_expense_amount,
    get_newly_crossed_thresholds,
    get_period_key,
    get_period_start,
    reset_budget_thresholds,
    resolve_notifications_enabled,
    update_budget_with_transaction,
)
from hustleledger.engine.recurrence import (
    RECURRENCE_TYPES,
    OccurrenceBatch,
    calculate_next_date,
    format_recurrence_label,
    generate_occurrences_until,
    is_recurrence_finished,
)

__all__ = [
    # Budget engine
    "BUDGET_THRESHOLDS",
    "InvalidBudgetError",
    "calculate_percent_used",
    "extract_expense_amount",
    "get_newly_crossed_thresholds",
    "get_period_key",
    "get_period_start",
    "reset_budget_thresholds",
    "resolve_notifications_enabled",
    "update_budget_with_transaction",
    # Recurrence engine
    "RECURRENCE_TYPES",
    "OccurrenceBatch",
    "calculate_next_date",
    "format_recurrence_label",
    "generate_occurrences_until",
    "is_recurrence_finished",
]
