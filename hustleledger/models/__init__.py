"""
Data Models Package

This package contains all Pydantic models used by HustleLedger.
Records read from storage are validated through these models before
either engine sees them.
"""

from hustleledger.models.transaction import (
    LedgerModel,
    LedgerRecord,
    RecurrenceRule,
    RecurringTemplate,
    Transaction,
    TransactionType,
    create_id,
    parse_ledger_record,
)
from hustleledger.models.budget import (
    AlertState,
    Budget,
    BudgetCadence,
    normalize_thresholds,
)
from hustleledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "LedgerModel",
    "LedgerRecord",
    "RecurrenceRule",
    "RecurringTemplate",
    "Transaction",
    "TransactionType",
    "create_id",
    "parse_ledger_record",
    # Budget models
    "AlertState",
    "Budget",
    "BudgetCadence",
    "normalize_thresholds",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
