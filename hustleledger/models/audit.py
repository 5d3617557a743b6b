"""
Audit Models for HustleLedger

Every ledger mutation and every alert decision is recorded as an
AuditEvent. This gives:
1. Traceability of what changed a budget total
2. A record of which alerts fired (and which were muted)
3. Debugging information when a write fails

Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    OCCURRENCES_MATERIALIZED = "occurrences_materialized"
    SERIES_FINISHED = "series_finished"

    # Budgets
    BUDGET_UPDATED = "budget_updated"
    THRESHOLD_CROSSED = "threshold_crossed"
    THRESHOLDS_RESET = "thresholds_reset"

    # Reminders and preferences
    REMINDER_SCHEDULED = "reminder_scheduled"
    REMINDER_CANCELLED = "reminder_cancelled"
    PREFERENCE_CHANGED = "preference_changed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """A single audit event."""

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what record is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'template', 'budget')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the record this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one recurring sweep)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(tx_id, "expense", 42.0)
        event = AuditEventBuilder.threshold_crossed(budget_id, "Dining", 80, 81.5)
    """

    @staticmethod
    def transaction_added(
        transaction_id: str,
        kind: str,
        amount: float,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type=kind,
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Added {kind} {transaction_id}",
            details={"amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def transaction_updated(
        transaction_id: str,
        kind: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type=kind,
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Updated {kind} {transaction_id}",
            details={"fields": sorted(fields)},
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        mode: str,
        removed_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Deleted {removed_count} record(s) ({mode})",
            details={"mode": mode, "removed_count": removed_count},
            is_user_action=True,
        )

    @staticmethod
    def occurrences_materialized(
        template_id: str,
        occurrences: list[datetime],
        next_occurrence: Optional[datetime],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCCURRENCES_MATERIALIZED,
            entity_type="template",
            entity_id=template_id,
            correlation_id=correlation_id,
            description=f"Materialized {len(occurrences)} occurrence(s)",
            details={
                "occurrences": [value.isoformat() for value in occurrences],
                "next_occurrence": next_occurrence.isoformat() if next_occurrence else None,
            },
        )

    @staticmethod
    def series_finished(
        template_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SERIES_FINISHED,
            entity_type="template",
            entity_id=template_id,
            correlation_id=correlation_id,
            description="Recurring series has no further occurrences",
        )

    @staticmethod
    def budget_updated(
        budget_id: str,
        spent: float,
        percent_used: float,
        period_key: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_UPDATED,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Budget at {percent_used}% for {period_key}",
            details={"spent": spent, "percent_used": percent_used, "period_key": period_key},
        )

    @staticmethod
    def threshold_crossed(
        budget_id: str,
        budget_name: str,
        threshold: float,
        percent_used: float,
        notified: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.THRESHOLD_CROSSED,
            severity=AuditSeverity.WARNING,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"{budget_name} crossed {threshold}%",
            details={
                "threshold": threshold,
                "percent_used": percent_used,
                "notified": notified,
            },
        )

    @staticmethod
    def thresholds_reset(
        budget_id: str,
        period_key: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.THRESHOLDS_RESET,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Alert history cleared for {period_key}",
            details={"period_key": period_key},
            is_user_action=True,
        )

    @staticmethod
    def reminder_scheduled(
        template_id: str,
        handle: str,
        fire_at: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMINDER_SCHEDULED,
            entity_type="template",
            entity_id=template_id,
            correlation_id=correlation_id,
            description="Day-before reminder scheduled",
            details={"handle": handle, "fire_at": fire_at.isoformat()},
        )

    @staticmethod
    def reminder_cancelled(
        template_id: str,
        handle: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMINDER_CANCELLED,
            entity_type="template",
            entity_id=template_id,
            correlation_id=correlation_id,
            description="Day-before reminder cancelled",
            details={"handle": handle},
        )

    @staticmethod
    def preference_changed(
        name: str,
        value: Any,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PREFERENCE_CHANGED,
            entity_type="preference",
            entity_id=name,
            correlation_id=correlation_id,
            description=f"Preference {name} set to {value}",
            details={"value": value},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
