"""
Audit Logger

Every ledger mutation and alert decision is logged. This provides:
1. Traceability of budget totals
2. A history of which alerts fired and which were muted
3. Debugging information when a ledger write fails

The audit logger:
- Is async so it composes with the ledger's await points
- Gracefully handles failures (a broken audit store never fails a ledger write)
- Supports correlation IDs to group the events of one operation
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from hustleledger.models.audit import AuditEvent, AuditEventBuilder
from hustleledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit store, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("hustleledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_added(
        self,
        transaction_id: str,
        kind: str,
        amount: float,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_added(
            transaction_id=transaction_id,
            kind=kind,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_transaction_updated(
        self,
        transaction_id: str,
        kind: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_updated(
            transaction_id=transaction_id,
            kind=kind,
            fields=fields,
            correlation_id=correlation_id,
        ))

    async def log_transaction_deleted(
        self,
        transaction_id: str,
        mode: str,
        removed_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            mode=mode,
            removed_count=removed_count,
            correlation_id=correlation_id,
        ))

    async def log_occurrences_materialized(
        self,
        template_id: str,
        occurrences: list[datetime],
        next_occurrence: Optional[datetime],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        if next_occurrence is None:
            await self.log(AuditEventBuilder.series_finished(
                template_id=template_id,
                correlation_id=correlation_id,
            ))
        if occurrences:
            await self.log(AuditEventBuilder.occurrences_materialized(
                template_id=template_id,
                occurrences=occurrences,
                next_occurrence=next_occurrence,
                correlation_id=correlation_id,
            ))

    async def log_budget_updated(
        self,
        budget_id: str,
        spent: float,
        percent_used: float,
        period_key: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.budget_updated(
            budget_id=budget_id,
            spent=spent,
            percent_used=percent_used,
            period_key=period_key,
            correlation_id=correlation_id,
        ))

    async def log_threshold_crossed(
        self,
        budget_id: str,
        budget_name: str,
        threshold: float,
        percent_used: float,
        notified: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.threshold_crossed(
            budget_id=budget_id,
            budget_name=budget_name,
            threshold=threshold,
            percent_used=percent_used,
            notified=notified,
            correlation_id=correlation_id,
        ))

    async def log_thresholds_reset(
        self,
        budget_id: str,
        period_key: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.thresholds_reset(
            budget_id=budget_id,
            period_key=period_key,
            correlation_id=correlation_id,
        ))

    async def log_reminder_scheduled(
        self,
        template_id: str,
        handle: str,
        fire_at: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.reminder_scheduled(
            template_id=template_id,
            handle=handle,
            fire_at=fire_at,
            correlation_id=correlation_id,
        ))

    async def log_reminder_cancelled(
        self,
        template_id: str,
        handle: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.reminder_cancelled(
            template_id=template_id,
            handle=handle,
            correlation_id=correlation_id,
        ))

    async def log_preference_changed(
        self,
        name: str,
        value: Any,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.preference_changed(
            name=name,
            value=value,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a ledger operation (an add, a recurring
    sweep) and pass it through everything that operation touches.
    """
    return uuid4()
