"""
Ledger Orchestrator for HustleLedger

This module ties the engines to storage and the host collaborators and
defines the end-to-end ledger flows:
1. Add (input -> template + first instance -> reminder -> budgets)
2. Update / delete (merge or remove -> budget delta -> reminder resync)
3. Recurring sweep (catch up missed occurrences -> notify -> budgets)

DESIGN DECISION: Templates are stored next to instances but are never
shown or summed. Only instances reach the Budget Alert Engine, and an
edit or delete feeds the engine the replaced instance as
previous_transaction so the running total stays consistent.

All mutations run under one asyncio.Lock, so a recurring sweep and a
user edit can never interleave their read-modify-write of the store.
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, Optional, Union
from uuid import UUID

import structlog
from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from hustleledger.audit import AuditLogger, create_correlation_id
from hustleledger.config import get_settings
from hustleledger.engine import (
    calculate_next_date,
    generate_occurrences_until,
    reset_budget_thresholds,
    resolve_notifications_enabled,
    update_budget_with_transaction,
)
from hustleledger.models import (
    Budget,
    RecurringTemplate,
    Transaction,
    parse_ledger_record,
)
from hustleledger.services.budgets import BudgetRepository
from hustleledger.services.haptics import HapticsInterface
from hustleledger.services.notifications import (
    NotificationInterface,
    cancel_scheduled_notification,
    reminder_time_for,
    schedule_reminder_notification,
    send_recurring_notification,
)
from hustleledger.services.preferences import (
    PreferenceStoreInterface,
    RecurringNotificationPreference,
)
from hustleledger.services.storage import KeyValueStorageInterface
from hustleledger.services.storage.json_helpers import get_json, set_json
from hustleledger.utils.dates import ensure_datetime, utcnow


logger = structlog.get_logger(__name__)

LedgerItem = Union[Transaction, RecurringTemplate]

_PROTECTED_FIELDS = ("id", "kind")


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class TransactionNotFoundError(LedgerError):
    """Raised when an update or delete names an unknown record."""
    pass


def _camel_keys(data: dict) -> dict:
    """Normalize input keys to the stored camelCase names."""
    return {
        (to_camel(key) if "_" in key else key): value
        for key, value in data.items()
        if key not in _PROTECTED_FIELDS
    }


def _wants_recurrence(data: dict) -> bool:
    return bool(data.get("isRecurring")) and bool(data.get("recurrence"))


def _sort_newest_first(records: list[LedgerItem]) -> list[LedgerItem]:
    return sorted(records, key=lambda record: record.date, reverse=True)


class LedgerOrchestrator:
    """
    Owns the stored ledger and applies every mutation to it.

    Collaborators are injected; None means the feature is unavailable
    (no reminders, no haptics, no budget tracking, no audit trail).
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        haptics: Optional[HapticsInterface] = None,
        notifications: Optional[NotificationInterface] = None,
        preferences: Optional[PreferenceStoreInterface] = None,
        recurring_preference: Optional[RecurringNotificationPreference] = None,
        budget_repository: Optional[BudgetRepository] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._storage = storage
        self._haptics = haptics
        self._notifications = notifications
        self._preferences = preferences
        self._recurring_preference = (
            recurring_preference or RecurringNotificationPreference(storage)
        )
        self._budgets = budget_repository
        self._audit_logger = audit_logger
        self._clock = clock or utcnow
        self._settings = get_settings().storage

        self._lock = asyncio.Lock()
        self._records: Optional[list[LedgerItem]] = None

    # =========================================================================
    # LOADING & PERSISTENCE
    # =========================================================================

    async def load(self) -> list[LedgerItem]:
        """Read stored records (instances and templates), skipping corrupt entries."""
        stored = await get_json(self._storage, self._settings.transactions_key, [])
        records: list[LedgerItem] = []
        if isinstance(stored, list):
            for entry in stored:
                if not isinstance(entry, dict):
                    continue
                try:
                    records.append(parse_ledger_record(entry))
                except ValidationError as e:
                    logger.debug("ledger_entry_skipped", error=str(e))
        self._records = records
        return list(records)

    async def load_budgets(self) -> list[Budget]:
        if self._budgets is None:
            return []
        return await self._budgets.load_budgets()

    async def _ensure_loaded(self) -> list[LedgerItem]:
        if self._records is None:
            await self.load()
        return self._records

    async def _persist(self, records: list[LedgerItem]) -> bool:
        ordered = _sort_newest_first(records)
        self._records = ordered
        saved = await set_json(
            self._storage,
            self._settings.transactions_key,
            [record.to_storage_dict() for record in ordered],
        )
        if not saved and self._audit_logger:
            await self._audit_logger.log_error(
                error_type="ledger_write_failed",
                error_message="Ledger could not be persisted; changes are kept in memory",
                details={"records": len(ordered)},
            )
        return saved

    async def visible_transactions(self) -> list[Transaction]:
        """Ledger lines only (no templates), newest first."""
        records = await self._ensure_loaded()
        return _sort_newest_first([r for r in records if isinstance(r, Transaction)])

    async def get_transaction(self, transaction_id: str) -> Optional[LedgerItem]:
        records = await self._ensure_loaded()
        for record in records:
            if record.id == transaction_id:
                return record
        return None

    async def recurring_notifications_enabled(self) -> bool:
        return await self._recurring_preference.is_enabled()

    async def last_scheduler_run(self) -> Optional[str]:
        stored = await get_json(self._storage, self._settings.scheduler_key, None)
        if isinstance(stored, dict):
            return stored.get("lastRun")
        return None

    # =========================================================================
    # BUDGETS
    # =========================================================================

    async def _apply_to_budgets(
        self,
        transaction: Optional[Transaction],
        previous: Optional[Transaction],
        now: datetime,
        correlation_id: UUID,
    ) -> list[Budget]:
        """
        Feed a change to every budget tracking its category.

        An edit that moves a transaction between categories removes it
        from the old category's budgets and adds it to the new one's.
        """
        if self._budgets is None:
            return []

        changes: dict[str, tuple[Optional[Transaction], Optional[Transaction]]] = {}
        if transaction is not None and previous is not None and transaction.category == previous.category:
            changes[transaction.category] = (transaction, previous)
        else:
            if previous is not None:
                changes[previous.category] = (None, previous)
            if transaction is not None:
                changes[transaction.category] = (transaction, None)

        budgets = await self._budgets.load_budgets()
        if not any(budget.category_id in changes for budget in budgets):
            return []

        alerts_enabled = await resolve_notifications_enabled(self._preferences)
        touched: list[Budget] = []
        updated_list: list[Budget] = []
        for budget in budgets:
            if budget.category_id not in changes:
                updated_list.append(budget)
                continue

            new_tx, old_tx = changes[budget.category_id]
            updated = await update_budget_with_transaction(
                budget,
                transaction=new_tx,
                previous_transaction=old_tx,
                notifications_enabled=alerts_enabled,
                haptics=self._haptics,
                notifications=self._notifications,
                now=now,
            )
            updated_list.append(updated)
            touched.append(updated)
            await self._audit_budget_change(budget, updated, alerts_enabled, correlation_id)

        await self._budgets.save_budgets(updated_list)
        return touched

    async def _audit_budget_change(
        self,
        before: Budget,
        after: Budget,
        notified: bool,
        correlation_id: UUID,
    ) -> None:
        if not self._audit_logger:
            return

        await self._audit_logger.log_budget_updated(
            budget_id=after.id,
            spent=after.spent,
            percent_used=after.percent_used or 0.0,
            period_key=after.alerts.period_key,
            correlation_id=correlation_id,
        )

        already = set(before.alerts.triggered) if before.alerts.period_key == after.alerts.period_key else set()
        for threshold in after.alerts.triggered:
            if threshold in already:
                continue
            await self._audit_logger.log_threshold_crossed(
                budget_id=after.id,
                budget_name=after.display_name,
                threshold=threshold,
                percent_used=after.percent_used or 0.0,
                notified=notified,
                correlation_id=correlation_id,
            )

    async def reset_budget_alerts(self, budget_id: str) -> Optional[Budget]:
        """
        Clear a budget's alert history for the current period.

        Returns:
            The reset budget, or None if no budget has budget_id
        """
        if self._budgets is None:
            return None

        async with self._lock:
            budgets = await self._budgets.load_budgets()
            target = next((b for b in budgets if b.id == budget_id), None)
            if target is None:
                return None

            reset = reset_budget_thresholds(target, self._clock())
            await self._budgets.upsert_budget(reset)

            if self._audit_logger:
                await self._audit_logger.log_thresholds_reset(
                    budget_id=reset.id,
                    period_key=reset.alerts.period_key,
                )
            return reset

    # =========================================================================
    # REMINDERS
    # =========================================================================

    async def _cancel_reminder(
        self,
        template: RecurringTemplate,
        correlation_id: Optional[UUID] = None,
    ) -> RecurringTemplate:
        handle = template.reminder_notification_id
        if handle:
            cancelled = await cancel_scheduled_notification(self._notifications, handle)
            if cancelled and self._audit_logger:
                await self._audit_logger.log_reminder_cancelled(
                    template_id=template.id,
                    handle=handle,
                    correlation_id=correlation_id,
                )
        return template.model_copy(update={"reminder_notification_id": None})

    async def _schedule_reminder(
        self,
        template: RecurringTemplate,
        now: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> RecurringTemplate:
        handle = await schedule_reminder_notification(self._notifications, template, now)
        fire_at = reminder_time_for(template)
        if handle and self._audit_logger and fire_at is not None:
            await self._audit_logger.log_reminder_scheduled(
                template_id=template.id,
                handle=handle,
                fire_at=fire_at,
                correlation_id=correlation_id,
            )
        return template.model_copy(update={"reminder_notification_id": handle})

    async def _resync_reminder(
        self,
        template: RecurringTemplate,
        enabled: bool,
        now: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> RecurringTemplate:
        """Cancel the current reminder and schedule a fresh one if still wanted."""
        cleared = await self._cancel_reminder(template, correlation_id)
        if enabled and cleared.remind_one_day_before and cleared.next_occurrence is not None:
            return await self._schedule_reminder(cleared, now, correlation_id)
        return cleared

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def add_transaction(self, data: dict) -> Transaction:
        """
        Record a new transaction.

        A recurring input (isRecurring with a recurrence rule) creates a
        template whose next occurrence is one step after the date, plus
        the first instance linked to it by recurring_parent_id.

        Returns:
            The ledger line that was added
        """
        async with self._lock:
            records = list(await self._ensure_loaded())
            now = self._clock()
            correlation_id = create_correlation_id()
            payload = _camel_keys(data)
            payload.setdefault("createdAt", now)
            payload["updatedAt"] = now

            template: Optional[RecurringTemplate] = None
            if _wants_recurrence(payload):
                template = RecurringTemplate.model_validate(payload)
                if template.recurrence is not None:
                    template = await self._prepare_template(template, now, correlation_id)

                    instance = template.to_instance(template.date, now)
                    records.append(template)
                else:
                    template = None

            if template is None:
                payload.pop("recurringParentId", None)
                instance = Transaction.model_validate(payload)

            records.append(instance)
            await self._persist(records)

            if self._audit_logger:
                if template is not None:
                    await self._audit_logger.log_transaction_added(
                        transaction_id=template.id,
                        kind="template",
                        amount=template.amount,
                        correlation_id=correlation_id,
                    )
                await self._audit_logger.log_transaction_added(
                    transaction_id=instance.id,
                    kind="instance",
                    amount=instance.amount,
                    correlation_id=correlation_id,
                )

            await self._apply_to_budgets(instance, None, now, correlation_id)
            return instance

    async def _prepare_template(
        self,
        template: RecurringTemplate,
        now: datetime,
        correlation_id: UUID,
    ) -> RecurringTemplate:
        next_occurrence = calculate_next_date(
            template.date,
            template.recurrence,
            template.interval_days,
        )
        if next_occurrence is not None and template.end_date is not None and next_occurrence > template.end_date:
            next_occurrence = None

        template = template.model_copy(update={
            "next_occurrence": next_occurrence,
            "reminder_notification_id": None,
        })
        if template.remind_one_day_before and await self.recurring_notifications_enabled():
            template = await self._schedule_reminder(template, now, correlation_id)
        return template

    async def update_transaction(self, transaction_id: str, updates: dict) -> LedgerItem:
        """
        Merge updates into a stored record.

        Raises:
            TransactionNotFoundError: if no record has transaction_id
        """
        async with self._lock:
            records = list(await self._ensure_loaded())
            existing = next((r for r in records if r.id == transaction_id), None)
            if existing is None:
                raise TransactionNotFoundError(f"No transaction with id {transaction_id}")

            now = self._clock()
            correlation_id = create_correlation_id()
            changes = _camel_keys(updates)
            merged_data = {
                **existing.to_storage_dict(),
                **changes,
                "updatedAt": now,
                "reminderNotificationId": getattr(existing, "reminder_notification_id", None),
            }

            if isinstance(existing, RecurringTemplate):
                merged: LedgerItem = RecurringTemplate.model_validate(merged_data)
                enabled = await self.recurring_notifications_enabled()
                merged = await self._resync_reminder(merged, enabled, now, correlation_id)
            else:
                merged = Transaction.model_validate(merged_data)

            records = [merged if r.id == transaction_id else r for r in records]
            await self._persist(records)

            if self._audit_logger:
                await self._audit_logger.log_transaction_updated(
                    transaction_id=transaction_id,
                    kind=merged.kind,
                    fields=list(changes.keys()),
                    correlation_id=correlation_id,
                )

            if isinstance(merged, Transaction):
                await self._apply_to_budgets(merged, existing, now, correlation_id)
            return merged

    async def delete_transaction(self, transaction_id: str, mode: str = "single") -> int:
        """
        Remove a record.

        mode="single" removes just that record. mode="series" removes the
        template and every instance it produced. Removing a template
        cancels its reminder; removing instances reverses their budget
        contribution.

        Returns:
            Number of records removed

        Raises:
            TransactionNotFoundError: if no record has transaction_id
        """
        async with self._lock:
            records = list(await self._ensure_loaded())
            target = next((r for r in records if r.id == transaction_id), None)
            if target is None:
                raise TransactionNotFoundError(f"No transaction with id {transaction_id}")

            now = self._clock()
            correlation_id = create_correlation_id()

            if isinstance(target, RecurringTemplate):
                template_id: Optional[str] = target.id
            else:
                template_id = target.recurring_parent_id

            if mode == "series" and template_id:
                removed = [
                    r for r in records
                    if r.id == transaction_id
                    or r.id == template_id
                    or (isinstance(r, Transaction) and r.recurring_parent_id == template_id)
                ]
            else:
                removed = [target]

            removed_ids = {r.id for r in removed}
            remaining = [r for r in records if r.id not in removed_ids]

            if isinstance(target, RecurringTemplate) or mode == "series":
                template = next(
                    (r for r in records if isinstance(r, RecurringTemplate) and r.id == template_id),
                    None,
                )
                if template is not None:
                    await self._cancel_reminder(template, correlation_id)

            await self._persist(remaining)

            if self._audit_logger:
                await self._audit_logger.log_transaction_deleted(
                    transaction_id=transaction_id,
                    mode=mode,
                    removed_count=len(removed),
                    correlation_id=correlation_id,
                )

            for record in removed:
                if isinstance(record, Transaction):
                    await self._apply_to_budgets(None, record, now, correlation_id)
            return len(removed)

    # =========================================================================
    # RECURRING SWEEP
    # =========================================================================

    async def process_recurring_transactions(self, now: Any = None) -> list[Transaction]:
        """
        Materialize every occurrence that has come due.

        For each active template: generate the missed occurrences,
        create an instance for each (announcing it when recurring
        notifications are on), advance or clear next_occurrence and
        re-sync the reminder. Budgets see every new instance.

        Returns:
            The instances created, in chronological order per template
        """
        async with self._lock:
            records = list(await self._ensure_loaded())
            moment = ensure_datetime(now) or self._clock()
            correlation_id = create_correlation_id()
            enabled = await self.recurring_notifications_enabled()

            created: list[Transaction] = []
            for index, record in enumerate(list(records)):
                if not isinstance(record, RecurringTemplate) or not record.is_recurring:
                    continue

                batch = generate_occurrences_until(record, moment)
                if not batch.occurrences and batch.next_occurrence is None:
                    records[index] = record.model_copy(update={
                        "next_occurrence": None,
                        "updated_at": moment,
                    })
                    if self._audit_logger and record.next_occurrence is not None:
                        await self._audit_logger.log_occurrences_materialized(
                            template_id=record.id,
                            occurrences=[],
                            next_occurrence=None,
                            correlation_id=correlation_id,
                        )
                    continue

                for occurrence in batch.occurrences:
                    instance = record.to_instance(occurrence, moment)
                    records.append(instance)
                    created.append(instance)
                    if enabled:
                        await send_recurring_notification(self._notifications, instance, occurrence)

                updated = record.model_copy(update={
                    "next_occurrence": batch.next_occurrence,
                    "updated_at": moment,
                })
                if enabled and updated.remind_one_day_before:
                    updated = await self._resync_reminder(updated, True, moment, correlation_id)
                elif not enabled:
                    updated = await self._cancel_reminder(updated, correlation_id)
                records[index] = updated

                advanced = batch.occurrences or batch.next_occurrence != record.next_occurrence
                if self._audit_logger and advanced:
                    await self._audit_logger.log_occurrences_materialized(
                        template_id=record.id,
                        occurrences=batch.occurrences,
                        next_occurrence=batch.next_occurrence,
                        correlation_id=correlation_id,
                    )

            await self._persist(records)
            await set_json(
                self._storage,
                self._settings.scheduler_key,
                {"lastRun": moment.isoformat()},
            )

            for instance in created:
                await self._apply_to_budgets(instance, None, moment, correlation_id)

            logger.info(
                "recurring_sweep_finished",
                created=len(created),
                correlation_id=str(correlation_id),
            )
            return created

    # =========================================================================
    # PREFERENCES
    # =========================================================================

    async def toggle_recurring_notifications(self) -> bool:
        """
        Flip the recurring-notification preference.

        Enabling schedules a reminder for every template that wants one;
        disabling cancels all reminders and clears their handles.

        Returns:
            The new preference value
        """
        async with self._lock:
            records = list(await self._ensure_loaded())
            now = self._clock()
            correlation_id = create_correlation_id()
            enabled = not await self.recurring_notifications_enabled()
            await self._recurring_preference.set_enabled(enabled)

            for index, record in enumerate(records):
                if not isinstance(record, RecurringTemplate):
                    continue
                if enabled:
                    if record.remind_one_day_before and record.next_occurrence is not None:
                        records[index] = await self._resync_reminder(record, True, now, correlation_id)
                else:
                    records[index] = await self._cancel_reminder(record, correlation_id)

            await self._persist(records)

            if self._audit_logger:
                await self._audit_logger.log_preference_changed(
                    name="recurring_notifications",
                    value=enabled,
                    correlation_id=correlation_id,
                )
            return enabled
