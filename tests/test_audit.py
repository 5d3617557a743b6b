"""
Tests for the audit logger.
"""

import pytest

from hustleledger.audit import AuditLogger, create_correlation_id
from hustleledger.models import AuditEventBuilder, AuditEventType
from hustleledger.services.storage import AuditStorageInterface, InMemoryAuditStorage

from conftest import utc


class ExplodingAuditStorage(AuditStorageInterface):
    async def append_event(self, event):
        raise RuntimeError("audit sheet unavailable")

    async def get_events_by_entity(self, entity_type, entity_id):
        return []

    async def get_recent_events(self, limit=100):
        return []


class TestAuditLogger:
    """Tests for local and persisted audit logging."""

    @pytest.mark.asyncio
    async def test_without_storage(self):
        """Test logging succeeds with no store configured."""
        logger = AuditLogger()
        assert await logger.log(AuditEventBuilder.series_finished("t-1")) is True

    @pytest.mark.asyncio
    async def test_persists_events(self):
        """Test events reach the configured store."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()

        await logger.log_transaction_added("tx-1", "instance", 12.0, correlation_id=correlation_id)
        await logger.log_threshold_crossed("b-1", "Dining", 80, 82.0, notified=False, correlation_id=correlation_id)

        events = await storage.get_recent_events()
        assert {e.event_type for e in events} == {
            AuditEventType.TRANSACTION_ADDED,
            AuditEventType.THRESHOLD_CROSSED,
        }
        assert all(e.correlation_id == correlation_id for e in events)

    @pytest.mark.asyncio
    async def test_storage_failure_is_reported_not_raised(self):
        """Test a broken store returns False."""
        logger = AuditLogger(ExplodingAuditStorage())
        assert await logger.log(AuditEventBuilder.series_finished("t-1")) is False

    @pytest.mark.asyncio
    async def test_occurrences_and_series_end(self):
        """Test a sweep that exhausts a series logs both events."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)

        await logger.log_occurrences_materialized("t-1", [utc(2024, 9, 1)], None)

        types = [e.event_type for e in await storage.get_events_by_entity("template", "t-1")]
        assert sorted(types) == sorted([
            AuditEventType.SERIES_FINISHED,
            AuditEventType.OCCURRENCES_MATERIALIZED,
        ])

    @pytest.mark.asyncio
    async def test_nothing_due_logs_nothing(self):
        """Test an empty batch with a future occurrence is silent."""
        storage = InMemoryAuditStorage()
        await AuditLogger(storage).log_occurrences_materialized("t-1", [], utc(2024, 10, 1))
        assert await storage.get_recent_events() == []

    @pytest.mark.asyncio
    async def test_error_event(self):
        """Test system errors are persisted with their message."""
        storage = InMemoryAuditStorage()
        await AuditLogger(storage).log_error("StorageWriteError", "disk full", {"key": "k"})
        [event] = await storage.get_recent_events()
        assert event.error_message == "disk full"
        assert event.details == {"key": "k"}
