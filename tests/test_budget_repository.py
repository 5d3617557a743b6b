"""
Tests for budget persistence.
"""

import json

import pytest

from hustleledger.models import Budget
from hustleledger.services.budgets import BudgetRepository, parse_budgets
from hustleledger.services.storage import InMemoryKeyValueStorage

BUDGETS_KEY = "@hustleledger:budgets"


class TestParseBudgets:
    """Tests for lenient budget list loading."""

    def test_skips_unusable_entries(self):
        """Test non-objects and budgets without a category are dropped."""
        parsed = parse_budgets([
            {"id": "a", "categoryId": "Dining", "limit": 100},
            "nonsense",
            {"id": "b", "limit": 50},
            Budget(id="c", category_id="Fuel"),
        ])
        assert [b.id for b in parsed] == ["a", "c"]

    def test_non_list(self):
        """Test anything but a list is empty."""
        assert parse_budgets({"id": "a"}) == []
        assert parse_budgets(None) == []


class TestBudgetRepository:
    """Tests for the storage-backed budget list."""

    @pytest.mark.asyncio
    async def test_empty(self, storage):
        """Test nothing stored loads as no budgets."""
        assert await BudgetRepository(storage).load_budgets() == []

    @pytest.mark.asyncio
    async def test_corrupt_payload(self):
        """Test a corrupt stored list loads as no budgets."""
        storage = InMemoryKeyValueStorage({BUDGETS_KEY: "[{"})
        assert await BudgetRepository(storage).load_budgets() == []

    @pytest.mark.asyncio
    async def test_save_writes_current_names(self, storage):
        """Test budgets are stored with camelCase keys."""
        repository = BudgetRepository(storage)
        assert await repository.save_budgets([Budget(id="a", category_id="Dining", limit=100)]) is True

        [stored] = json.loads(storage.snapshot()[BUDGETS_KEY])
        assert stored["categoryId"] == "Dining"
        assert stored["limit"] == 100

    @pytest.mark.asyncio
    async def test_upsert_inserts_and_replaces(self, storage):
        """Test upsert appends new budgets and replaces by id."""
        repository = BudgetRepository(storage)
        await repository.upsert_budget(Budget(id="a", category_id="Dining", limit=100))
        await repository.upsert_budget(Budget(id="b", category_id="Fuel", limit=60))
        updated = await repository.upsert_budget(Budget(id="a", category_id="Dining", limit=150))

        assert [(b.id, b.limit) for b in updated] == [("a", 150), ("b", 60)]
