"""
Budget Repository

Loads and saves the list of budgets as one JSON array in the key-value
store. Entries that cannot be used (not an object, no category) are
dropped on load rather than failing the whole list.
"""

from typing import Any, Optional

import structlog
from pydantic import ValidationError

from hustleledger.config import get_settings
from hustleledger.models.budget import Budget
from hustleledger.services.storage.interface import KeyValueStorageInterface
from hustleledger.services.storage.json_helpers import get_json, set_json


logger = structlog.get_logger(__name__)


def parse_budgets(raw: Any) -> list[Budget]:
    """Validate stored budget entries, skipping unusable ones."""
    if not isinstance(raw, list):
        return []

    budgets = []
    for entry in raw:
        if isinstance(entry, Budget):
            candidate = entry
        elif isinstance(entry, dict):
            try:
                candidate = Budget.model_validate(entry)
            except ValidationError as e:
                logger.debug("budget_entry_skipped", error=str(e))
                continue
        else:
            continue
        if not candidate.category_id:
            continue
        budgets.append(candidate)
    return budgets


class BudgetRepository:
    """Budget list persisted under a single storage key."""

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        key: Optional[str] = None,
    ):
        self._storage = storage
        self._key = key or get_settings().storage.budgets_key

    async def load_budgets(self) -> list[Budget]:
        stored = await get_json(self._storage, self._key, [])
        return parse_budgets(stored)

    async def save_budgets(self, budgets: list[Budget]) -> bool:
        payload = [budget.to_storage_dict() for budget in parse_budgets(budgets)]
        return await set_json(self._storage, self._key, payload)

    async def upsert_budget(self, budget: Budget) -> list[Budget]:
        """
        Insert budget or replace the stored one with the same id.

        Returns the new list, or the previously stored list if the
        save failed.
        """
        existing = await self.load_budgets()
        updated = list(existing)
        for index, item in enumerate(updated):
            if item.id == budget.id:
                updated[index] = budget
                break
        else:
            updated.append(budget)

        saved = await self.save_budgets(updated)
        return updated if saved else existing
