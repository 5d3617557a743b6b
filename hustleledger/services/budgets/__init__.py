"""Budget persistence."""

from hustleledger.services.budgets.repository import BudgetRepository, parse_budgets

__all__ = ["BudgetRepository", "parse_budgets"]
