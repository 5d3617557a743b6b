"""
Tests for the Budget Alert Engine

Reproduces the reference scenarios (running totals, once-per-period
threshold alerts, edits) and covers period keys, polarity resolution
and collaborator failure handling.
"""

import pytest

from hustleledger.engine.budget import (
    BUDGET_THRESHOLDS,
    InvalidBudgetError,
    build_notification_content,
    calculate_percent_used,
    extract_expense_amount,
    get_newly_crossed_thresholds,
    get_period_key,
    get_period_start,
    reset_budget_thresholds,
    update_budget_with_transaction,
)
from hustleledger.models import Budget, BudgetCadence, Transaction
from hustleledger.services.haptics import HapticSeverity

from conftest import FakeHaptics, FakeNotifications, FakePreferences, utc


class TestPercentMath:
    """Tests for percent-of-limit arithmetic."""

    def test_stable_percentages(self):
        """Test reference percentages."""
        assert calculate_percent_used(0, 0) == 0
        assert calculate_percent_used(50, 200) == 25
        assert calculate_percent_used(150, 200) == 75

    @pytest.mark.parametrize("limit", [0, 1, 200, 10_000])
    def test_zero_spent_is_zero(self, limit):
        """Test nothing spent is always 0%."""
        assert calculate_percent_used(0, limit) == 0

    @pytest.mark.parametrize("spent", [0, 5, 1_000])
    def test_zero_limit_is_zero(self, spent):
        """Test no limit is always 0%."""
        assert calculate_percent_used(spent, 0) == 0

    def test_rounds_to_two_decimals(self):
        """Test half-up rounding to two places."""
        assert calculate_percent_used(200, 300) == 66.67
        assert calculate_percent_used(1, 8) == 12.5

    def test_garbage_inputs(self):
        """Test negative and non-numeric inputs count as 0."""
        assert calculate_percent_used(-50, 200) == 0
        assert calculate_percent_used("abc", 200) == 0
        assert calculate_percent_used(50, -200) == 0
        assert calculate_percent_used(float("inf"), 200) == 0


class TestPeriodKeys:
    """Tests for accounting period identification."""

    def test_monthly(self):
        """Test monthly keys."""
        assert get_period_key(utc(2024, 9, 2, 12)) == "2024-09"

    def test_daily(self):
        """Test daily keys."""
        assert get_period_key(utc(2024, 9, 2, 12), "daily") == "2024-09-02"

    def test_weekly_uses_iso_week(self):
        """Test weekly keys use the ISO week-numbering year."""
        assert get_period_key(utc(2024, 9, 2), BudgetCadence.WEEKLY) == "2024-W36"
        assert get_period_key(utc(2021, 1, 3), "weekly") == "2020-W53"
        assert get_period_key(utc(2024, 12, 30), "weekly") == "2025-W01"

    def test_unknown_cadence_falls_back_to_monthly(self):
        """Test unknown cadences use the configured default."""
        assert get_period_key(utc(2024, 9, 2), "quarterly") == "2024-09"

    def test_invalid_instant(self):
        """Test an unparseable instant yields the sentinel key."""
        assert get_period_key("not-a-date") == "invalid"

    def test_iso_string_instant(self):
        """Test ISO strings are accepted."""
        assert get_period_key("2024-08-01T00:00:00Z") == "2024-08"

    def test_period_start(self):
        """Test period starts for each cadence."""
        moment = utc(2024, 9, 5, 15)
        assert get_period_start(moment, "daily") == utc(2024, 9, 5)
        assert get_period_start(moment, "weekly") == utc(2024, 9, 2)
        assert get_period_start(moment, "monthly") == utc(2024, 9, 1)


class TestExpenseExtraction:
    """Tests for the polarity resolution chain."""

    def test_type_wins(self):
        """Test type decides before any other hint."""
        assert extract_expense_amount({"amount": 50, "type": "income", "isExpense": True}) == 0
        assert extract_expense_amount({"amount": -50, "type": "expense"}) == 50
        assert extract_expense_amount({"amount": 50, "categoryType": "debit"}) == 50

    def test_expense_flag(self):
        """Test the boolean isExpense flag."""
        assert extract_expense_amount({"amount": 20, "isExpense": False}) == 0
        assert extract_expense_amount({"amount": 20, "is_expense": True}) == 20

    def test_direction(self):
        """Test direction / flow hints."""
        assert extract_expense_amount({"amount": 30, "direction": "incoming"}) == 0
        assert extract_expense_amount({"amount": 30, "flow": "out"}) == 30

    def test_negative_sign(self):
        """Test a negative amount counts as spending."""
        assert extract_expense_amount({"amount": -12.5}) == 12.5

    def test_default_is_magnitude(self):
        """Test an unlabeled positive amount counts in full."""
        assert extract_expense_amount({"amount": 40}) == 40

    def test_missing_or_garbage(self):
        """Test absent transactions and amounts contribute nothing."""
        assert extract_expense_amount(None) == 0
        assert extract_expense_amount({"amount": "lots"}) == 0

    def test_model_instance(self):
        """Test ledger models are read through attributes."""
        income = Transaction(title="Salary", amount=3000, type="income")
        expense = Transaction(title="Coffee", amount=4.5)
        assert extract_expense_amount(income) == 0
        assert extract_expense_amount(expense) == 4.5


class TestThresholdSelection:
    """Tests for picking newly crossed thresholds."""

    def test_ascending_multi_cross(self):
        """Test several thresholds cross in one jump."""
        assert get_newly_crossed_thresholds(20, 120) == [50, 80, 100]

    def test_already_triggered_skipped(self):
        """Test fired thresholds do not fire again."""
        assert get_newly_crossed_thresholds(20, 90, [50]) == [80]

    def test_boundary_is_inclusive_above(self):
        """Test landing exactly on a threshold crosses it."""
        assert get_newly_crossed_thresholds(79.99, 80) == [80]
        assert get_newly_crossed_thresholds(80, 85) == []

    def test_custom_thresholds_are_sorted(self):
        """Test caller thresholds are de-duplicated and sorted."""
        assert get_newly_crossed_thresholds(0, 100, thresholds=[90, 25, 25]) == [25, 90]


class TestUpdateBudget:
    """Tests for applying transactions to budgets."""

    @pytest.mark.asyncio
    async def test_totals_and_thresholds_fire_once(self):
        """Test the three-step reference chain."""
        haptics = FakeHaptics()
        notifications = FakeNotifications()
        budget = {"name": "Dining", "limit": 200, "spent": 60, "percentUsed": 30}

        updated = await update_budget_with_transaction(
            budget,
            transaction={"amount": 60, "type": "expense"},
            notifications_enabled=True,
            haptics=haptics,
            notifications=notifications,
            now=utc(2024, 9, 1, 12),
        )
        assert updated.spent == 120
        assert updated.percent_used == 60
        assert updated.alerts.triggered == [50]
        assert len(haptics.calls) == 1
        assert len(notifications.scheduled) == 1

        haptics, notifications = FakeHaptics(), FakeNotifications()
        after_second = await update_budget_with_transaction(
            updated,
            transaction={"amount": 40, "type": "expense"},
            notifications_enabled=True,
            haptics=haptics,
            notifications=notifications,
            now=utc(2024, 9, 2, 12),
        )
        assert after_second.spent == 160
        assert after_second.percent_used == 80
        assert after_second.alerts.triggered == [50, 80]
        assert len(haptics.calls) == 1
        assert len(notifications.scheduled) == 1

        haptics, notifications = FakeHaptics(), FakeNotifications()
        no_new = await update_budget_with_transaction(
            after_second,
            transaction={"amount": 5, "type": "expense"},
            notifications_enabled=True,
            haptics=haptics,
            notifications=notifications,
            now=utc(2024, 9, 3, 12),
        )
        assert no_new.spent == 165
        assert haptics.calls == []
        assert notifications.scheduled == []
        assert no_new.alerts.triggered == [50, 80]

    @pytest.mark.asyncio
    async def test_multiple_thresholds_fire_in_order(self):
        """Test a single jump fires every threshold, ascending."""
        haptics = FakeHaptics()
        notifications = FakeNotifications()

        updated = await update_budget_with_transaction(
            {"name": "Groceries", "limit": 100, "spent": 20, "percentUsed": 20},
            transaction={"amount": 100, "type": "expense"},
            notifications_enabled=True,
            haptics=haptics,
            notifications=notifications,
            now=utc(2024, 10, 1, 12),
        )

        assert updated.spent == 120
        assert updated.percent_used == 120
        assert updated.alerts.triggered == list(BUDGET_THRESHOLDS)
        assert haptics.calls == [
            HapticSeverity.WARNING,
            HapticSeverity.WARNING,
            HapticSeverity.ERROR,
        ]
        assert [r.body for r in notifications.scheduled] == [
            "You've crossed 50% of your Groceries budget (120% spent).",
            "You've crossed 80% of your Groceries budget (120% spent).",
            "You've exceeded your Groceries budget. 120% spent.",
        ]
        assert all(r.title == "Groceries budget alert" for r in notifications.scheduled)

    @pytest.mark.asyncio
    async def test_notifications_disabled_still_records(self):
        """Test muted updates record crossings without side effects."""
        haptics = FakeHaptics()
        notifications = FakeNotifications()

        updated = await update_budget_with_transaction(
            {"name": "Travel", "limit": 500, "spent": 200, "percentUsed": 40},
            transaction={"amount": 150, "type": "expense"},
            notifications_enabled=False,
            haptics=haptics,
            notifications=notifications,
            now=utc(2024, 9, 5, 12),
        )

        assert updated.percent_used == 70
        assert updated.alerts.triggered == [50]
        assert haptics.calls == []
        assert notifications.scheduled == []

    @pytest.mark.asyncio
    async def test_muted_without_recording(self):
        """Test crossings are dropped when muted recording is off."""
        updated = await update_budget_with_transaction(
            {"name": "Travel", "limit": 500, "spent": 200, "percentUsed": 40},
            transaction={"amount": 150},
            notifications_enabled=False,
            now=utc(2024, 9, 5, 12),
            record_when_muted=False,
        )
        assert updated.alerts.triggered == []

    @pytest.mark.asyncio
    async def test_muted_recording_flag_from_environment(self, monkeypatch):
        """Test BUDGET_RECORD_THRESHOLDS_WHEN_MUTED is honored."""
        monkeypatch.setenv("BUDGET_RECORD_THRESHOLDS_WHEN_MUTED", "false")
        updated = await update_budget_with_transaction(
            {"name": "Travel", "limit": 500, "spent": 200},
            transaction={"amount": 150},
            notifications_enabled=False,
            now=utc(2024, 9, 5, 12),
        )
        assert updated.alerts.triggered == []

    @pytest.mark.asyncio
    async def test_editing_transaction_adjusts_spent(self):
        """Test an edit applies only the difference."""
        haptics = FakeHaptics()
        budget = {
            "name": "Dining",
            "limit": 300,
            "spent": 200,
            "percentUsed": 66.67,
            "alerts": {
                "periodKey": get_period_key(utc(2024, 8, 1)),
                "triggered": [50, 80],
            },
        }

        updated = await update_budget_with_transaction(
            budget,
            transaction={"amount": 90, "type": "expense"},
            previous_transaction={"amount": 120, "type": "expense"},
            notifications_enabled=True,
            haptics=haptics,
            now=utc(2024, 8, 15, 12),
        )

        assert updated.spent == 170
        assert round(updated.percent_used) == 57
        assert updated.alerts.triggered == [50, 80]
        assert haptics.calls == []

    @pytest.mark.asyncio
    async def test_removal_never_goes_negative(self):
        """Test reversing more than was spent clamps to zero."""
        updated = await update_budget_with_transaction(
            {"limit": 100, "spent": 10},
            previous_transaction={"amount": 40},
            now=utc(2024, 9, 1),
        )
        assert updated.spent == 0
        assert updated.percent_used == 0

    @pytest.mark.asyncio
    async def test_new_period_resets_alerts(self):
        """Test a different period key clears the fired set first."""
        notifications = FakeNotifications()
        budget = {
            "name": "Dining",
            "limit": 100,
            "spent": 40,
            "percentUsed": 40,
            "alerts": {"periodKey": "2024-08", "triggered": [50, 80]},
        }

        updated = await update_budget_with_transaction(
            budget,
            transaction={"amount": 20},
            notifications_enabled=True,
            notifications=notifications,
            now=utc(2024, 9, 2),
        )

        assert updated.alerts.period_key == "2024-09"
        assert updated.alerts.triggered == [50]
        assert len(notifications.scheduled) == 1

    @pytest.mark.asyncio
    async def test_income_does_not_count(self):
        """Test income leaves spent unchanged."""
        updated = await update_budget_with_transaction(
            {"limit": 100, "spent": 10},
            transaction={"amount": 500, "type": "income"},
            now=utc(2024, 9, 1),
        )
        assert updated.spent == 10
        assert updated.percent_used == 10

    @pytest.mark.asyncio
    async def test_preference_store_consulted(self):
        """Test the preference decides when no explicit toggle is given."""
        preferences = FakePreferences(enabled=False)
        haptics = FakeHaptics()

        updated = await update_budget_with_transaction(
            {"limit": 100, "spent": 0},
            transaction={"amount": 60},
            haptics=haptics,
            preferences=preferences,
            now=utc(2024, 9, 1),
        )

        assert preferences.reads == 1
        assert haptics.calls == []
        assert updated.alerts.triggered == [50]

    @pytest.mark.asyncio
    async def test_explicit_toggle_skips_preference_store(self):
        """Test an explicit bool overrides the stored preference."""
        preferences = FakePreferences(enabled=False)
        haptics = FakeHaptics()

        await update_budget_with_transaction(
            {"limit": 100, "spent": 0},
            transaction={"amount": 60},
            notifications_enabled=True,
            haptics=haptics,
            preferences=preferences,
            now=utc(2024, 9, 1),
        )

        assert preferences.reads == 0
        assert haptics.calls == [HapticSeverity.WARNING]

    @pytest.mark.asyncio
    async def test_failing_collaborators_do_not_fail_update(self):
        """Test haptic and notification errors are swallowed."""
        haptics = FakeHaptics(fail=True)
        notifications = FakeNotifications(fail=True)

        updated = await update_budget_with_transaction(
            {"limit": 100, "spent": 0},
            transaction={"amount": 100},
            notifications_enabled=True,
            haptics=haptics,
            notifications=notifications,
            now=utc(2024, 9, 1),
        )

        assert updated.alerts.triggered == [50, 80, 100]
        assert len(haptics.calls) == 3

    @pytest.mark.asyncio
    async def test_budget_thresholds_are_used(self):
        """Test a budget's own thresholds replace the defaults."""
        notifications = FakeNotifications()
        updated = await update_budget_with_transaction(
            {"limit": 100, "spent": 0, "thresholds": [25, 75]},
            transaction={"amount": 80},
            notifications_enabled=True,
            notifications=notifications,
            now=utc(2024, 9, 1),
        )
        assert updated.alerts.triggered == [25, 75]
        assert len(notifications.scheduled) == 2

    @pytest.mark.asyncio
    async def test_input_is_not_mutated(self):
        """Test the engine returns a copy."""
        budget = Budget(name="Fuel", category_id="fuel", limit=100, spent=10)
        updated = await update_budget_with_transaction(
            budget,
            transaction={"amount": 5},
            now=utc(2024, 9, 1),
        )
        assert budget.spent == 10
        assert updated.spent == 15
        assert updated.last_updated_at == utc(2024, 9, 1)
        assert updated.period_start == utc(2024, 9, 1)

    @pytest.mark.asyncio
    async def test_missing_budget_raises(self):
        """Test a missing budget is an error."""
        with pytest.raises(InvalidBudgetError):
            await update_budget_with_transaction(None, transaction={"amount": 5})


class TestResetThresholds:
    """Tests for clearing alert history."""

    def test_reset_clears_for_current_period(self):
        """Test history is cleared and rekeyed to now."""
        budget = {
            "name": "Wellness",
            "limit": 150,
            "alerts": {"periodKey": "2024-08", "triggered": [50, 80]},
        }
        reset = reset_budget_thresholds(budget, utc(2024, 9, 2, 12))
        assert reset.alerts.triggered == []
        assert reset.alerts.period_key == get_period_key(utc(2024, 9, 2, 12))

    def test_reset_requires_budget(self):
        """Test a missing budget is an error."""
        with pytest.raises(InvalidBudgetError):
            reset_budget_thresholds(None)


class TestNotificationContent:
    """Tests for alert message text."""

    def test_unnamed_budget(self):
        """Test the generic name is used."""
        content = build_notification_content(Budget(limit=10), 80, 81.4)
        assert content.title == "budget budget alert"
        assert content.body == "You've crossed 80% of your budget budget (81% spent)."

    def test_exceeded_rounds_half_up(self):
        """Test percent rounding in the exceeded message."""
        content = build_notification_content(Budget(name="Rent", limit=10), 100, 100.5)
        assert content.body == "You've exceeded your Rent budget. 101% spent."
