"""
Budget Models

A Budget limits spending for one category over a repeating accounting
period (day, ISO week or calendar month). Alert bookkeeping lives in
AlertState: the key of the period it belongs to and the thresholds that
already fired in that period.

Budgets come from loosely-typed storage, so numeric fields are clamped
rather than rejected: a negative or non-finite limit or total becomes 0
and an unreadable percent_used becomes None (it is re-derived).
"""

from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Optional, Union

from pydantic import AliasChoices, Field, field_validator

from hustleledger.config import get_settings
from hustleledger.models.coercion import (
    to_finite_float,
    to_non_negative,
    to_number_list,
)
from hustleledger.models.transaction import LedgerModel, create_id
from hustleledger.utils.dates import ensure_datetime


class BudgetCadence(str, Enum):
    """Accounting period a budget resets on."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def coerce_cadence(value: Any) -> BudgetCadence:
    """Unknown or missing cadences fall back to the configured default."""
    if isinstance(value, BudgetCadence):
        return value
    try:
        return BudgetCadence(str(value).strip().lower())
    except ValueError:
        return BudgetCadence(get_settings().budget.default_cadence)


def normalize_thresholds(values: Optional[Iterable[Any]]) -> list[Union[float, int]]:
    """
    Clean configured alert thresholds.

    Non-numeric entries are dropped and the rest clamped to 0..100.
    An empty result falls back to the configured defaults.
    """
    if values is None or isinstance(values, (str, bytes)):
        cleaned = []
    else:
        cleaned = []
        for value in values:
            number = to_finite_float(value)
            if number is None:
                continue
            cleaned.append(min(max(number, 0.0), 100.0))
    if not cleaned:
        cleaned = get_settings().budget.thresholds_list
    return to_number_list(cleaned)


class AlertState(LedgerModel):
    """Thresholds already fired within the period identified by period_key."""

    period_key: Optional[str] = None
    triggered: list[Union[int, float]] = Field(
        default_factory=list,
        validation_alias=AliasChoices("triggered", "values"),
        serialization_alias="triggered",
    )

    @field_validator('triggered', mode='before')
    @classmethod
    def clean_triggered(cls, v: Any) -> list:
        return to_number_list(v)


class Budget(LedgerModel):
    """
    A spending limit for one category and its running total for the
    current period.

    percent_used is spent / limit * 100 rounded to two decimals, or 0
    when there is no usable limit.
    """

    id: str = Field(default_factory=create_id)
    name: Optional[str] = Field(
        default=None,
        description="Display name used in alert messages"
    )
    category_id: Optional[str] = None

    limit: float = Field(
        default=0.0,
        validation_alias=AliasChoices("limit", "amount"),
        serialization_alias="limit",
        description="Spending limit; <= 0 means no budget"
    )
    spent: float = Field(default=0.0, description="Running total for the period")
    percent_used: Optional[float] = None

    cadence: BudgetCadence = Field(
        default_factory=lambda: coerce_cadence(None),
        validation_alias=AliasChoices("cadence", "period"),
        serialization_alias="cadence",
    )
    rollover: bool = False
    thresholds: list[Union[int, float]] = Field(
        default_factory=lambda: normalize_thresholds(None),
        description="Alert thresholds in percent of limit"
    )

    alerts: AlertState = Field(
        default_factory=AlertState,
        validation_alias=AliasChoices("alerts", "triggeredThresholds"),
        serialization_alias="alerts",
    )
    period_start: Optional[datetime] = None
    last_updated_at: Optional[datetime] = None

    @field_validator('category_id', mode='before')
    @classmethod
    def coerce_category_id(cls, v: Any) -> Optional[str]:
        return None if v is None or v == "" else str(v)

    @field_validator('limit', 'spent', mode='before')
    @classmethod
    def clamp_amounts(cls, v: Any) -> float:
        return to_non_negative(v)

    @field_validator('percent_used', mode='before')
    @classmethod
    def coerce_percent(cls, v: Any) -> Optional[float]:
        return to_finite_float(v)

    @field_validator('cadence', mode='before')
    @classmethod
    def validate_cadence(cls, v: Any) -> BudgetCadence:
        return coerce_cadence(v)

    @field_validator('thresholds', mode='before')
    @classmethod
    def validate_thresholds(cls, v: Any) -> list:
        return normalize_thresholds(v)

    @field_validator('alerts', mode='before')
    @classmethod
    def default_alerts(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, AlertState)) else {}

    @field_validator('period_start', 'last_updated_at', mode='before')
    @classmethod
    def coerce_timestamps(cls, v: Any) -> Optional[datetime]:
        return ensure_datetime(v)

    @property
    def display_name(self) -> str:
        return self.name or "budget"
