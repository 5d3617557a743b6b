"""
Ledger Record Models

A recurring series is stored as one template plus separately
materialized instances:

- Transaction (kind="instance"): an actual ledger line that counts
  toward totals and budgets.
- RecurringTemplate (kind="template"): the rule a series is generated
  from. It is never shown as a ledger line and never summed.

LedgerRecord is a discriminated union on `kind`, so an instance can never
carry a next occurrence and a template can never be summed by mistake.

All models serialize with camelCase aliases (nextOccurrence,
remindOneDayBefore, ...), which is the shape the mobile client stores.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from hustleledger.utils.dates import ensure_datetime, utcnow
from hustleledger.models.coercion import to_finite_float


# =============================================================================
# ENUMS
# =============================================================================

class RecurrenceRule(str, Enum):
    """Supported recurrence rules. CUSTOM uses interval_days."""
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


class TransactionType(str, Enum):
    """Polarity of a ledger line."""
    INCOME = "income"
    EXPENSE = "expense"


def create_id() -> str:
    """New opaque record identifier."""
    return uuid4().hex


# =============================================================================
# BASE
# =============================================================================

class LedgerModel(BaseModel):
    """Common configuration: camelCase aliases, lenient extra fields."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    def to_storage_dict(self) -> dict:
        """JSON-ready dict using the stored (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True)


class _LedgerEntry(LedgerModel):
    """Fields shared by templates and instances."""

    id: str = Field(default_factory=create_id)
    title: str = Field(
        default="Untitled",
        max_length=200,
        description="User-facing label"
    )
    amount: float = Field(
        default=0.0,
        description="Signed or unsigned amount as entered"
    )
    type: TransactionType = Field(default=TransactionType.EXPENSE)
    category: str = Field(default="General")
    date: datetime = Field(
        default_factory=utcnow,
        description="Posting date (for templates: the series start)"
    )
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator('title', 'category', mode='before')
    @classmethod
    def default_blank_text(cls, v: Any, info: ValidationInfo) -> str:
        text = str(v if v is not None else "").strip()
        if text:
            return text
        return "Untitled" if info.field_name == "title" else "General"

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v: Any) -> float:
        return to_finite_float(v, 0.0)

    @field_validator('type', mode='before')
    @classmethod
    def coerce_type(cls, v: Any) -> TransactionType:
        if isinstance(v, TransactionType):
            return v
        if str(v or "").strip().lower() == "income":
            return TransactionType.INCOME
        return TransactionType.EXPENSE

    @field_validator('date', 'created_at', 'updated_at', mode='before')
    @classmethod
    def coerce_required_datetime(cls, v: Any) -> datetime:
        return ensure_datetime(v) or utcnow()


# =============================================================================
# RECORDS
# =============================================================================

class Transaction(_LedgerEntry):
    """A materialized ledger line."""

    kind: Literal["instance"] = "instance"
    recurring_parent_id: Optional[str] = Field(
        default=None,
        description="Template this instance was generated from"
    )


class RecurringTemplate(_LedgerEntry):
    """
    The rule record a recurring series is generated from.

    next_occurrence is None only when the series is exhausted or
    recurrence has been turned off.
    """

    kind: Literal["template"] = "template"
    is_recurring: bool = True
    recurrence: Optional[RecurrenceRule] = None
    interval_days: Optional[int] = Field(
        default=None,
        description="Day interval for the custom rule"
    )
    next_occurrence: Optional[datetime] = None
    end_date: Optional[datetime] = None
    remind_one_day_before: bool = False
    reminder_notification_id: Optional[str] = Field(
        default=None,
        description="Handle of the scheduled day-before reminder"
    )

    @model_validator(mode='before')
    @classmethod
    def lift_recurrence_meta(cls, data: Any) -> Any:
        """Older records keep the custom interval under recurrenceMeta.intervalDays."""
        if not isinstance(data, dict):
            return data
        if data.get("intervalDays") is not None or data.get("interval_days") is not None:
            return data
        meta = data.get("recurrenceMeta", data.get("recurrence_meta"))
        if isinstance(meta, dict):
            interval = meta.get("intervalDays", meta.get("interval_days"))
            if interval is not None:
                data = dict(data)
                data["intervalDays"] = interval
        return data

    @field_validator('recurrence', mode='before')
    @classmethod
    def coerce_recurrence(cls, v: Any) -> Optional[RecurrenceRule]:
        if v is None or isinstance(v, RecurrenceRule):
            return v
        try:
            return RecurrenceRule(str(v).strip().lower())
        except ValueError:
            return None

    @field_validator('interval_days', mode='before')
    @classmethod
    def coerce_interval(cls, v: Any) -> Optional[int]:
        number = to_finite_float(v)
        if number is None or int(number) < 1:
            return None
        return int(number)

    @field_validator('next_occurrence', 'end_date', mode='before')
    @classmethod
    def coerce_optional_datetime(cls, v: Any) -> Optional[datetime]:
        return ensure_datetime(v)

    @field_validator('reminder_notification_id', mode='before')
    @classmethod
    def coerce_handle(cls, v: Any) -> Optional[str]:
        return None if v is None or v == "" else str(v)

    def to_instance(self, occurrence: datetime, now: Optional[datetime] = None) -> Transaction:
        """Materialize one occurrence of this series as a ledger line."""
        stamp = now or utcnow()
        return Transaction(
            title=self.title,
            amount=self.amount,
            type=self.type,
            category=self.category,
            date=occurrence,
            created_at=stamp,
            updated_at=stamp,
            recurring_parent_id=self.id,
        )


LedgerRecord = Annotated[
    Union[Transaction, RecurringTemplate],
    Field(discriminator="kind"),
]

_ledger_record_adapter = TypeAdapter(LedgerRecord)


def parse_ledger_record(raw: dict) -> Union[Transaction, RecurringTemplate]:
    """
    Validate a stored record into the matching model.

    Records written before `kind` existed used an isRecurringTemplate
    flag; that flag decides the kind when `kind` is absent.
    """
    data = dict(raw)
    if "kind" not in data:
        data["kind"] = "template" if data.get("isRecurringTemplate") else "instance"
    return _ledger_record_adapter.validate_python(data)
