"""
Configuration Management for HustleLedger

Uses pydantic-settings for type-safe configuration from environment variables.

All tunables for the recurrence and budget engines live here so the
defaults (alert thresholds, reminder hour, storage keys) are visible in
one place and can be overridden from the environment or a .env file.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BudgetSettings(BaseSettings):
    """Budget alert engine configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGET_",
        extra="ignore"
    )

    default_thresholds: str = Field(
        default="50,80,100",
        description="Comma-separated alert thresholds (percent of limit)"
    )
    default_cadence: str = Field(
        default="monthly",
        description="Cadence used when a budget does not declare one"
    )
    notifications_default: bool = Field(
        default=True,
        description="Whether budget notifications are on when no preference is stored"
    )
    # Crossings are recorded even while muted so that re-enabling
    # notifications mid-period does not replay old alerts.
    record_thresholds_when_muted: bool = Field(
        default=True,
        description="Record threshold crossings while notifications are disabled"
    )

    @field_validator('default_cadence')
    @classmethod
    def validate_cadence(cls, v: str) -> str:
        normalized = v.strip().lower()
        if normalized not in ("daily", "weekly", "monthly"):
            raise ValueError(f"Unsupported budget cadence: {v}")
        return normalized

    @property
    def thresholds_list(self) -> list[float]:
        """Get default thresholds as a sorted, de-duplicated list."""
        values = set()
        for raw in self.default_thresholds.split(","):
            raw = raw.strip()
            if not raw:
                continue
            values.add(float(raw))
        return sorted(values)


class RecurrenceSettings(BaseSettings):
    """Recurring transaction configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RECURRENCE_",
        extra="ignore"
    )

    reminder_hour: int = Field(
        default=9,
        ge=0,
        le=23,
        description="Hour of day (local to the occurrence) for day-before reminders"
    )
    currency_symbol: str = Field(
        default="$",
        description="Symbol used in recurring transaction notifications"
    )


class StorageSettings(BaseSettings):
    """Key-value storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        extra="ignore"
    )

    data_dir: str = Field(
        default=".hustleledger",
        description="Directory for the JSON file store"
    )
    file_name: str = Field(
        default="store.json",
        description="Name of the JSON document inside data_dir"
    )

    # Keys within the store
    transactions_key: str = Field(default="ledger:transactions")
    budgets_key: str = Field(default="@hustleledger:budgets")
    budget_notifications_key: str = Field(
        default="@hustleledger/settings/budgetNotificationsEnabled"
    )
    recurring_notifications_key: str = Field(
        default="settings:recurringNotifications"
    )
    scheduler_key: str = Field(default="scheduler:lastRun")


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    @property
    def is_development(self) -> bool:
        """Collaborator failures are only logged outside production."""
        return self.debug_mode or self.app_environment.lower() != "production"


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def budget(self) -> BudgetSettings:
        return BudgetSettings()

    @property
    def recurrence(self) -> RecurrenceSettings:
        return RecurrenceSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, with a
    "<name>_error" entry for every section that failed to load.
    """
    results = {}

    settings = get_settings()

    for name in ("budget", "recurrence", "storage", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
