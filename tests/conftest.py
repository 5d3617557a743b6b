"""
Shared fixtures and collaborator fakes.

No real platform calls are made in tests: haptics, notifications and
preferences are replaced by the in-process fakes below.
"""

from datetime import datetime, timezone

import pytest

from hustleledger.config import get_settings
from hustleledger.services.haptics import HapticsError, HapticsInterface, HapticSeverity
from hustleledger.services.notifications import (
    NotificationError,
    NotificationInterface,
    NotificationRequest,
)
from hustleledger.services.preferences import PreferenceStoreInterface
from hustleledger.services.storage import InMemoryKeyValueStorage


class FakeHaptics(HapticsInterface):
    """Records every requested severity."""

    def __init__(self, fail: bool = False):
        self.calls: list[HapticSeverity] = []
        self._fail = fail

    async def notify(self, severity: HapticSeverity) -> None:
        self.calls.append(severity)
        if self._fail:
            raise HapticsError("vibration motor unavailable")


class FakeNotifications(NotificationInterface):
    """Hands out handles mock-1, mock-2, ... and records cancellations."""

    def __init__(self, fail: bool = False):
        self.scheduled: list[NotificationRequest] = []
        self.cancelled: list[str] = []
        self._fail = fail

    async def schedule(self, request: NotificationRequest) -> str:
        if self._fail:
            raise NotificationError("permission denied")
        self.scheduled.append(request)
        return f"mock-{len(self.scheduled)}"

    async def cancel(self, handle: str) -> None:
        if self._fail:
            raise NotificationError("permission denied")
        self.cancelled.append(handle)


class FakePreferences(PreferenceStoreInterface):
    """Fixed budget notification preference."""

    def __init__(self, enabled: bool = True, fail: bool = False):
        self.enabled = enabled
        self.reads = 0
        self._fail = fail

    async def get_budget_notifications_enabled(self) -> bool:
        self.reads += 1
        if self._fail:
            raise RuntimeError("preference backend down")
        return self.enabled


def utc(year: int, month: int, day: int, hour: int = 0) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def fresh_settings():
    """Settings are cached; start every test from the environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def haptics():
    return FakeHaptics()


@pytest.fixture
def notifications():
    return FakeNotifications()


@pytest.fixture
def storage():
    return InMemoryKeyValueStorage()
