"""
Abstract Haptics Interface

The device vibration engine is a platform SDK and lives outside this
package. The budget engine only needs one call: "play feedback of this
severity". Hosts wrap their SDK in a HapticsInterface; tests pass a fake.
"""

from abc import ABC, abstractmethod
from enum import Enum


class HapticSeverity(str, Enum):
    """Feedback styles the engine can request."""
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class HapticsInterface(ABC):
    """Host-provided haptic feedback."""

    @abstractmethod
    async def notify(self, severity: HapticSeverity) -> None:
        """
        Play notification feedback of the given severity.

        Implementations should not raise, but callers catch regardless.
        """
        pass


class HapticsError(Exception):
    """Haptic feedback could not be played."""
    pass
