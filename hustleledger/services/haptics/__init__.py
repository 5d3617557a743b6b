"""Haptics collaborator package."""

from hustleledger.services.haptics.interface import (
    HapticsError,
    HapticsInterface,
    HapticSeverity,
)

__all__ = [
    "HapticsError",
    "HapticsInterface",
    "HapticSeverity",
]
