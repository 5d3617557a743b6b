"""
Abstract Notification Interface

Local notification delivery (permissions, channels, the OS scheduler) is
owned by the host application. The engines only decide WHEN to notify
and WHAT to say; they hand a NotificationRequest to a
NotificationInterface implementation and keep the returned handle so a
scheduled reminder can be cancelled later.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class NotificationRequest(BaseModel):
    """A notification to deliver now (fire_at=None) or at fire_at."""

    title: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)
    fire_at: Optional[datetime] = Field(
        default=None,
        description="When to deliver; None means immediately"
    )
    sound: bool = True


class NotificationInterface(ABC):
    """Host-provided notification scheduling."""

    @abstractmethod
    async def schedule(self, request: NotificationRequest) -> str:
        """
        Schedule a notification.

        Returns:
            An opaque handle identifying the scheduled notification

        Raises:
            NotificationError: If scheduling fails
        """
        pass

    @abstractmethod
    async def cancel(self, handle: str) -> None:
        """
        Cancel a previously scheduled notification.

        Raises:
            NotificationError: If cancellation fails
        """
        pass


class NotificationError(Exception):
    """Base exception for notification delivery."""
    pass
