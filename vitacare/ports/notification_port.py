"""Notification port — abstract interface for reaching account holders.

Core modules depend on this protocol, never on a specific messaging provider.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from vitacare.core.formatter import ReminderNotification


class NotificationPort(Protocol):
    """Abstract notification interface used by core modules."""

    async def send_message(self, user_id: int, text: str) -> None: ...

    async def send_reminder(
        self, user_id: int, notification: ReminderNotification, details: str = "",
    ) -> None: ...
