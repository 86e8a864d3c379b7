"""Telegram notification adapter — implements NotificationPort.

Reminder payloads are rendered as a bold title, the body, and an optional
digest of individual reminders.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from telegram import Bot
from telegram.helpers import escape_markdown

if TYPE_CHECKING:
    from vitacare.core.formatter import ReminderNotification

logger = logging.getLogger(__name__)


def render_reminder(notification: ReminderNotification, details: str = "") -> str:
    """Markdown text for a reminder push; the digest lines are escaped."""
    text = f"*{notification.title}*\n{notification.body}"
    if details:
        text += f"\n\n{escape_markdown(details, version=1)}"
    return text + "\n\nUse /reminders for the full list."


class TelegramNotifier:
    """Telegram implementation of NotificationPort."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def send_message(self, user_id: int, text: str) -> None:
        await self._bot.send_message(chat_id=user_id, text=text)

    async def send_reminder(
        self, user_id: int, notification: ReminderNotification, details: str = "",
    ) -> None:
        await self._bot.send_message(
            chat_id=user_id,
            text=render_reminder(notification, details),
            parse_mode="Markdown",
        )
        logger.debug("Reminder push delivered to %d", user_id)
