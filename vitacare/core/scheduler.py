"""
VitaCare Reminders — Daily reminder push and household queries.

The daily job walks every registered user, classifies the household's
open events, and pushes a summary when anything is overdue or coming up.

This module is provider-agnostic: it depends on the NotificationPort
protocol, not on a specific messaging implementation.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from vitacare.config import settings
from vitacare.core.formatter import build_notification, format_digest, summarize
from vitacare.core.reminders import ReminderInfo, classify
from vitacare.core.schedule_generator import CheckUpRecommendation, generate_adult_schedule

if TYPE_CHECKING:
    from vitacare.data.db import RecordDB, UserDB
    from vitacare.data.models import User
    from vitacare.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


def local_today() -> date:
    """Today's date in the configured TIMEZONE, not the server's."""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).date()


def collect_reminders(
    user_id: int,
    user_db: UserDB,
    record_db: RecordDB,
    today: date | None = None,
) -> list[ReminderInfo]:
    """Classified reminders for the account holder and all their children."""
    subjects = user_db.list_subjects(user_id)
    events = record_db.list_events(user_id)
    return classify(
        events,
        subjects,
        reference_date=today or local_today(),
        horizon_days=settings.REMINDER_HORIZON_DAYS,
        urgent_within_days=settings.URGENT_WITHIN_DAYS,
    )


def recommended_check_ups(
    user: User,
    existing_types: Iterable[str] = (),
    today: date | None = None,
) -> list[CheckUpRecommendation]:
    """Check-ups the user should track but doesn't yet.

    Empty when birth date or sex is missing from the profile.
    """
    if not user.has_complete_profile:
        return []
    tracked = set(existing_types)
    return [
        rec for rec in generate_adult_schedule(user.birth_date, user.sex, today or local_today())
        if rec.event_type not in tracked
    ]


async def send_daily_reminders(
    notifier: NotificationPort,
    user_db: UserDB,
    record_db: RecordDB,
    today: date | None = None,
) -> int:
    """Push a reminder summary to every user with something due.

    A failure for one user is logged and does not stop the others.
    Returns the number of notifications sent.
    """
    today = today or local_today()
    sent = 0

    for user in user_db.list_users():
        try:
            if await _send_reminders_for_user(user, notifier, user_db, record_db, today):
                sent += 1
        except Exception as exc:
            logger.error(
                "Failed to send reminders to %d: %s", user.telegram_user_id, exc,
            )

    logger.info("Daily reminders: %d notification(s) sent", sent)
    return sent


async def _send_reminders_for_user(
    user: User,
    notifier: NotificationPort,
    user_db: UserDB,
    record_db: RecordDB,
    today: date,
) -> bool:
    """Classify one household and notify. Returns True if a push was sent."""
    reminders = collect_reminders(user.telegram_user_id, user_db, record_db, today)
    notification = build_notification(
        summarize(reminders),
        horizon_days=settings.REMINDER_HORIZON_DAYS,
        urgent_within_days=settings.URGENT_WITHIN_DAYS,
    )
    if notification is None:
        return False

    await notifier.send_reminder(
        user.telegram_user_id, notification, details=format_digest(reminders),
    )
    logger.info(
        "Reminder push sent to user %d (%d item(s))",
        user.telegram_user_id, len(reminders),
    )
    return True
