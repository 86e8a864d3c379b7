"""Reminder summaries and human-readable text.

Pure functions over classified reminders: counts per urgency tier,
one-line messages, banner titles and push notification payloads.
Wall-clock time only enters through `BannerDismissal.is_active(now)`.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from vitacare.core.reminders import (
    DEFAULT_HORIZON_DAYS,
    DEFAULT_URGENT_WITHIN_DAYS,
    ReminderInfo,
    Urgency,
)


@dataclass(frozen=True)
class ReminderSummary:
    overdue_count: int = 0
    urgent_count: int = 0
    upcoming_count: int = 0
    total_count: int = 0


@dataclass(frozen=True)
class ReminderNotification:
    """Payload handed to the notification transport."""

    title: str
    body: str
    url: str = "/reminders"


@dataclass
class BannerDismissal:
    """User-owned preference: when the reminder banner was last dismissed."""

    dismissed_at: datetime | None = None

    def is_active(self, now: datetime, hours: int = 1) -> bool:
        """True while the dismissal is younger than `hours`."""
        if self.dismissed_at is None:
            return False
        return now - self.dismissed_at < timedelta(hours=hours)


def _plural(count: int, singular: str, plural: str | None = None) -> str:
    if count == 1:
        return f"{count} {singular}"
    return f"{count} {plural or singular + 's'}"


def summarize(reminders: Sequence[ReminderInfo]) -> ReminderSummary:
    """Tally reminders by urgency tier."""
    return ReminderSummary(
        overdue_count=sum(1 for r in reminders if r.urgency == Urgency.OVERDUE),
        urgent_count=sum(1 for r in reminders if r.urgency == Urgency.URGENT),
        upcoming_count=sum(1 for r in reminders if r.urgency == Urgency.UPCOMING),
        total_count=len(reminders),
    )


def summarize_by_subject(reminders: Iterable[ReminderInfo]) -> dict[str, ReminderSummary]:
    """Per-subject summaries, keyed by subject id."""
    grouped: dict[str, list[ReminderInfo]] = {}
    for reminder in reminders:
        grouped.setdefault(reminder.subject.id, []).append(reminder)
    return {subject_id: summarize(items) for subject_id, items in grouped.items()}


def format_message(reminder: ReminderInfo) -> str:
    """One-line status sentence, e.g. "Mia Weber - U6 is due in 3 days"."""
    prefix = f"{reminder.subject.display_name} - {reminder.event.event_type}"
    days = reminder.days_until_due

    if reminder.is_overdue:
        return f"{prefix} is {_plural(abs(days), 'day')} overdue"
    if days == 0:
        return f"{prefix} is due today"
    if days == 1:
        return f"{prefix} is due tomorrow"
    return f"{prefix} is due in {days} days"


def format_digest(reminders: Sequence[ReminderInfo], limit: int = 3) -> str:
    """Bullet list of the first `limit` messages, then a remainder line."""
    lines = [f"• {format_message(r)}" for r in reminders[:limit]]
    remaining = len(reminders) - limit
    if remaining > 0:
        lines.append(f"... and {remaining} more")
    return "\n".join(lines)


def banner_title(summary: ReminderSummary, noun: str = "reminder") -> str:
    """Headline for the reminder banner, led by the most urgent tier."""
    if summary.overdue_count > 0:
        return f"{_plural(summary.overdue_count, noun)} overdue!"
    if summary.urgent_count > 0:
        return f"{_plural(summary.urgent_count, noun)} due soon"
    return f"{_plural(summary.total_count, noun)} coming up"


def build_notification(
    summary: ReminderSummary,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
    urgent_within_days: int = DEFAULT_URGENT_WITHIN_DAYS,
) -> ReminderNotification | None:
    """Push payload for a summary, or None when there is nothing to report."""
    if summary.total_count == 0:
        return None

    if summary.overdue_count > 0:
        body = f"You have {_plural(summary.overdue_count, 'overdue appointment')}"
        if summary.urgent_count > 0:
            body += f" and {summary.urgent_count} due soon"
        return ReminderNotification(title="⚠️ Overdue appointments", body=body + ".")

    if summary.urgent_count > 0:
        return ReminderNotification(
            title="📅 Appointments due soon",
            body=(
                f"You have {_plural(summary.urgent_count, 'appointment')} "
                f"in the next {urgent_within_days} days."
            ),
        )

    return ReminderNotification(
        title="📋 Upcoming appointments",
        body=(
            f"You have {_plural(summary.total_count, 'appointment')} "
            f"in the next {horizon_days} days."
        ),
    )
