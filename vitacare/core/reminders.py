"""Reminder classification — pure business logic.

Takes the recorded events of a household and the current date, and returns
the incomplete ones that need attention, tagged with an urgency tier.

No I/O: the reference date is always passed in.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from enum import Enum

from vitacare.core.due_dates import days_between
from vitacare.data.models import RecordedEvent, Subject

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 30
DEFAULT_URGENT_WITHIN_DAYS = 7


class Urgency(str, Enum):
    OVERDUE = "overdue"
    URGENT = "urgent"
    UPCOMING = "upcoming"


class MissingSubjectPolicy(str, Enum):
    """What to do with an event whose subject cannot be resolved."""

    SKIP = "skip"        # drop it from the output
    STRICT = "strict"    # raise DanglingSubjectError


class DanglingSubjectError(LookupError):
    """Raised in strict mode when an event references an unknown subject."""


@dataclass(frozen=True)
class ReminderInfo:
    """A classified reminder. Recomputed on every pass, never stored."""

    event: RecordedEvent
    subject: Subject
    days_until_due: int          # negative = overdue
    is_overdue: bool
    urgency: Urgency


def urgency_for(days_until_due: int, urgent_within_days: int = DEFAULT_URGENT_WITHIN_DAYS) -> Urgency:
    if days_until_due < 0:
        return Urgency.OVERDUE
    if days_until_due <= urgent_within_days:
        return Urgency.URGENT
    return Urgency.UPCOMING


def classify(
    events: Iterable[RecordedEvent],
    subjects: Iterable[Subject],
    reference_date: date,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
    urgent_within_days: int = DEFAULT_URGENT_WITHIN_DAYS,
    on_missing_subject: MissingSubjectPolicy = MissingSubjectPolicy.SKIP,
) -> list[ReminderInfo]:
    """Classify incomplete events by how soon they are due.

    Completed events and events without a due date are ignored. Events
    further out than `horizon_days` are dropped unless overdue. Overdue
    reminders come first, then everything by ascending days until due.
    """
    subjects_by_id = {s.id: s for s in subjects}
    reminders: list[ReminderInfo] = []

    for event in events:
        if event.is_completed or event.due_date is None:
            continue

        subject = subjects_by_id.get(event.subject_id)
        if subject is None:
            if on_missing_subject == MissingSubjectPolicy.STRICT:
                raise DanglingSubjectError(
                    f"Event {event.kind.value} #{event.id} references "
                    f"unknown subject {event.subject_id!r}"
                )
            logger.debug(
                "Skipping %s #%d: unknown subject %s",
                event.kind.value, event.id, event.subject_id,
            )
            continue

        days_until_due = days_between(reference_date, event.due_date)
        is_overdue = event.due_date < reference_date
        if not is_overdue and days_until_due > horizon_days:
            continue

        reminders.append(
            ReminderInfo(
                event=event,
                subject=subject,
                days_until_due=days_until_due,
                is_overdue=is_overdue,
                urgency=urgency_for(days_until_due, urgent_within_days),
            )
        )

    # sorted() is stable: equal keys keep input order
    return sorted(reminders, key=lambda r: (not r.is_overdue, r.days_until_due))


def group_by_subject(reminders: Iterable[ReminderInfo]) -> dict[str, list[ReminderInfo]]:
    """Split household reminders per subject, preserving their order."""
    grouped: dict[str, list[ReminderInfo]] = {}
    for reminder in reminders:
        grouped.setdefault(reminder.subject.id, []).append(reminder)
    return grouped
