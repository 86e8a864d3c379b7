"""Calendar export — build .ics files for due dates.

Each event is a one-hour appointment placeholder on the due date, with an
optional display alarm ahead of time.
"""

from __future__ import annotations

import re
import uuid
from datetime import date, datetime, timedelta

from icalendar import Alarm, Calendar, Event

_PEDIATRIC_LOCATION = "Kinderarztpraxis"
_PEDIATRIC_REMINDER_MINUTES = 7 * 24 * 60


def build_due_date_ics(
    title: str,
    description: str,
    due_date: date,
    location: str | None = None,
    reminder_minutes: int | None = None,
    start_hour: int = 9,
) -> str:
    """Build an iCalendar document with a single VEVENT on `due_date`."""
    start_dt = datetime(due_date.year, due_date.month, due_date.day, start_hour, 0)
    end_dt = start_dt + timedelta(hours=1)

    cal = Calendar()
    cal.add("prodid", "-//VitaCare Reminders//DE")
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "PUBLISH")

    event = Event()
    event.add("uid", f"{uuid.uuid4()}@vitacare")
    event.add("dtstamp", datetime.now())
    event.add("dtstart", start_dt)
    event.add("dtend", end_dt)
    event.add("summary", title)
    event.add("description", description)
    if location:
        event.add("location", location)
    event.add("status", "CONFIRMED")
    event.add("sequence", 0)

    if reminder_minutes:
        alarm = Alarm()
        alarm.add("action", "DISPLAY")
        alarm.add("description", title)
        alarm.add("trigger", timedelta(minutes=-reminder_minutes))
        event.add_component(alarm)

    cal.add_component(event)
    return cal.to_ical().decode("utf-8")


def examination_ics(
    examination_type: str,
    due_date: date,
    child_name: str,
    description: str | None = None,
) -> str:
    """Calendar entry for a child's U-exam, with a reminder one week before."""
    return build_due_date_ics(
        title=f"{examination_type} - {child_name}",
        description=description or (
            f"{examination_type} für {child_name}\n\n"
            "Bitte vereinbaren Sie rechtzeitig einen Termin beim Kinderarzt."
        ),
        due_date=due_date,
        location=_PEDIATRIC_LOCATION,
        reminder_minutes=_PEDIATRIC_REMINDER_MINUTES,
    )


def ics_filename(event_type: str, subject_name: str) -> str:
    """File name like "U6-Mia-Weber.ics"."""
    slug = re.sub(r"\s+", "-", subject_name.strip())
    return f"{event_type}-{slug}.ics"
