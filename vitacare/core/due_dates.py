"""Due-date arithmetic for recurring events — pure business logic.

Month arithmetic clamps to the last valid day of the target month:
2024-01-31 + 1 month = 2024-02-29, 2023-01-31 + 1 month = 2023-02-28.
"""

from __future__ import annotations

import calendar
from datetime import date


def add_months(start: date, months: int) -> date:
    """Advance `start` by a number of calendar months (negative goes back)."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day))


def next_due_date(
    last_performed: date | None,
    recurrence_months: int,
    today: date | None = None,
) -> date:
    """Next occurrence of a recurring event.

    Never performed means due immediately: returns `today`.
    """
    if last_performed is None:
        return today or date.today()
    return add_months(last_performed, recurrence_months)


def days_between(start: date, end: date) -> int:
    """Signed calendar-day difference `end - start`."""
    return (end - start).days
