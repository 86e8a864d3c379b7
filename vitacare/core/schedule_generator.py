"""Personalized schedule generation — pure business logic.

Turns the static tables in `vitacare.core.schedules` into the concrete list
of check-ups a subject should track, or the dated U-exams for a child.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from vitacare.core.schedules import (
    ADULT_CHECK_UPS,
    U_EXAMINATIONS,
    CheckUpDefinition,
    SexEligibility,
    find_examination,
)
from vitacare.data.models import Sex

logger = logging.getLogger(__name__)

# Business rule: subjects with sex "diverse" are offered both male- and
# female-targeted check-ups.
DIVERSE_SEES_ALL_SEX_SPECIFIC = True


class UnknownScheduleError(LookupError):
    """Raised when an event type is not part of the static schedule."""


@dataclass(frozen=True)
class CheckUpRecommendation:
    event_type: str
    description: str
    recurrence_months: int


@dataclass(frozen=True)
class ExaminationDueDate:
    event_type: str
    due_date: date
    description: str


def age_in_years(birth_date: date, today: date | None = None) -> int:
    """Whole years elapsed since `birth_date` (floor)."""
    today = today or date.today()
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


def _sex_matches(definition: CheckUpDefinition, sex: Sex) -> bool:
    if definition.sex_eligibility == SexEligibility.ALL:
        return True
    if definition.sex_eligibility.value == sex.value:
        return True
    return sex == Sex.DIVERSE and DIVERSE_SEES_ALL_SEX_SPECIFIC


def applicable_check_ups(
    birth_date: date,
    sex: Sex,
    today: date | None = None,
) -> list[CheckUpDefinition]:
    """All check-up bands matching the subject's age and sex (not deduplicated)."""
    age = age_in_years(birth_date, today)
    result: list[CheckUpDefinition] = []
    for definition in ADULT_CHECK_UPS:
        if age < definition.min_age:
            continue
        if definition.max_age is not None and age > definition.max_age:
            continue
        if _sex_matches(definition, sex):
            result.append(definition)
    return result


def generate_adult_schedule(
    birth_date: date,
    sex: Sex,
    today: date | None = None,
) -> list[CheckUpRecommendation]:
    """Personalized check-up list, one entry per event type.

    When several age bands of a type match, the one with the highest
    min_age wins. Each type keeps the position of its first match.
    """
    by_type: dict[str, CheckUpDefinition] = {}
    for definition in applicable_check_ups(birth_date, sex, today):
        existing = by_type.get(definition.event_type)
        if existing is None or definition.min_age > existing.min_age:
            by_type[definition.event_type] = definition

    schedule = [
        CheckUpRecommendation(
            event_type=d.event_type,
            description=d.description,
            recurrence_months=d.recurrence_months,
        )
        for d in by_type.values()
    ]
    logger.debug(
        "Adult schedule for %s/%s: %s",
        birth_date, sex.value, [s.event_type for s in schedule],
    )
    return schedule


def generate_pediatric_schedule(birth_date: date) -> list[ExaminationDueDate]:
    """Every U-exam with its due date computed from the birth date."""
    return [
        ExaminationDueDate(
            event_type=exam.event_type,
            due_date=birth_date + timedelta(days=exam.days_from_birth),
            description=exam.description,
        )
        for exam in U_EXAMINATIONS
    ]


def pediatric_due_date(birth_date: date, event_type: str) -> date:
    """Due date of a single U-exam.

    Raises UnknownScheduleError if `event_type` is not a known U-exam.
    """
    exam = find_examination(event_type)
    if exam is None:
        raise UnknownScheduleError(f"Unknown examination type: {event_type}")
    return birth_date + timedelta(days=exam.days_from_birth)
