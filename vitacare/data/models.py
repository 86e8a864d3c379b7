"""
VitaCare Reminders — Data Models.

Subjects (the account holder and their children) and the health events
recorded for them. Dates are `datetime.date`; the storage layer converts
to and from ISO strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


class Sex(str, Enum):
    MALE = "male"
    FEMALE = "female"
    DIVERSE = "diverse"


class SubjectKind(str, Enum):
    SELF = "self"
    CHILD = "child"


class EventKind(str, Enum):
    EXAMINATION = "examination"   # pediatric U-exam
    CHECK_UP = "check_up"         # adult preventive check-up
    VACCINATION = "vaccination"


def self_subject_id(user_id: int) -> str:
    return f"{SubjectKind.SELF.value}:{user_id}"


def child_subject_id(child_id: int) -> str:
    return f"{SubjectKind.CHILD.value}:{child_id}"


@dataclass
class User:
    """A registered account holder."""

    telegram_user_id: int
    display_name: str
    birth_date: date | None = None
    sex: Sex | None = None
    created_at: str = ""

    @property
    def has_complete_profile(self) -> bool:
        return self.birth_date is not None and self.sex is not None


@dataclass
class Child:
    """A child registered by an account holder."""

    id: int
    user_id: int
    first_name: str
    last_name: str
    birth_date: date
    sex: Sex | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Subject:
    """The person a recorded event belongs to, as seen by the classifier."""

    id: str                     # "self:<user id>" or "child:<child id>"
    display_name: str
    kind: SubjectKind
    birth_date: date | None = None
    sex: Sex | None = None

    @classmethod
    def from_user(cls, user: User) -> Subject:
        return cls(
            id=self_subject_id(user.telegram_user_id),
            display_name=user.display_name,
            kind=SubjectKind.SELF,
            birth_date=user.birth_date,
            sex=user.sex,
        )

    @classmethod
    def from_child(cls, child: Child) -> Subject:
        return cls(
            id=child_subject_id(child.id),
            display_name=child.full_name,
            kind=SubjectKind.CHILD,
            birth_date=child.birth_date,
            sex=child.sex,
        )


@dataclass
class RecordedEvent:
    """A vaccination, check-up or U-exam tied to exactly one subject.

    Vaccinations carry their next-dose date as `due_date`; `actual_date`
    is the completion date and removes the event from reminders.
    """

    id: int
    subject_id: str
    kind: EventKind
    event_type: str                   # e.g. "U6", "Mammographie", "Masern"
    due_date: date | None
    actual_date: date | None = None
    notes: str | None = None
    doctor_name: str | None = None
    interval_months: int | None = None
    batch_number: str | None = None       # vaccinations only

    @property
    def is_completed(self) -> bool:
        return self.actual_date is not None
