"""Static preventive-care schedules.

Adult check-ups recur on an interval and are filtered by age and sex.
Pediatric U-exams are one-time events at a fixed offset from birth.

No I/O: this module only holds data.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SexEligibility(str, Enum):
    ALL = "all"
    MALE = "male"
    FEMALE = "female"


@dataclass(frozen=True)
class CheckUpDefinition:
    """A recurring adult check-up for an age band."""

    event_type: str
    description: str
    min_age: int                      # years, inclusive
    recurrence_months: int
    sex_eligibility: SexEligibility = SexEligibility.ALL
    max_age: int | None = None        # years, inclusive; None = no upper bound


@dataclass(frozen=True)
class ExaminationDefinition:
    """A one-time pediatric screening exam (U-Untersuchung)."""

    event_type: str
    days_from_birth: int
    description: str


ADULT_CHECK_UPS: tuple[CheckUpDefinition, ...] = (
    CheckUpDefinition(
        event_type="Zahnvorsorge",
        description="Zahnärztliche Kontrolluntersuchung (Bonusheft wichtig)",
        min_age=18,
        recurrence_months=6,
    ),
    # Two bands of the same type; the generator keeps the higher min_age match
    CheckUpDefinition(
        event_type="Gebärmutterhalskrebs-Screening",
        description="Pap-Abstrich zur Früherkennung von Gebärmutterhalskrebs",
        min_age=20,
        max_age=34,
        recurrence_months=12,
        sex_eligibility=SexEligibility.FEMALE,
    ),
    CheckUpDefinition(
        event_type="Gebärmutterhalskrebs-Screening",
        description="Kombi-Test: Pap-Abstrich und HPV-Test",
        min_age=35,
        recurrence_months=36,
        sex_eligibility=SexEligibility.FEMALE,
    ),
    CheckUpDefinition(
        event_type="Brustkrebsvorsorge",
        description="Abtasten der Brust und Achsel-Lymphknoten",
        min_age=30,
        recurrence_months=12,
        sex_eligibility=SexEligibility.FEMALE,
    ),
    CheckUpDefinition(
        event_type="Mammographie",
        description="Mammographie-Screening zur Brustkrebsfrüherkennung",
        min_age=50,
        max_age=75,
        recurrence_months=24,
        sex_eligibility=SexEligibility.FEMALE,
    ),
    CheckUpDefinition(
        event_type="Gesundheits-Check-up",
        description="Allgemeiner Check-up: Anamnese, Untersuchung, Labor, Impfstatus",
        min_age=35,
        recurrence_months=36,
    ),
    CheckUpDefinition(
        event_type="Hautkrebs-Screening",
        description="Untersuchung der Haut beim Hautarzt oder Hausarzt",
        min_age=35,
        recurrence_months=24,
    ),
    CheckUpDefinition(
        event_type="Prostatakrebs-Vorsorge",
        description="Tastuntersuchung der Prostata beim Urologen",
        min_age=45,
        recurrence_months=12,
        sex_eligibility=SexEligibility.MALE,
    ),
    CheckUpDefinition(
        event_type="Darmkrebsvorsorge",
        description="Stuhltest (jährlich) oder Darmspiegelung nach festgelegten Intervallen",
        min_age=50,
        recurrence_months=12,
    ),
)


U_EXAMINATIONS: tuple[ExaminationDefinition, ...] = (
    ExaminationDefinition("U1", 0, "Direkt nach der Geburt"),
    ExaminationDefinition("U2", 7, "3. bis 10. Lebenstag"),
    ExaminationDefinition("U3", 31, "4. bis 5. Lebenswoche"),
    ExaminationDefinition("U4", 105, "3. bis 4. Lebensmonat"),
    ExaminationDefinition("U5", 195, "6. bis 7. Lebensmonat"),
    ExaminationDefinition("U6", 330, "10. bis 12. Lebensmonat"),
    ExaminationDefinition("U7", 675, "21. bis 24. Lebensmonat (ca. 2 Jahre)"),
    ExaminationDefinition("U7a", 1050, "34. bis 36. Lebensmonat (ca. 3 Jahre)"),
    ExaminationDefinition("U8", 1410, "46. bis 48. Lebensmonat (ca. 4 Jahre)"),
    ExaminationDefinition("U9", 1860, "60. bis 64. Lebensmonat (ca. 5 Jahre)"),
)


def find_examination(event_type: str) -> ExaminationDefinition | None:
    """Return the U-exam definition with this type, or None."""
    for exam in U_EXAMINATIONS:
        if exam.event_type == event_type:
            return exam
    return None


def find_check_up(event_type: str) -> CheckUpDefinition | None:
    """Case-insensitive lookup of the first check-up band with this type."""
    wanted = event_type.strip().lower()
    for check_up in ADULT_CHECK_UPS:
        if check_up.event_type.lower() == wanted:
            return check_up
    return None
