"""Vaccine catalog — the vaccinations offered when recording a dose.

Grouped by the categories of the German vaccination calendar (STIKO).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class VaccineCategory(str, Enum):
    STANDARD = "Standard"
    ADULT = "Erwachsene"
    COVID = "COVID-19"
    TRAVEL = "Reise"
    REGIONAL = "Regional"
    OTHER = "Sonstige"


CATEGORY_LABELS: dict[VaccineCategory, str] = {
    VaccineCategory.STANDARD: "Standardimpfungen (STIKO)",
    VaccineCategory.ADULT: "Erwachsenen-Impfungen",
    VaccineCategory.COVID: "COVID-19",
    VaccineCategory.TRAVEL: "Reiseimpfungen",
    VaccineCategory.REGIONAL: "Regionale Impfungen",
    VaccineCategory.OTHER: "Sonstige",
}


@dataclass(frozen=True)
class VaccineInfo:
    id: str
    name: str
    description: str
    category: VaccineCategory


_S, _A, _C, _T, _R, _O = (
    VaccineCategory.STANDARD,
    VaccineCategory.ADULT,
    VaccineCategory.COVID,
    VaccineCategory.TRAVEL,
    VaccineCategory.REGIONAL,
    VaccineCategory.OTHER,
)

VACCINES: tuple[VaccineInfo, ...] = (
    VaccineInfo("tetanus", "Tetanus (Wundstarrkrampf)", "Bakterielle Infektion", _S),
    VaccineInfo("diphtherie", "Diphtherie", "Bakterielle Infektion der Atemwege", _S),
    VaccineInfo("pertussis", "Pertussis (Keuchhusten)", "Bakterielle Atemwegsinfektion", _S),
    VaccineInfo("polio", "Poliomyelitis (Kinderlähmung)", "Virale Infektion", _S),
    VaccineInfo("hib", "Haemophilus influenzae Typ b (Hib)", "Bakterielle Infektion", _S),
    VaccineInfo("hepatitis_b", "Hepatitis B", "Virale Leberentzündung", _S),
    VaccineInfo("pneumokokken", "Pneumokokken", "Bakterielle Infektion", _S),
    VaccineInfo("rotaviren", "Rotaviren", "Virale Magen-Darm-Infektion", _S),
    VaccineInfo("meningokokken_c", "Meningokokken C", "Bakterielle Hirnhautentzündung", _S),
    VaccineInfo("meningokokken_b", "Meningokokken B", "Bakterielle Hirnhautentzündung", _S),
    VaccineInfo("masern", "Masern", "Virale Infektion", _S),
    VaccineInfo("mumps", "Mumps (Ziegenpeter)", "Virale Infektion", _S),
    VaccineInfo("roeteln", "Röteln", "Virale Infektion", _S),
    VaccineInfo("varizellen", "Varizellen (Windpocken)", "Virale Infektion", _S),
    VaccineInfo("hpv", "HPV (Humane Papillomviren)", "Schutz vor Gebärmutterhalskrebs", _S),
    VaccineInfo("influenza", "Influenza (Grippe)", "Jährliche Schutzimpfung", _A),
    VaccineInfo("herpes_zoster", "Herpes Zoster (Gürtelrose)", "Für Personen ab 50 Jahren", _A),
    VaccineInfo("rsv", "RSV (Respiratorisches Synzytial-Virus)", "Atemwegsinfektion", _A),
    VaccineInfo("covid19", "COVID-19", "Corona-Schutzimpfung", _C),
    VaccineInfo("hepatitis_a", "Hepatitis A", "Reiseimpfung", _T),
    VaccineInfo("typhus", "Typhus", "Reiseimpfung", _T),
    VaccineInfo("tollwut", "Tollwut", "Reiseimpfung bei Tierkontakt", _T),
    VaccineInfo("gelbfieber", "Gelbfieber", "Pflichtimpfung für bestimmte Länder", _T),
    VaccineInfo("japanische_enzephalitis", "Japanische Enzephalitis", "Reiseimpfung Asien", _T),
    VaccineInfo("cholera", "Cholera", "Reiseimpfung", _T),
    VaccineInfo("meningokokken_acwy", "Meningokokken ACWY", "Reiseimpfung Afrika/Asien", _T),
    VaccineInfo("dengue", "Dengue-Fieber", "Reiseimpfung für Endemiegebiete", _T),
    VaccineInfo("fsme", "FSME (Frühsommer-Meningoenzephalitis)", "Zeckenschutzimpfung", _R),
    VaccineInfo("sonstige", "Sonstige Impfung", "Andere Impfung (manuelle Eingabe)", _O),
)


def by_category(category: VaccineCategory) -> list[VaccineInfo]:
    return [v for v in VACCINES if v.category == category]


def find_vaccine(name: str) -> VaccineInfo | None:
    """Match by display name (case-insensitive) or by catalog id."""
    wanted = name.strip().lower()
    for vaccine in VACCINES:
        if vaccine.name.lower() == wanted or vaccine.id == wanted:
            return vaccine
    return None
