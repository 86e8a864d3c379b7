"""
VitaCare Reminders — SQLite storage.

UserDB holds account holders and their children (the subjects).
RecordDB holds the three kinds of recorded health events: U-exams,
adult check-ups and vaccinations. Dates are stored as ISO strings.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from vitacare.core.due_dates import next_due_date
from vitacare.core.schedule_generator import generate_pediatric_schedule
from vitacare.data.models import (
    Child,
    EventKind,
    RecordedEvent,
    Sex,
    Subject,
    User,
    child_subject_id,
    self_subject_id,
)

if TYPE_CHECKING:
    from vitacare.core.crypto import NotesCipher

logger = logging.getLogger(__name__)


def _to_date(value: str | None) -> date | None:
    """Parse an ISO date column. Raises ValueError on malformed data."""
    if not value:
        return None
    return date.fromisoformat(value[:10])


def _from_date(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _to_sex(value: str | None) -> Sex | None:
    return Sex(value) if value else None


class _SQLiteStore:
    """Connection handling shared by the storage classes."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from vitacare.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        raise NotImplementedError


class UserDB(_SQLiteStore):
    """SQLite-backed storage for account holders and their children."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    telegram_user_id INTEGER PRIMARY KEY,
                    display_name     TEXT NOT NULL,
                    birth_date       TEXT,
                    sex              TEXT,
                    created_at       TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS children (
                    id          INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id     INTEGER NOT NULL,
                    first_name  TEXT    NOT NULL,
                    last_name   TEXT    NOT NULL DEFAULT '',
                    birth_date  TEXT    NOT NULL,
                    sex         TEXT
                )
            """)
        logger.debug("Users/children tables initialized at %s", self._db_path)

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            telegram_user_id=row["telegram_user_id"],
            display_name=row["display_name"],
            birth_date=_to_date(row["birth_date"]),
            sex=_to_sex(row["sex"]),
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_child(row: sqlite3.Row) -> Child:
        return Child(
            id=row["id"],
            user_id=row["user_id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            birth_date=_to_date(row["birth_date"]),
            sex=_to_sex(row["sex"]),
        )

    # -- users --------------------------------------------------------------

    def add_user(self, telegram_user_id: int, display_name: str) -> User:
        """Register a new account holder."""
        now = datetime.now().isoformat()
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO users (telegram_user_id, display_name, created_at) VALUES (?, ?, ?)",
                (telegram_user_id, display_name, now),
            )
        logger.info("User registered: %d '%s'", telegram_user_id, display_name)
        return User(telegram_user_id=telegram_user_id, display_name=display_name, created_at=now)

    def get_user(self, telegram_user_id: int) -> User | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE telegram_user_id = ?", (telegram_user_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def is_registered(self, telegram_user_id: int) -> bool:
        return self.get_user(telegram_user_id) is not None

    def list_users(self) -> list[User]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY created_at").fetchall()
        return [self._row_to_user(r) for r in rows]

    def set_profile(self, telegram_user_id: int, birth_date: date, sex: Sex) -> User:
        """Store birth date and sex, which enable check-up recommendations."""
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE users SET birth_date = ?, sex = ? WHERE telegram_user_id = ?",
                (birth_date.isoformat(), sex.value, telegram_user_id),
            )
        if cursor.rowcount == 0:
            raise ValueError(f"User {telegram_user_id} not found")
        logger.info("Profile updated for user %d", telegram_user_id)
        return self.get_user(telegram_user_id)

    # -- children -----------------------------------------------------------

    def add_child(
        self,
        user_id: int,
        first_name: str,
        birth_date: date,
        last_name: str = "",
        sex: Sex | None = None,
    ) -> Child:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO children (user_id, first_name, last_name, birth_date, sex)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    user_id, first_name.strip(), last_name.strip(),
                    birth_date.isoformat(), sex.value if sex else None,
                ),
            )
            child_id = cursor.lastrowid

        child = Child(
            id=child_id,
            user_id=user_id,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            birth_date=birth_date,
            sex=sex,
        )
        logger.info("Child added: #%d '%s' for user %d", child_id, child.full_name, user_id)
        return child

    def get_child(self, child_id: int, user_id: int | None = None) -> Child | None:
        """Fetch a child, optionally only if it belongs to `user_id`."""
        query = "SELECT * FROM children WHERE id = ?"
        params: list = [child_id]
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)
        with self._connect() as conn:
            row = conn.execute(query, params).fetchone()
        if row is None:
            return None
        return self._row_to_child(row)

    def list_children(self, user_id: int) -> list[Child]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM children WHERE user_id = ? ORDER BY birth_date", (user_id,),
            ).fetchall()
        return [self._row_to_child(r) for r in rows]

    def delete_child(self, child_id: int) -> bool:
        """Delete a child together with its U-exams and vaccinations."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM children WHERE id = ?", (child_id,))
            for table in ("u_examinations", "vaccinations"):
                if conn.execute(
                    "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (table,),
                ).fetchone():
                    conn.execute(f"DELETE FROM {table} WHERE child_id = ?", (child_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Child #%d deleted", child_id)
        return deleted

    def list_subjects(self, user_id: int) -> list[Subject]:
        """The account holder followed by their children, as classifier subjects."""
        user = self.get_user(user_id)
        subjects = [Subject.from_user(user)] if user else []
        subjects.extend(Subject.from_child(c) for c in self.list_children(user_id))
        return subjects


class RecordDB(_SQLiteStore):
    """SQLite-backed storage for U-exams, check-ups and vaccinations.

    Notes are encrypted at rest when a NotesCipher is supplied.
    """

    def __init__(self, db_path: str | None = None, cipher: NotesCipher | None = None) -> None:
        self._cipher = cipher
        super().__init__(db_path)

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS u_examinations (
                    id               INTEGER PRIMARY KEY AUTOINCREMENT,
                    child_id         INTEGER NOT NULL,
                    user_id          INTEGER NOT NULL,
                    examination_type TEXT    NOT NULL,
                    due_date         TEXT    NOT NULL,
                    actual_date      TEXT,
                    doctor_name      TEXT,
                    notes            TEXT
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS check_ups (
                    id              INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id         INTEGER NOT NULL,
                    check_up_type   TEXT    NOT NULL,
                    due_date        TEXT    NOT NULL,
                    actual_date     TEXT,
                    interval_months INTEGER NOT NULL,
                    doctor_name     TEXT,
                    notes           TEXT
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS vaccinations (
                    id               INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id          INTEGER NOT NULL,
                    child_id         INTEGER,
                    vaccine_name     TEXT    NOT NULL,
                    vaccination_date TEXT    NOT NULL,
                    next_due_date    TEXT,
                    doctor_name      TEXT,
                    batch_number     TEXT,
                    notes            TEXT
                )
            """)
        logger.debug("Record tables initialized at %s", self._db_path)

    # -- notes --------------------------------------------------------------

    def _seal(self, notes: str | None) -> str | None:
        if not notes:
            return None
        return self._cipher.encrypt(notes) if self._cipher else notes

    def _open(self, stored: str | None) -> str | None:
        if not stored:
            return None
        return self._cipher.decrypt(stored) if self._cipher else stored

    # -- row converters -----------------------------------------------------

    def _row_to_examination(self, row: sqlite3.Row) -> RecordedEvent:
        return RecordedEvent(
            id=row["id"],
            subject_id=child_subject_id(row["child_id"]),
            kind=EventKind.EXAMINATION,
            event_type=row["examination_type"],
            due_date=_to_date(row["due_date"]),
            actual_date=_to_date(row["actual_date"]),
            notes=self._open(row["notes"]),
            doctor_name=row["doctor_name"],
        )

    def _row_to_check_up(self, row: sqlite3.Row) -> RecordedEvent:
        return RecordedEvent(
            id=row["id"],
            subject_id=self_subject_id(row["user_id"]),
            kind=EventKind.CHECK_UP,
            event_type=row["check_up_type"],
            due_date=_to_date(row["due_date"]),
            actual_date=_to_date(row["actual_date"]),
            notes=self._open(row["notes"]),
            doctor_name=row["doctor_name"],
            interval_months=row["interval_months"],
        )

    def _row_to_vaccination(self, row: sqlite3.Row) -> RecordedEvent:
        if row["child_id"] is not None:
            subject_id = child_subject_id(row["child_id"])
        else:
            subject_id = self_subject_id(row["user_id"])
        return RecordedEvent(
            id=row["id"],
            subject_id=subject_id,
            kind=EventKind.VACCINATION,
            event_type=row["vaccine_name"],
            due_date=_to_date(row["next_due_date"]),
            notes=self._open(row["notes"]),
            doctor_name=row["doctor_name"],
            batch_number=row["batch_number"],
        )

    # -- U-exams ------------------------------------------------------------

    def seed_examinations(self, child: Child) -> list[RecordedEvent]:
        """Insert every U-exam for a newly registered child."""
        schedule = generate_pediatric_schedule(child.birth_date)
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO u_examinations (child_id, user_id, examination_type, due_date)
                VALUES (?, ?, ?, ?)
                """,
                [
                    (child.id, child.user_id, exam.event_type, exam.due_date.isoformat())
                    for exam in schedule
                ],
            )
        logger.info("Seeded %d U-exams for child #%d", len(schedule), child.id)
        return self.list_examinations(child.id)

    def get_examination(self, exam_id: int, user_id: int | None = None) -> RecordedEvent | None:
        query = "SELECT * FROM u_examinations WHERE id = ?"
        params: list = [exam_id]
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)
        with self._connect() as conn:
            row = conn.execute(query, params).fetchone()
        if row is None:
            return None
        return self._row_to_examination(row)

    def list_examinations(self, child_id: int) -> list[RecordedEvent]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM u_examinations WHERE child_id = ? ORDER BY due_date",
                (child_id,),
            ).fetchall()
        return [self._row_to_examination(r) for r in rows]

    def mark_examination_done(
        self,
        exam_id: int,
        actual_date: date | None = None,
        doctor_name: str | None = None,
        notes: str | None = None,
    ) -> RecordedEvent:
        """Record that a U-exam took place (default: today)."""
        actual_date = actual_date or date.today()
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE u_examinations
                   SET actual_date = ?,
                       doctor_name = COALESCE(?, doctor_name),
                       notes = COALESCE(?, notes)
                 WHERE id = ?
                """,
                (actual_date.isoformat(), doctor_name, self._seal(notes), exam_id),
            )
        if cursor.rowcount == 0:
            raise ValueError(f"Examination {exam_id} not found")
        logger.info("Examination #%d done on %s", exam_id, actual_date)
        return self.get_examination(exam_id)

    # -- check-ups ----------------------------------------------------------

    def add_check_up(
        self,
        user_id: int,
        check_up_type: str,
        interval_months: int,
        last_date: date | None = None,
        notes: str | None = None,
        doctor_name: str | None = None,
        today: date | None = None,
    ) -> RecordedEvent:
        """Track a recurring check-up. Never done before means due today."""
        due = next_due_date(last_date, interval_months, today=today)
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO check_ups
                    (user_id, check_up_type, due_date, interval_months, doctor_name, notes)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (user_id, check_up_type, due.isoformat(), interval_months,
                 doctor_name, self._seal(notes)),
            )
            check_up_id = cursor.lastrowid
        logger.info(
            "Check-up added: #%d '%s' every %d months, due %s",
            check_up_id, check_up_type, interval_months, due,
        )
        return self.get_check_up(check_up_id)

    def get_check_up(self, check_up_id: int, user_id: int | None = None) -> RecordedEvent | None:
        query = "SELECT * FROM check_ups WHERE id = ?"
        params: list = [check_up_id]
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)
        with self._connect() as conn:
            row = conn.execute(query, params).fetchone()
        if row is None:
            return None
        return self._row_to_check_up(row)

    def list_check_ups(self, user_id: int, open_only: bool = False) -> list[RecordedEvent]:
        query = "SELECT * FROM check_ups WHERE user_id = ?"
        if open_only:
            query += " AND actual_date IS NULL"
        query += " ORDER BY due_date"
        with self._connect() as conn:
            rows = conn.execute(query, (user_id,)).fetchall()
        return [self._row_to_check_up(r) for r in rows]

    def complete_check_up(
        self,
        check_up_id: int,
        actual_date: date | None = None,
        doctor_name: str | None = None,
        notes: str | None = None,
    ) -> RecordedEvent:
        """Mark a check-up done and schedule the next occurrence.

        Returns the newly created follow-up check-up. Raises ValueError if
        the check-up is unknown or already completed.
        """
        actual_date = actual_date or date.today()
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM check_ups WHERE id = ?", (check_up_id,),
            ).fetchone()
            if row is None:
                raise ValueError(f"Check-up {check_up_id} not found")
            if row["actual_date"] is not None:
                raise ValueError(f"Check-up {check_up_id} already completed")

            conn.execute(
                """
                UPDATE check_ups
                   SET actual_date = ?,
                       doctor_name = COALESCE(?, doctor_name),
                       notes = COALESCE(?, notes)
                 WHERE id = ?
                """,
                (actual_date.isoformat(), doctor_name, self._seal(notes), check_up_id),
            )
            follow_up_due = next_due_date(actual_date, row["interval_months"])
            cursor = conn.execute(
                """
                INSERT INTO check_ups (user_id, check_up_type, due_date, interval_months)
                VALUES (?, ?, ?, ?)
                """,
                (row["user_id"], row["check_up_type"], follow_up_due.isoformat(),
                 row["interval_months"]),
            )
            follow_up_id = cursor.lastrowid

        logger.info(
            "Check-up #%d '%s' done on %s, next due %s (#%d)",
            check_up_id, row["check_up_type"], actual_date, follow_up_due, follow_up_id,
        )
        return self.get_check_up(follow_up_id)

    # -- vaccinations -------------------------------------------------------

    def add_vaccination(
        self,
        user_id: int,
        vaccine_name: str,
        vaccination_date: date,
        next_due: date | None = None,
        child_id: int | None = None,
        doctor_name: str | None = None,
        batch_number: str | None = None,
        notes: str | None = None,
    ) -> RecordedEvent:
        """Record a dose. `next_due` drives the reminder for the next one."""
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO vaccinations
                    (user_id, child_id, vaccine_name, vaccination_date, next_due_date,
                     doctor_name, batch_number, notes)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (user_id, child_id, vaccine_name, vaccination_date.isoformat(),
                 _from_date(next_due), doctor_name, batch_number, self._seal(notes)),
            )
            vaccination_id = cursor.lastrowid
        logger.info(
            "Vaccination added: #%d '%s' on %s (next due: %s)",
            vaccination_id, vaccine_name, vaccination_date, next_due,
        )
        return self.get_vaccination(vaccination_id)

    def get_vaccination(self, vaccination_id: int, user_id: int | None = None) -> RecordedEvent | None:
        query = "SELECT * FROM vaccinations WHERE id = ?"
        params: list = [vaccination_id]
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)
        with self._connect() as conn:
            row = conn.execute(query, params).fetchone()
        if row is None:
            return None
        return self._row_to_vaccination(row)

    def list_vaccinations(self, user_id: int) -> list[RecordedEvent]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM vaccinations WHERE user_id = ? ORDER BY vaccination_date",
                (user_id,),
            ).fetchall()
        return [self._row_to_vaccination(r) for r in rows]

    def record_follow_up_dose(
        self,
        vaccination_id: int,
        given_on: date | None = None,
        next_due: date | None = None,
        notes: str | None = None,
    ) -> RecordedEvent:
        """Record the dose a vaccination reminder was about.

        Clears the reminder on the original record and stores the new dose,
        optionally with its own next due date. Raises ValueError if the
        vaccination is unknown or has no pending next dose.
        """
        given_on = given_on or date.today()
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM vaccinations WHERE id = ?", (vaccination_id,),
            ).fetchone()
            if row is None:
                raise ValueError(f"Vaccination {vaccination_id} not found")
            if row["next_due_date"] is None:
                raise ValueError(f"Vaccination {vaccination_id} has no pending next dose")
            conn.execute(
                "UPDATE vaccinations SET next_due_date = NULL WHERE id = ?",
                (vaccination_id,),
            )
        return self.add_vaccination(
            user_id=row["user_id"],
            vaccine_name=row["vaccine_name"],
            vaccination_date=given_on,
            next_due=next_due,
            child_id=row["child_id"],
            notes=notes,
        )

    # -- all events ---------------------------------------------------------

    def list_events(self, user_id: int) -> list[RecordedEvent]:
        """Every recorded event of a household, for reminder classification."""
        with self._connect() as conn:
            exams = conn.execute(
                "SELECT * FROM u_examinations WHERE user_id = ?", (user_id,),
            ).fetchall()
            check_ups = conn.execute(
                "SELECT * FROM check_ups WHERE user_id = ?", (user_id,),
            ).fetchall()
            vaccinations = conn.execute(
                "SELECT * FROM vaccinations WHERE user_id = ?", (user_id,),
            ).fetchall()

        events = [self._row_to_examination(r) for r in exams]
        events.extend(self._row_to_check_up(r) for r in check_ups)
        events.extend(self._row_to_vaccination(r) for r in vaccinations)
        return events
