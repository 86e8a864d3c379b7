"""Shared test fixtures and configuration.

Sets up fake environment variables so vitacare.config doesn't sys.exit(),
and provides common fixtures like temp DBs and sample subjects.
"""

import os

# Patch env vars BEFORE any vitacare imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("ALLOWED_USER_IDS", "12345")
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("NOTES_ENCRYPTION_KEY", "")
os.environ.setdefault("LLM_API_KEY", "")

from datetime import date

import pytest


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_vitacare.db")


@pytest.fixture
def user_db(tmp_db_path):
    """Return a UserDB instance backed by a temp file."""
    from vitacare.data.db import UserDB
    return UserDB(db_path=tmp_db_path)


@pytest.fixture
def record_db(tmp_db_path):
    """Return a RecordDB instance sharing the temp file with user_db."""
    from vitacare.data.db import RecordDB
    return RecordDB(db_path=tmp_db_path)


@pytest.fixture
def child_subject():
    from vitacare.data.models import Subject, SubjectKind
    return Subject(
        id="child:1",
        display_name="Mia Weber",
        kind=SubjectKind.CHILD,
        birth_date=date(2020, 1, 1),
    )


@pytest.fixture
def self_subject():
    from vitacare.data.models import Sex, Subject, SubjectKind
    return Subject(
        id="self:12345",
        display_name="Anna",
        kind=SubjectKind.SELF,
        birth_date=date(1972, 3, 10),
        sex=Sex.FEMALE,
    )
