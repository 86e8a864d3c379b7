"""Tests for vitacare.bot.telegram_bot — Telegram bot handlers.

Tests the /addchild conversation flow, command handlers, the reminder
banner and authorization. Handlers run against real temp-file databases;
Telegram objects are mocked.
"""

from datetime import date, datetime, timedelta

import pytest
from unittest.mock import AsyncMock, MagicMock

from vitacare.bot.telegram_bot import (
    CHILD_BIRTH,
    CHILD_CONFIRM,
    CHILD_NAME,
    CHILD_SEX,
    _clear_child_data,
    _parse_date,
    _parse_sex,
    _split_name,
)
from vitacare.core.formatter import BannerDismissal
from vitacare.data.models import Sex


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_update(text="", user_id=12345, first_name="Anna"):
    """Create a mock Update with a text message from an authorized user."""
    update = MagicMock()
    update.message.text = text
    update.effective_user.id = user_id
    update.effective_user.first_name = first_name
    update.message.reply_text = AsyncMock()
    update.message.reply_document = AsyncMock()
    return update


def _make_context(user_db=None, record_db=None, args=None):
    """Create a mock context with user_data, args and the DBs in bot_data."""
    context = MagicMock()
    context.user_data = {}
    context.args = args or []
    context.bot_data = {
        "user_db": user_db or MagicMock(),
        "record_db": record_db or MagicMock(),
    }
    return context


def _reply_text(update) -> str:
    return update.message.reply_text.call_args[0][0]


@pytest.fixture
def registered(user_db):
    user_db.add_user(12345, "Anna")
    return user_db


@pytest.fixture
def with_child(registered, record_db):
    """Registered user with a child born 2020-01-01 and its U-exams."""
    child = registered.add_child(12345, "Mia", date(2020, 1, 1), last_name="Weber")
    record_db.seed_examinations(child)
    return child


# ---------------------------------------------------------------------------
# Input parsing
# ---------------------------------------------------------------------------


class TestParseDate:
    def test_iso(self):
        assert _parse_date("2024-05-17") == date(2024, 5, 17)

    def test_german(self):
        assert _parse_date(" 17.05.2024 ") == date(2024, 5, 17)

    def test_invalid_returns_none(self):
        assert _parse_date("tomorrow") is None
        assert _parse_date("2024-02-30") is None
        assert _parse_date("") is None


class TestParseSex:
    def test_english_and_german(self):
        assert _parse_sex("Female") == Sex.FEMALE
        assert _parse_sex("w") == Sex.FEMALE
        assert _parse_sex("männlich") == Sex.MALE
        assert _parse_sex("divers") == Sex.DIVERSE

    def test_unknown(self):
        assert _parse_sex("x") is None


class TestSplitName:
    def test_first_and_last(self):
        assert _split_name("Mia  von Weber") == ("Mia", "von Weber")

    def test_single_word(self):
        assert _split_name("Mia") == ("Mia", "")

    def test_blank(self):
        assert _split_name("   ") == ("", "")


class TestClearChildData:
    def test_clears_only_child_keys(self):
        context = MagicMock()
        context.user_data = {
            "child_first_name": "Mia",
            "child_last_name": "Weber",
            "child_birth_date": date(2020, 1, 1),
            "child_sex": None,
            "banner_dismissal": "keep",
        }
        _clear_child_data(context)
        assert context.user_data == {"banner_dismissal": "keep"}


# ---------------------------------------------------------------------------
# /addchild conversation
# ---------------------------------------------------------------------------


class TestAddchildHandlers:
    @pytest.mark.asyncio
    async def test_start_requires_registration(self, user_db):
        from vitacare.bot.telegram_bot import cmd_addchild
        from telegram.ext import ConversationHandler

        update = _make_update("/addchild")
        result = await cmd_addchild(update, _make_context(user_db))
        assert result == ConversationHandler.END
        assert "/start" in _reply_text(update)

    @pytest.mark.asyncio
    async def test_start_asks_for_name(self, registered):
        from vitacare.bot.telegram_bot import cmd_addchild

        update = _make_update("/addchild")
        assert await cmd_addchild(update, _make_context(registered)) == CHILD_NAME

    @pytest.mark.asyncio
    async def test_name_stored(self):
        from vitacare.bot.telegram_bot import addchild_name

        context = _make_context()
        result = await addchild_name(_make_update("Mia Weber"), context)
        assert result == CHILD_BIRTH
        assert context.user_data["child_first_name"] == "Mia"
        assert context.user_data["child_last_name"] == "Weber"

    @pytest.mark.asyncio
    async def test_blank_name_retries(self):
        from vitacare.bot.telegram_bot import addchild_name

        assert await addchild_name(_make_update("  "), _make_context()) == CHILD_NAME

    @pytest.mark.asyncio
    async def test_birth_date_stored(self):
        from vitacare.bot.telegram_bot import addchild_birth

        context = _make_context()
        result = await addchild_birth(_make_update("01.01.2020"), context)
        assert result == CHILD_SEX
        assert context.user_data["child_birth_date"] == date(2020, 1, 1)

    @pytest.mark.asyncio
    async def test_invalid_birth_date_retries(self):
        from vitacare.bot.telegram_bot import addchild_birth

        assert await addchild_birth(_make_update("soon"), _make_context()) == CHILD_BIRTH

    @pytest.mark.asyncio
    async def test_future_birth_date_retries(self):
        from vitacare.bot.telegram_bot import addchild_birth

        future = (date.today() + timedelta(days=3)).isoformat()
        context = _make_context()
        assert await addchild_birth(_make_update(future), context) == CHILD_BIRTH
        assert "child_birth_date" not in context.user_data

    @pytest.mark.asyncio
    async def test_sex_skip(self):
        from vitacare.bot.telegram_bot import addchild_sex

        context = _make_context()
        context.user_data.update({
            "child_first_name": "Mia",
            "child_last_name": "Weber",
            "child_birth_date": date(2020, 1, 1),
        })
        update = _make_update("skip")
        assert await addchild_sex(update, context) == CHILD_CONFIRM
        assert context.user_data["child_sex"] is None
        assert "Mia Weber" in _reply_text(update)

    @pytest.mark.asyncio
    async def test_invalid_sex_retries(self):
        from vitacare.bot.telegram_bot import addchild_sex

        assert await addchild_sex(_make_update("maybe"), _make_context()) == CHILD_SEX

    @pytest.mark.asyncio
    async def test_confirm_registers_child_and_exams(self, registered, record_db):
        from vitacare.bot.telegram_bot import addchild_confirm
        from telegram.ext import ConversationHandler

        context = _make_context(registered, record_db)
        context.user_data.update({
            "child_first_name": "Mia",
            "child_last_name": "Weber",
            "child_birth_date": date(2020, 1, 1),
            "child_sex": Sex.FEMALE,
        })
        update = _make_update("yes")

        assert await addchild_confirm(update, context) == ConversationHandler.END
        [child] = registered.list_children(12345)
        assert child.full_name == "Mia Weber"
        assert child.sex == Sex.FEMALE
        assert len(record_db.list_examinations(child.id)) == 10
        assert "10 U-exams" in _reply_text(update)
        assert context.user_data == {}

    @pytest.mark.asyncio
    async def test_decline_saves_nothing(self, registered, record_db):
        from vitacare.bot.telegram_bot import addchild_confirm

        context = _make_context(registered, record_db)
        context.user_data.update({"child_first_name": "Mia"})
        await addchild_confirm(_make_update("no"), context)
        assert registered.list_children(12345) == []
        assert context.user_data == {}


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


class TestAuthorization:
    @pytest.mark.asyncio
    async def test_unauthorized_user_is_ignored(self, user_db):
        from vitacare.bot.telegram_bot import cmd_start

        update = _make_update("/start", user_id=99999)  # not in ALLOWED_USER_IDS
        await cmd_start(update, _make_context(user_db))
        update.message.reply_text.assert_not_called()
        assert user_db.is_registered(99999) is False

    @pytest.mark.asyncio
    async def test_authorized_user_gets_response(self):
        from vitacare.bot.telegram_bot import cmd_help

        update = _make_update("/help")  # matches ALLOWED_USER_IDS in conftest
        await cmd_help(update, _make_context())
        update.message.reply_text.assert_called_once()


# ---------------------------------------------------------------------------
# /start, /profile
# ---------------------------------------------------------------------------


class TestStartAndProfile:
    @pytest.mark.asyncio
    async def test_start_registers_user(self, user_db, record_db):
        from vitacare.bot.telegram_bot import cmd_start

        update = _make_update("/start")
        await cmd_start(update, _make_context(user_db, record_db))
        assert user_db.get_user(12345).display_name == "Anna"
        # Nothing due yet, so no banner
        update.message.reply_text.assert_called_once()

    @pytest.mark.asyncio
    async def test_start_shows_banner_when_due(self, with_child, registered, record_db):
        from vitacare.bot.telegram_bot import cmd_start

        update = _make_update("/start")
        await cmd_start(update, _make_context(registered, record_db))
        assert update.message.reply_text.call_count == 2
        banner = _reply_text(update)
        assert "overdue!" in banner
        assert update.message.reply_text.call_args.kwargs["reply_markup"] is not None

    @pytest.mark.asyncio
    async def test_profile_saved(self, registered):
        from vitacare.bot.telegram_bot import cmd_profile

        update = _make_update()
        await cmd_profile(update, _make_context(registered, args=["10.03.1972", "female"]))
        user = registered.get_user(12345)
        assert user.birth_date == date(1972, 3, 10)
        assert user.sex == Sex.FEMALE

    @pytest.mark.asyncio
    async def test_profile_usage(self, registered):
        from vitacare.bot.telegram_bot import cmd_profile

        update = _make_update()
        await cmd_profile(update, _make_context(registered, args=["1972-03-10"]))
        assert _reply_text(update).startswith("Usage")


# ---------------------------------------------------------------------------
# Reminders and the banner
# ---------------------------------------------------------------------------


class TestReminders:
    @pytest.mark.asyncio
    async def test_nothing_due(self, registered, record_db):
        from vitacare.bot.telegram_bot import cmd_reminders

        update = _make_update("/reminders")
        await cmd_reminders(update, _make_context(registered, record_db))
        assert "Nothing due" in _reply_text(update)

    @pytest.mark.asyncio
    async def test_lists_overdue_exams(self, with_child, registered, record_db):
        from vitacare.bot.telegram_bot import cmd_reminders

        update = _make_update("/reminders")
        await cmd_reminders(update, _make_context(registered, record_db))
        text = _reply_text(update)
        assert text.startswith("*10 reminders overdue!*")
        assert "🔴 Mia Weber - U1 is" in text

    @pytest.mark.asyncio
    async def test_names_escaped_for_markdown(self, registered, record_db):
        from vitacare.bot.telegram_bot import cmd_reminders

        child = registered.add_child(12345, "Lena_Marie", date(2020, 1, 1), last_name="Weber")
        record_db.seed_examinations(child)
        update = _make_update("/reminders")
        await cmd_reminders(update, _make_context(registered, record_db))

        text = _reply_text(update)
        assert "🔴 Lena\\_Marie Weber - U1 is" in text
        assert update.message.reply_text.call_args.kwargs["parse_mode"] == "Markdown"

    @pytest.mark.asyncio
    async def test_storage_error_reported(self):
        from vitacare.bot.telegram_bot import cmd_reminders

        user_db = MagicMock()
        user_db.list_subjects.side_effect = RuntimeError("disk I/O error")
        update = _make_update("/reminders")
        await cmd_reminders(update, _make_context(user_db))
        assert "Couldn't load reminders" in _reply_text(update)

    @pytest.mark.asyncio
    async def test_banner_suppressed_while_dismissed(self, with_child, registered, record_db):
        from vitacare.bot.telegram_bot import _send_banner

        context = _make_context(registered, record_db)
        context.user_data["banner_dismissal"] = BannerDismissal(dismissed_at=datetime.now())
        update = _make_update()
        await _send_banner(update, context)
        update.message.reply_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_banner_callback_records_dismissal(self):
        from vitacare.bot.telegram_bot import _handle_banner_callback

        update = _make_update()
        update.callback_query.answer = AsyncMock()
        update.callback_query.edit_message_text = AsyncMock()
        context = _make_context()

        await _handle_banner_callback(update, context)
        dismissal = context.user_data["banner_dismissal"]
        assert dismissal.is_active(datetime.now()) is True
        update.callback_query.edit_message_text.assert_called_once()


# ---------------------------------------------------------------------------
# /done
# ---------------------------------------------------------------------------


class TestDone:
    @pytest.mark.asyncio
    async def test_marks_exam_done(self, with_child, registered, record_db):
        from vitacare.bot.telegram_bot import cmd_done

        exam = record_db.list_examinations(with_child.id)[0]
        update = _make_update()
        await cmd_done(update, _make_context(registered, record_db, ["exam", str(exam.id), "2020-01-02"]))

        assert record_db.get_examination(exam.id).actual_date == date(2020, 1, 2)
        assert "U1" in _reply_text(update)

    @pytest.mark.asyncio
    async def test_unknown_exam_not_found(self, with_child, registered, record_db):
        from vitacare.bot.telegram_bot import cmd_done

        exam = record_db.list_examinations(with_child.id)[0]
        update = _make_update()
        await cmd_done(update, _make_context(registered, record_db, ["exam", "9999"]))

        assert "Couldn't find exam 9999" in _reply_text(update)
        assert record_db.get_examination(exam.id).is_completed is False

    @pytest.mark.asyncio
    async def test_completes_check_up(self, registered, record_db):
        from vitacare.bot.telegram_bot import cmd_done

        check_up = record_db.add_check_up(12345, "Zahnvorsorge", 6, last_date=date(2025, 1, 1))
        update = _make_update()
        await cmd_done(update, _make_context(registered, record_db, ["checkup", str(check_up.id), "2025-07-01"]))
        assert "Next due: 2026-01-01" in _reply_text(update)

    @pytest.mark.asyncio
    async def test_records_vaccine_dose(self, registered, record_db):
        from vitacare.bot.telegram_bot import cmd_done

        vax = record_db.add_vaccination(12345, "FSME", date(2025, 1, 1), next_due=date(2025, 3, 1))
        update = _make_update()
        await cmd_done(update, _make_context(registered, record_db, ["vax", str(vax.id)]))
        assert record_db.get_vaccination(vax.id).due_date is None
        assert "FSME" in _reply_text(update)

    @pytest.mark.asyncio
    async def test_check_up_done_twice_is_reported(self, registered, record_db):
        from vitacare.bot.telegram_bot import cmd_done

        check_up = record_db.add_check_up(12345, "Zahnvorsorge", 6, last_date=date(2026, 4, 1))
        await cmd_done(_make_update(), _make_context(registered, record_db, ["checkup", str(check_up.id), "2026-10-01"]))

        update = _make_update()
        await cmd_done(update, _make_context(registered, record_db, ["checkup", str(check_up.id), "2026-10-02"]))
        assert _reply_text(update) == f"checkup {check_up.id} was already marked as done on 2026-10-01."
        assert len(record_db.list_check_ups(12345, open_only=True)) == 1

    @pytest.mark.asyncio
    async def test_vaccine_without_pending_dose(self, registered, record_db):
        from vitacare.bot.telegram_bot import cmd_done

        vax = record_db.add_vaccination(12345, "Tetanus", date(2026, 1, 1))
        update = _make_update()
        await cmd_done(update, _make_context(registered, record_db, ["vax", str(vax.id)]))
        assert _reply_text(update) == f"No further dose is pending for vax {vax.id}."
        assert len(record_db.list_vaccinations(12345)) == 1

    @pytest.mark.asyncio
    async def test_notes_saved_with_date(self, with_child, registered, record_db):
        from vitacare.bot.telegram_bot import cmd_done

        exam = record_db.list_examinations(with_child.id)[0]
        update = _make_update()
        await cmd_done(update, _make_context(
            registered, record_db, ["exam", str(exam.id), "2020-01-02", "Dr.", "Schulz,", "alles", "gut"],
        ))

        stored = record_db.get_examination(exam.id)
        assert stored.actual_date == date(2020, 1, 2)
        assert stored.notes == "Dr. Schulz, alles gut"
        assert "Note saved" in _reply_text(update)

    @pytest.mark.asyncio
    async def test_notes_without_date_use_today(self, with_child, registered, record_db):
        from vitacare.bot.telegram_bot import cmd_done

        exam = record_db.list_examinations(with_child.id)[1]
        update = _make_update()
        await cmd_done(update, _make_context(registered, record_db, ["exam", str(exam.id), "Hörtest", "unauffällig"]))

        stored = record_db.get_examination(exam.id)
        assert stored.is_completed is True
        assert stored.notes == "Hörtest unauffällig"

    @pytest.mark.asyncio
    async def test_exams_show_notes(self, with_child, registered, record_db):
        from vitacare.bot.telegram_bot import cmd_exams

        exam = record_db.list_examinations(with_child.id)[0]
        record_db.mark_examination_done(exam.id, actual_date=date(2020, 1, 2), notes="Gewicht_ok")
        update = _make_update()
        await cmd_exams(update, _make_context(registered, record_db, [str(with_child.id)]))
        assert "done 2020-01-02 📝 Gewicht\\_ok" in _reply_text(update)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("args", [[], ["exam"], ["shot", "1"], ["exam", "abc"], ["exam", "1", "2025-02-30"]])
    async def test_usage_on_bad_args(self, args):
        from vitacare.bot.telegram_bot import cmd_done

        update = _make_update()
        await cmd_done(update, _make_context(args=args))
        assert _reply_text(update).startswith("Usage")


# ---------------------------------------------------------------------------
# Check-ups and vaccinations
# ---------------------------------------------------------------------------


class TestCheckUpsAndVaccinations:
    @pytest.mark.asyncio
    async def test_checkups_need_profile(self, registered, record_db):
        from vitacare.bot.telegram_bot import cmd_checkups

        update = _make_update()
        await cmd_checkups(update, _make_context(registered, record_db))
        assert "/profile" in _reply_text(update)

    @pytest.mark.asyncio
    async def test_checkups_lists_recommendations(self, registered, record_db):
        from vitacare.bot.telegram_bot import cmd_checkups

        registered.set_profile(12345, date(1972, 3, 10), Sex.FEMALE)
        record_db.add_check_up(12345, "Zahnvorsorge", 6)
        update = _make_update()
        await cmd_checkups(update, _make_context(registered, record_db))
        text = _reply_text(update)
        assert "My check-ups" in text
        assert "• Mammographie" in text
        assert "• Zahnvorsorge" not in text

    @pytest.mark.asyncio
    async def test_addcheckup_uses_table_interval(self, registered, record_db):
        from vitacare.bot.telegram_bot import cmd_addcheckup

        update = _make_update()
        await cmd_addcheckup(update, _make_context(registered, record_db, ["hautkrebs-screening", "2025-01-15"]))
        [check_up] = record_db.list_check_ups(12345)
        assert check_up.event_type == "Hautkrebs-Screening"
        assert check_up.interval_months == 24
        assert check_up.due_date == date(2027, 1, 15)

    @pytest.mark.asyncio
    async def test_addcheckup_unknown_type(self, registered, record_db):
        from vitacare.bot.telegram_bot import cmd_addcheckup

        update = _make_update()
        await cmd_addcheckup(update, _make_context(registered, record_db, ["Yoga"]))
        assert "Unknown check-up" in _reply_text(update)
        assert record_db.list_check_ups(12345) == []

    @pytest.mark.asyncio
    async def test_addvax_resolves_catalog_name(self, registered, record_db):
        from vitacare.bot.telegram_bot import cmd_addvax

        update = _make_update()
        await cmd_addvax(update, _make_context(registered, record_db, ["2016-05-01", "2026-05-01", "tetanus"]))
        [vax] = record_db.list_vaccinations(12345)
        assert vax.event_type == "Tetanus (Wundstarrkrampf)"
        assert vax.due_date == date(2026, 5, 1)

    @pytest.mark.asyncio
    async def test_addvax_without_next_dose(self, registered, record_db):
        from vitacare.bot.telegram_bot import cmd_addvax

        update = _make_update()
        await cmd_addvax(update, _make_context(registered, record_db, ["2021-01-01", "-", "Masern"]))
        assert record_db.list_vaccinations(12345)[0].due_date is None


# ---------------------------------------------------------------------------
# /ics and /info
# ---------------------------------------------------------------------------


class TestIcsAndInfo:
    @pytest.mark.asyncio
    async def test_ics_sends_document(self, with_child, registered, record_db):
        from vitacare.bot.telegram_bot import cmd_ics

        exam = record_db.list_examinations(with_child.id)[0]
        update = _make_update()
        await cmd_ics(update, _make_context(registered, record_db, [str(exam.id)]))

        update.message.reply_document.assert_called_once()
        kwargs = update.message.reply_document.call_args.kwargs
        assert kwargs["document"].filename == "U1-Mia-Weber.ics"
        assert "Mia Weber" in kwargs["caption"]

    @pytest.mark.asyncio
    async def test_ics_unknown_exam(self, registered, record_db):
        from vitacare.bot.telegram_bot import cmd_ics

        update = _make_update()
        await cmd_ics(update, _make_context(registered, record_db, ["42"]))
        assert "No U-exam" in _reply_text(update)
        update.message.reply_document.assert_not_called()

    @pytest.mark.asyncio
    async def test_info_falls_back_to_catalog(self):
        from vitacare.bot.telegram_bot import cmd_info

        update = _make_update()
        await cmd_info(update, _make_context(args=["Masern"]))
        assert _reply_text(update).startswith("Masern: Virale Infektion (Standard)")
