"""
VitaCare Reminders — Telegram Bot.

Telegram is the only user interface. Account holders register with /start,
add their children, record check-ups and vaccinations, and receive a daily
push when something is overdue or coming up.

Security-first: unauthorized users are silently ignored.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from datetime import time as dt_time
from functools import wraps
from io import BytesIO
from typing import TYPE_CHECKING, Any, Callable, Coroutine
from zoneinfo import ZoneInfo

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, InputFile, Update
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    ConversationHandler,
    MessageHandler,
    filters,
)
from telegram.helpers import escape_markdown

from vitacare.config import settings
from vitacare.data.models import Sex

if TYPE_CHECKING:
    from vitacare.core.formatter import BannerDismissal
    from vitacare.data.db import RecordDB, UserDB
    from vitacare.data.models import User
    from vitacare.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Security: silent-ignore decorator
# ---------------------------------------------------------------------------


def authorized_only(
    func: Callable[..., Coroutine[Any, Any, Any]],
) -> Callable[..., Coroutine[Any, Any, Any]]:
    """Decorator that silently ignores messages from unauthorized users.

    Does NOT send any response to strangers — the bot must not reveal
    its existence to unauthorized users.
    """

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> Any:
        user = update.effective_user
        if user is None or user.id not in settings.ALLOWED_USER_IDS:
            uid = user.id if user else "unknown"
            logger.warning("Unauthorized access attempt from user_id=%s", uid)
            return None  # Silent ignore
        return await func(update, context)

    return wrapper


# ---------------------------------------------------------------------------
# Input parsing helpers
# ---------------------------------------------------------------------------

_SEX_WORDS: dict[str, Sex] = {
    "m": Sex.MALE, "male": Sex.MALE, "männlich": Sex.MALE,
    "f": Sex.FEMALE, "w": Sex.FEMALE, "female": Sex.FEMALE, "weiblich": Sex.FEMALE,
    "d": Sex.DIVERSE, "diverse": Sex.DIVERSE, "divers": Sex.DIVERSE,
}

_DATE_FORMATS = ("%Y-%m-%d", "%d.%m.%Y")


def _parse_date(text: str) -> date | None:
    """Parse "2024-05-17" or "17.05.2024". Returns None on bad input."""
    text = text.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _parse_sex(text: str) -> Sex | None:
    return _SEX_WORDS.get(text.strip().lower())


def _split_name(text: str) -> tuple[str, str]:
    """Split "Mia Weber" into ("Mia", "Weber"); a single word has no last name."""
    parts = text.strip().split(maxsplit=1)
    if not parts:
        return "", ""
    return parts[0], parts[1] if len(parts) > 1 else ""


def _md(text: str) -> str:
    """Escape user-supplied text for parse_mode="Markdown"."""
    return escape_markdown(text, version=1)


# ---------------------------------------------------------------------------
# Shared lookups
# ---------------------------------------------------------------------------


def _user_db(context: ContextTypes.DEFAULT_TYPE) -> UserDB:
    return context.bot_data["user_db"]


def _record_db(context: ContextTypes.DEFAULT_TYPE) -> RecordDB:
    return context.bot_data["record_db"]


async def _require_user(update: Update, context: ContextTypes.DEFAULT_TYPE) -> User | None:
    """Return the registered user, or reply with a hint and return None."""
    user = _user_db(context).get_user(update.effective_user.id)
    if user is None:
        await update.message.reply_text("Please use /start first to register.")
    return user


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — register the user and show the reminder banner."""
    tg_user = update.effective_user
    db = _user_db(context)
    if not db.is_registered(tg_user.id):
        db.add_user(tg_user.id, tg_user.first_name or str(tg_user.id))

    await update.message.reply_text(
        "Welcome to *VitaCare*!\n\n"
        "I keep track of check-ups, vaccinations and your children's U-exams:\n"
        "• /profile to enable check-up recommendations\n"
        "• /addchild to register a child and schedule all U-exams\n"
        "• /reminders to see what is due\n\n"
        "Type /help for the full command list.",
        parse_mode="Markdown",
    )
    await _send_banner(update, context)


@authorized_only
async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help — list available commands."""
    await update.message.reply_text(
        "*Available commands:*\n"
        "/profile <YYYY-MM-DD> <male|female|diverse> — Set birth date and sex\n"
        "/addchild — Register a child\n"
        "/children — List children\n"
        "/exams <child\\_id> — U-exams of a child\n"
        "/checkups — Tracked and recommended check-ups\n"
        "/addcheckup <type> [last YYYY-MM-DD] — Track a check-up\n"
        "/vaccines — Vaccine catalog\n"
        "/addvax <date> <next date|-> <vaccine> — Record a vaccination\n"
        "/reminders — Overdue and upcoming items\n"
        "/done <exam|checkup|vax> <id> [date] [notes] — Mark as done, optionally with a note\n"
        "/ics <exam\\_id> — Calendar file for a U-exam\n"
        "/info <vaccine> — Information about a vaccine\n"
        "/help — Show this message",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_profile(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /profile <birth date> <sex>."""
    user = await _require_user(update, context)
    if user is None:
        return

    args = context.args or []
    birth_date = _parse_date(args[0]) if len(args) >= 1 else None
    sex = _parse_sex(args[1]) if len(args) >= 2 else None
    if birth_date is None or sex is None:
        await update.message.reply_text(
            "Usage: /profile <YYYY-MM-DD> <male|female|diverse>"
        )
        return

    _user_db(context).set_profile(user.telegram_user_id, birth_date, sex)
    await update.message.reply_text(
        f"✅ Profile saved ({birth_date.isoformat()}, {sex.value}). "
        "Use /checkups to see your recommended check-ups."
    )


# ---------------------------------------------------------------------------
# /addchild conversation
# ---------------------------------------------------------------------------

# ConversationHandler states for /addchild
(
    CHILD_NAME,
    CHILD_BIRTH,
    CHILD_SEX,
    CHILD_CONFIRM,
) = range(4)

_CHILD_KEYS = ("child_first_name", "child_last_name", "child_birth_date", "child_sex")


def _clear_child_data(context: ContextTypes.DEFAULT_TYPE) -> None:
    for k in _CHILD_KEYS:
        context.user_data.pop(k, None)


@authorized_only
async def cmd_addchild(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    if await _require_user(update, context) is None:
        return ConversationHandler.END
    await update.message.reply_text("What is your child's name? (first and last name)")
    return CHILD_NAME


async def addchild_name(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    first_name, last_name = _split_name(update.message.text)
    if not first_name:
        await update.message.reply_text("Please send a name.")
        return CHILD_NAME
    context.user_data["child_first_name"] = first_name
    context.user_data["child_last_name"] = last_name
    await update.message.reply_text("Date of birth? (YYYY-MM-DD or DD.MM.YYYY)")
    return CHILD_BIRTH


async def addchild_birth(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    from vitacare.core.scheduler import local_today

    birth_date = _parse_date(update.message.text)
    if birth_date is None:
        await update.message.reply_text("I couldn't read that date. Try 2024-05-17.")
        return CHILD_BIRTH
    if birth_date > local_today():
        await update.message.reply_text("The date of birth can't be in the future.")
        return CHILD_BIRTH
    context.user_data["child_birth_date"] = birth_date
    await update.message.reply_text("Sex? (male / female / diverse, or 'skip')")
    return CHILD_SEX


async def addchild_sex(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    text = update.message.text.strip().lower()
    sex = None if text == "skip" else _parse_sex(text)
    if sex is None and text != "skip":
        await update.message.reply_text("Please answer male, female, diverse or skip.")
        return CHILD_SEX
    context.user_data["child_sex"] = sex

    name = f"{context.user_data['child_first_name']} {context.user_data['child_last_name']}".strip()
    await update.message.reply_text(
        f"Register *{_md(name)}*, born {context.user_data['child_birth_date'].isoformat()}?\n"
        "All U-exams (U1–U9) will be scheduled. Reply 'yes' to confirm.",
        parse_mode="Markdown",
    )
    return CHILD_CONFIRM


async def addchild_confirm(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    if update.message.text.strip().lower() not in ("yes", "y", "ja"):
        await update.message.reply_text("Cancelled.")
        _clear_child_data(context)
        return ConversationHandler.END

    try:
        child = _user_db(context).add_child(
            user_id=update.effective_user.id,
            first_name=context.user_data["child_first_name"],
            last_name=context.user_data["child_last_name"],
            birth_date=context.user_data["child_birth_date"],
            sex=context.user_data.get("child_sex"),
        )
        exams = _record_db(context).seed_examinations(child)
    except Exception as exc:
        logger.error("/addchild error: %s", exc)
        await update.message.reply_text("Couldn't save the child. Please try again.")
        _clear_child_data(context)
        return ConversationHandler.END

    await update.message.reply_text(
        f"✅ *{_md(child.full_name)}* registered (ID `{child.id}`) with {len(exams)} U-exams.\n"
        f"Use /exams {child.id} to see them.",
        parse_mode="Markdown",
    )
    _clear_child_data(context)
    return ConversationHandler.END


async def addchild_cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    _clear_child_data(context)
    await update.message.reply_text("Cancelled.")
    return ConversationHandler.END


# ---------------------------------------------------------------------------
# Listing commands
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_children(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /children — list registered children."""
    children = _user_db(context).list_children(update.effective_user.id)
    if not children:
        await update.message.reply_text("No children registered. Use /addchild.")
        return
    lines = ["*Children:*\n"]
    for c in children:
        lines.append(f"`{c.id}` — {_md(c.full_name)} (born {c.birth_date.isoformat()})")
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


@authorized_only
async def cmd_exams(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /exams <child_id> — list a child's U-exams."""
    args = context.args or []
    try:
        child_id = int(args[0])
    except (IndexError, ValueError):
        await update.message.reply_text("Usage: /exams <child_id>\nUse /children to see IDs.")
        return

    child = _user_db(context).get_child(child_id, user_id=update.effective_user.id)
    if child is None:
        await update.message.reply_text(f"No child with ID {child_id}.")
        return

    lines = [f"*U-exams for {_md(child.full_name)}:*\n"]
    for exam in _record_db(context).list_examinations(child.id):
        status = f"done {exam.actual_date.isoformat()}" if exam.is_completed else f"due {exam.due_date.isoformat()}"
        if exam.notes:
            status += f" 📝 {_md(exam.notes)}"
        lines.append(f"`{exam.id}` — {_md(exam.event_type)}: {status}")
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


@authorized_only
async def cmd_checkups(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /checkups — tracked check-ups plus recommendations."""
    from vitacare.core.scheduler import recommended_check_ups

    user = await _require_user(update, context)
    if user is None:
        return
    if not user.has_complete_profile:
        await update.message.reply_text(
            "Please complete your profile first: /profile <YYYY-MM-DD> <male|female|diverse>"
        )
        return

    tracked = _record_db(context).list_check_ups(user.telegram_user_id, open_only=True)
    lines: list[str] = []
    if tracked:
        lines.append("*My check-ups:*")
        for c in tracked:
            lines.append(
                f"`{c.id}` — {_md(c.event_type)}: due {c.due_date.isoformat()} "
                f"(every {c.interval_months} months)"
            )
    else:
        lines.append("No check-ups tracked yet.")

    missing = recommended_check_ups(user, {c.event_type for c in tracked})
    if missing:
        lines.append("\n*Recommended:*")
        for rec in missing:
            lines.append(f"• {_md(rec.event_type)} — every {rec.recurrence_months} months")
        lines.append("\nAdd one with /addcheckup <type> [last YYYY-MM-DD]")
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


@authorized_only
async def cmd_addcheckup(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /addcheckup <type> [last date]."""
    from vitacare.core.schedules import find_check_up
    from vitacare.core.scheduler import local_today, recommended_check_ups

    user = await _require_user(update, context)
    if user is None:
        return

    args = list(context.args or [])
    last_date = _parse_date(args[-1]) if args else None
    if last_date is not None:
        args = args[:-1]
    check_up_type = " ".join(args).strip()
    if not check_up_type:
        await update.message.reply_text("Usage: /addcheckup <type> [last YYYY-MM-DD]")
        return

    # Prefer the age-appropriate band, fall back to the first table entry
    recommendation = next(
        (r for r in recommended_check_ups(user) if r.event_type.lower() == check_up_type.lower()),
        None,
    )
    if recommendation is not None:
        event_type, interval = recommendation.event_type, recommendation.recurrence_months
    else:
        definition = find_check_up(check_up_type)
        if definition is None:
            await update.message.reply_text(
                f"Unknown check-up '{check_up_type}'. See /checkups for recommendations."
            )
            return
        event_type, interval = definition.event_type, definition.recurrence_months

    check_up = _record_db(context).add_check_up(
        user.telegram_user_id, event_type, interval, last_date=last_date, today=local_today(),
    )
    await update.message.reply_text(
        f"✅ Tracking *{_md(check_up.event_type)}* every {interval} months. "
        f"Next due: {check_up.due_date.isoformat()}",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_vaccines(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /vaccines — show the vaccine catalog by category."""
    from vitacare.core.vaccines import CATEGORY_LABELS, by_category

    lines: list[str] = []
    for category, label in CATEGORY_LABELS.items():
        lines.append(f"*{label}*")
        lines.extend(f"• {_md(v.name)}" for v in by_category(category))
        lines.append("")
    await update.message.reply_text("\n".join(lines).strip(), parse_mode="Markdown")


@authorized_only
async def cmd_addvax(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /addvax <date> <next date|-> <vaccine name...>."""
    from vitacare.core.vaccines import find_vaccine

    user = await _require_user(update, context)
    if user is None:
        return

    args = context.args or []
    usage = "Usage: /addvax <YYYY-MM-DD> <next YYYY-MM-DD|-> <vaccine>"
    if len(args) < 3:
        await update.message.reply_text(usage)
        return

    given_on = _parse_date(args[0])
    next_due = None if args[1] == "-" else _parse_date(args[1])
    if given_on is None or (next_due is None and args[1] != "-"):
        await update.message.reply_text(usage)
        return

    raw_name = " ".join(args[2:])
    vaccine = find_vaccine(raw_name)
    vaccine_name = vaccine.name if vaccine else raw_name

    record = _record_db(context).add_vaccination(
        user.telegram_user_id, vaccine_name, given_on, next_due=next_due,
    )
    msg = f"✅ Recorded *{_md(record.event_type)}* on {given_on.isoformat()}."
    if next_due:
        msg += f"\nNext dose due: {next_due.isoformat()}"
    await update.message.reply_text(msg, parse_mode="Markdown")


# ---------------------------------------------------------------------------
# Reminders
# ---------------------------------------------------------------------------


def _dismissal(context: ContextTypes.DEFAULT_TYPE) -> BannerDismissal:
    from vitacare.core.formatter import BannerDismissal

    return context.user_data.setdefault("banner_dismissal", BannerDismissal())


async def _send_banner(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Post the reminder banner unless the user dismissed it recently."""
    from vitacare.core.formatter import banner_title, format_digest, summarize
    from vitacare.core.scheduler import collect_reminders

    if _dismissal(context).is_active(datetime.now(), hours=settings.BANNER_DISMISS_HOURS):
        return

    reminders = collect_reminders(
        update.effective_user.id, _user_db(context), _record_db(context),
    )
    if not reminders:
        return

    keyboard = InlineKeyboardMarkup(
        [[InlineKeyboardButton("Hide for now", callback_data="banner:dismiss")]]
    )
    await update.message.reply_text(
        f"*{banner_title(summarize(reminders))}*\n{_md(format_digest(reminders))}",
        parse_mode="Markdown",
        reply_markup=keyboard,
    )


@authorized_only
async def _handle_banner_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    _dismissal(context).dismissed_at = datetime.now()
    await query.edit_message_text("Reminders hidden for now. Use /reminders anytime.")


@authorized_only
async def cmd_reminders(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /reminders — everything overdue or due within the horizon."""
    from vitacare.core.formatter import banner_title, format_message, summarize
    from vitacare.core.scheduler import collect_reminders

    try:
        reminders = collect_reminders(
            update.effective_user.id, _user_db(context), _record_db(context),
        )
    except Exception as exc:
        logger.error("/reminders error: %s", exc)
        await update.message.reply_text("Couldn't load reminders. Please try again.")
        return

    if not reminders:
        await update.message.reply_text(
            f"Nothing due in the next {settings.REMINDER_HORIZON_DAYS} days. 🎉"
        )
        return

    icons = {"overdue": "🔴", "urgent": "🟠", "upcoming": "🔵"}
    lines = [f"*{banner_title(summarize(reminders))}*\n"]
    for r in reminders:
        lines.append(
            f"{icons[r.urgency.value]} {_md(format_message(r))} "
            f"({_md(r.event.kind.value)} `{r.event.id}`)"
        )
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


_DONE_KINDS = ("exam", "checkup", "vax")


@authorized_only
async def cmd_done(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /done <exam|checkup|vax> <id> [date] [notes] — mark as done."""
    from vitacare.core.scheduler import local_today

    args = context.args or []
    usage = (
        "Usage: /done <exam|checkup|vax> <id> [YYYY-MM-DD] [notes]\n"
        "Use /reminders to see IDs."
    )
    if len(args) < 2 or args[0].lower() not in _DONE_KINDS:
        await update.message.reply_text(usage)
        return
    try:
        item_id = int(args[1])
    except ValueError:
        await update.message.reply_text(usage)
        return

    # A third argument starting with a digit is the date; the rest is notes
    rest = list(args[2:])
    done_on = local_today()
    if rest and rest[0][:1].isdigit():
        done_on = _parse_date(rest.pop(0))
        if done_on is None:
            await update.message.reply_text(usage)
            return
    notes = " ".join(rest).strip() or None

    kind = args[0].lower()
    user_id = update.effective_user.id
    db = _record_db(context)

    if kind == "exam":
        record = db.get_examination(item_id, user_id=user_id)
    elif kind == "checkup":
        record = db.get_check_up(item_id, user_id=user_id)
    else:
        record = db.get_vaccination(item_id, user_id=user_id)

    if record is None:
        await update.message.reply_text(f"Couldn't find {kind} {item_id}. Please check the ID.")
        return
    if kind == "vax" and record.due_date is None:
        await update.message.reply_text(f"No further dose is pending for vax {item_id}.")
        return
    if kind != "vax" and record.is_completed:
        await update.message.reply_text(
            f"{kind} {item_id} was already marked as done on {record.actual_date.isoformat()}."
        )
        return

    try:
        if kind == "exam":
            exam = db.mark_examination_done(item_id, actual_date=done_on, notes=notes)
            msg = f"✅ *{_md(exam.event_type)}* marked as done on {done_on.isoformat()}."
        elif kind == "checkup":
            follow_up = db.complete_check_up(item_id, actual_date=done_on, notes=notes)
            msg = (
                f"✅ *{_md(follow_up.event_type)}* done. "
                f"Next due: {follow_up.due_date.isoformat()}"
            )
        else:
            dose = db.record_follow_up_dose(item_id, given_on=done_on, notes=notes)
            msg = f"✅ *{_md(dose.event_type)}* dose recorded on {done_on.isoformat()}."
    except ValueError as exc:
        logger.warning("/done %s %d: %s", kind, item_id, exc)
        await update.message.reply_text(f"Couldn't update {kind} {item_id}: {exc}")
        return

    if notes:
        msg += "\n📝 Note saved."
    await update.message.reply_text(msg, parse_mode="Markdown")


# ---------------------------------------------------------------------------
# Calendar export and vaccine info
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_ics(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /ics <exam_id> — send a calendar file for a U-exam."""
    from vitacare.core.ics_export import examination_ics, ics_filename

    args = context.args or []
    try:
        exam_id = int(args[0])
    except (IndexError, ValueError):
        await update.message.reply_text("Usage: /ics <exam_id>")
        return

    user_id = update.effective_user.id
    exam = _record_db(context).get_examination(exam_id, user_id=user_id)
    if exam is None:
        await update.message.reply_text(f"No U-exam with ID {exam_id}.")
        return

    child_id = int(exam.subject_id.split(":", 1)[1])
    child = _user_db(context).get_child(child_id, user_id=user_id)
    child_name = child.full_name if child else "Kind"

    content = examination_ics(exam.event_type, exam.due_date, child_name)
    await update.message.reply_document(
        document=InputFile(BytesIO(content.encode("utf-8")), filename=ics_filename(exam.event_type, child_name)),
        caption=f"{exam.event_type} for {child_name}, due {exam.due_date.isoformat()}",
    )


@authorized_only
async def cmd_info(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /info <vaccine> — informational text about a vaccine."""
    from vitacare.core.llm import explain_vaccine

    name = " ".join(context.args or []).strip()
    if not name:
        await update.message.reply_text("Usage: /info <vaccine>")
        return

    text = await explain_vaccine(name)
    await update.message.reply_text(
        f"{_md(text)}\n\n_For information only. Please consult your doctor._",
        parse_mode="Markdown",
    )


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------

_BANNER_PATTERN = re.compile(r"^banner:dismiss$")


def build_app(
    user_db: UserDB | None = None,
    record_db: RecordDB | None = None,
    notifier: NotificationPort | None = None,
) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        user_db: Subject storage. Defaults to UserDB at DATABASE_PATH.
        record_db: Event storage. Defaults to RecordDB at DATABASE_PATH with
                   the configured notes cipher.
        notifier: Notification port implementation. Defaults to TelegramNotifier
                  (created from the bot instance after app is built).
    """
    app = ApplicationBuilder().token(settings.TELEGRAM_BOT_TOKEN).build()

    if user_db is None:
        from vitacare.data.db import UserDB
        user_db = UserDB()

    if record_db is None:
        from vitacare.core.crypto import NotesCipher
        from vitacare.data.db import RecordDB
        record_db = RecordDB(cipher=NotesCipher.from_settings())

    if notifier is None:
        from vitacare.adapters.telegram_notifier import TelegramNotifier
        notifier = TelegramNotifier(app.bot)

    app.bot_data["user_db"] = user_db
    app.bot_data["record_db"] = record_db
    app.bot_data["notifier"] = notifier

    # Commands
    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("profile", cmd_profile))
    app.add_handler(CommandHandler("children", cmd_children))
    app.add_handler(CommandHandler("exams", cmd_exams))
    app.add_handler(CommandHandler("checkups", cmd_checkups))
    app.add_handler(CommandHandler("addcheckup", cmd_addcheckup))
    app.add_handler(CommandHandler("vaccines", cmd_vaccines))
    app.add_handler(CommandHandler("addvax", cmd_addvax))
    app.add_handler(CommandHandler("reminders", cmd_reminders))
    app.add_handler(CommandHandler("done", cmd_done))
    app.add_handler(CommandHandler("ics", cmd_ics))
    app.add_handler(CommandHandler("info", cmd_info))
    app.add_handler(CallbackQueryHandler(_handle_banner_callback, pattern=_BANNER_PATTERN))

    # /addchild conversation handler
    _text = filters.TEXT & ~filters.COMMAND
    addchild_conv = ConversationHandler(
        entry_points=[CommandHandler("addchild", cmd_addchild)],
        states={
            CHILD_NAME: [MessageHandler(_text, addchild_name)],
            CHILD_BIRTH: [MessageHandler(_text, addchild_birth)],
            CHILD_SEX: [MessageHandler(_text, addchild_sex)],
            CHILD_CONFIRM: [MessageHandler(_text, addchild_confirm)],
        },
        fallbacks=[CommandHandler("cancel", addchild_cancel)],
    )
    app.add_handler(addchild_conv)

    _setup_daily_reminders(app, user_db, record_db, notifier)

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def _setup_daily_reminders(
    app: Application,
    user_db: UserDB,
    record_db: RecordDB,
    notifier: NotificationPort,
) -> None:
    """Register the daily reminder push at REMINDER_HOUR local time."""
    from vitacare.core.scheduler import send_daily_reminders

    tz = ZoneInfo(settings.TIMEZONE)
    push_time = dt_time(hour=settings.REMINDER_HOUR, minute=0, tzinfo=tz)

    async def _reminder_job_callback(context: ContextTypes.DEFAULT_TYPE) -> None:
        await send_daily_reminders(notifier, user_db, record_db)

    app.job_queue.run_daily(
        _reminder_job_callback,
        time=push_time,
        name="daily_reminders",
    )

    logger.info(
        "Daily reminders scheduled at %02d:00 %s",
        settings.REMINDER_HOUR,
        settings.TIMEZONE,
    )


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting VitaCare bot...")
    app = build_app()
    app.run_polling()


if __name__ == "__main__":
    main()
