"""
VitaCare Reminders — Centralized configuration.

Loads all settings from .env and validates required keys.
Every other module reads its tunables from the `settings` singleton.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from vitacare/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # Security
    ALLOWED_USER_IDS: list[int] = []

    # SQLite
    DATABASE_PATH: str = "data/vitacare.db"

    # Daily reminder push
    REMINDER_HOUR: int = 8
    TIMEZONE: str = "Europe/Berlin"

    # Reminder classification
    REMINDER_HORIZON_DAYS: int = 30
    URGENT_WITHIN_DAYS: int = 7
    BANNER_DISMISS_HOURS: int = 1

    # Notes encryption — base64 AES-256 key, empty → notes stored in clear
    NOTES_ENCRYPTION_KEY: str = ""

    # LLM — vaccine information (optional, falls back to the catalog)
    LLM_PROVIDER: str = "anthropic"
    LLM_MODEL: str = ""          # empty → smart default per provider
    LLM_API_KEY: str = ""

    @field_validator("ALLOWED_USER_IDS", mode="before")
    @classmethod
    def parse_user_ids(cls, v: str | list[int]) -> list[int]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [int(uid.strip()) for uid in v.split(",") if uid.strip()]
        return []

    @field_validator(
        "REMINDER_HOUR",
        "REMINDER_HORIZON_DAYS",
        "URGENT_WITHIN_DAYS",
        "BANNER_DISMISS_HOURS",
        mode="before",
    )
    @classmethod
    def parse_int(cls, v: str | int) -> int:
        return int(v)


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        ALLOWED_USER_IDS=os.getenv("ALLOWED_USER_IDS", ""),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/vitacare.db"),
        REMINDER_HOUR=os.getenv("REMINDER_HOUR", "8"),
        TIMEZONE=os.getenv("TIMEZONE", "Europe/Berlin"),
        REMINDER_HORIZON_DAYS=os.getenv("REMINDER_HORIZON_DAYS", "30"),
        URGENT_WITHIN_DAYS=os.getenv("URGENT_WITHIN_DAYS", "7"),
        BANNER_DISMISS_HOURS=os.getenv("BANNER_DISMISS_HOURS", "1"),
        NOTES_ENCRYPTION_KEY=os.getenv("NOTES_ENCRYPTION_KEY", ""),
        LLM_PROVIDER=os.getenv("LLM_PROVIDER", "anthropic"),
        LLM_MODEL=os.getenv("LLM_MODEL", ""),
        LLM_API_KEY=os.getenv("LLM_API_KEY", ""),
    )


# Singleton — imported by all other modules as:
#   from vitacare.config import settings
settings = _load_settings()
