"""Configuration helpers for the CRM check bot."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .calendar_rules import DEFAULT_HOLIDAYS


@dataclass(slots=True)
class Settings:
    """Runtime configuration values loaded from environment variables."""

    slack_bot_token: str
    slack_signing_secret: str
    database_path: Path
    api_key: Optional[str] = None
    admin_employee_codes: frozenset[str] = field(default_factory=frozenset)
    holidays: tuple[tuple[int, int], ...] = DEFAULT_HOLIDAYS
    timezone: str = "America/Bogota"


def parse_codes(raw: str | None) -> frozenset[str]:
    if not raw:
        return frozenset()
    return frozenset(code.strip() for code in raw.split(",") if code.strip())


def parse_holidays(raw: str | None) -> tuple[tuple[int, int], ...]:
    """Parse a comma separated ``MM-DD`` list into ``(month, day)`` pairs."""

    if not raw:
        return DEFAULT_HOLIDAYS
    pairs: list[tuple[int, int]] = []
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        try:
            month_str, day_str = item.split("-")
            month, day = int(month_str), int(day_str)
            # 2000 is a leap year, so 02-29 is accepted here
            date(2000, month, day)
        except ValueError as exc:
            raise RuntimeError(f"HOLIDAYS entry {item!r} is not a valid MM-DD date") from exc
        pairs.append((month, day))
    return tuple(pairs)


def load_settings(env_file: str | None = None) -> Settings:
    """Load settings from the environment, optionally from a specific file."""

    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    db_path = Path(os.getenv("DATABASE_PATH", "crm_checkbot.db")).expanduser()

    slack_token = os.getenv("SLACK_BOT_TOKEN")
    signing_secret = os.getenv("SLACK_SIGNING_SECRET")

    if not slack_token:
        raise RuntimeError("SLACK_BOT_TOKEN must be configured")
    if not signing_secret:
        raise RuntimeError("SLACK_SIGNING_SECRET must be configured")

    return Settings(
        slack_bot_token=slack_token,
        slack_signing_secret=signing_secret,
        database_path=db_path,
        api_key=os.getenv("API_KEY") or None,
        admin_employee_codes=parse_codes(os.getenv("ADMIN_EMPLOYEE_CODES")),
        holidays=parse_holidays(os.getenv("HOLIDAYS")),
        timezone=os.getenv("TIMEZONE", "America/Bogota"),
    )


__all__ = ["Settings", "load_settings", "parse_codes", "parse_holidays"]
