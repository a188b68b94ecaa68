"""Pytest configuration and shared fixtures for crm_checkbot tests."""

from __future__ import annotations

import itertools
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest

from crm_checkbot.config import Settings
from crm_checkbot.db import Database
from crm_checkbot.service import AccessPolicy, ReportService

SIGNING_SECRET = "test-signing-secret"

SLACK_MEMBERS: List[Dict[str, Any]] = [
    {"id": "U001", "name": "ana", "real_name": "Ana Gómez", "profile": {"email": "ana@example.com"}},
    {"id": "U002", "name": "bruno", "real_name": "Bruno Díaz", "profile": {}},
    {"id": "U003", "name": "carla", "real_name": "Carla Ruiz", "profile": {}},
    {"id": "U900", "name": "jefe", "real_name": "Jefa Admin", "profile": {}},
]


@pytest.fixture
def database(tmp_path: Path) -> Database:
    return Database(tmp_path / "crm.db")


@pytest.fixture
def seeded_database(database: Database) -> Database:
    """Three employees plus an administrator, with one area and position."""

    database.upsert_area(1, "Soporte")
    database.upsert_position(1, "Analista")
    database.upsert_employee(
        {
            "code": "E1",
            "name": "Ana Gómez ",
            "alias": "ana",
            "rest_type": 1,
            "national_id": "1001",
            "crm_username": "agomez",
            "crm_password": "secret",
            "area_id": 1,
            "position_id": 1,
        }
    )
    database.upsert_employee({"code": "E2", "name": "Bruno Díaz", "alias": "bruno", "rest_type": 2})
    database.upsert_employee({"code": "E3", "name": "Carla Ruiz", "alias": "carla", "rest_type": 1})
    database.upsert_employee({"code": "ADM", "name": "Jefa Admin", "alias": "jefe", "rest_type": 1})
    return database


@pytest.fixture
def slack_client() -> MagicMock:
    client = MagicMock()
    members = {member["id"]: member for member in SLACK_MEMBERS}
    client.users_info = AsyncMock(side_effect=lambda user_id: members.get(user_id, {"id": user_id, "name": "ghost"}))
    client.fetch_users = AsyncMock(return_value=list(SLACK_MEMBERS))
    client.post_message = AsyncMock(return_value={"ok": True, "ts": "1.0"})
    client.close = AsyncMock()
    return client


@pytest.fixture
def today() -> date:
    return date(2025, 10, 9)


@pytest.fixture
def service(seeded_database: Database, slack_client: MagicMock, today: date) -> ReportService:
    return ReportService(
        seeded_database,
        slack_client,
        AccessPolicy({"ADM"}),
        clock=lambda: today,
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        slack_bot_token="xoxb-test",
        slack_signing_secret=SIGNING_SECRET,
        database_path=tmp_path / "crm.db",
        admin_employee_codes=frozenset({"ADM"}),
    )


@pytest.fixture
def log_time() -> Callable[..., None]:
    """Record one activity row per day for an employee."""

    ticket_ids = itertools.count(1)

    def record(database: Database, code: str, days: List[date], hours: int = 8, minutes: int = 30) -> None:
        for day in days:
            database.record_activity(
                ticket_id=next(ticket_ids),
                line=1,
                employee_code=code,
                scheduled_at=f"{day.isoformat()} 09:00:00",
                hours=hours,
                minutes=minutes,
            )

    return record
