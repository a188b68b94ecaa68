"""SQLite persistence layer for the CRM check bot."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

Connection = sqlite3.Connection
Row = sqlite3.Row

ACTIVE = "A"


class Database:
    """Lightweight wrapper around SQLite operations."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize()

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _initialize(self) -> None:
        with self.connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS areas (
                    id INTEGER PRIMARY KEY,
                    name TEXT NOT NULL
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS positions (
                    id INTEGER PRIMARY KEY,
                    name TEXT NOT NULL
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS employees (
                    code TEXT PRIMARY KEY,
                    name TEXT,
                    alias TEXT UNIQUE,
                    rest_type INTEGER,
                    status TEXT NOT NULL DEFAULT 'A',
                    national_id TEXT,
                    crm_username TEXT,
                    crm_password TEXT,
                    area_id INTEGER,
                    position_id INTEGER,
                    FOREIGN KEY(area_id) REFERENCES areas(id),
                    FOREIGN KEY(position_id) REFERENCES positions(id)
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS tickets (
                    id INTEGER PRIMARY KEY,
                    subject TEXT
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS ticket_activities (
                    ticket_id INTEGER NOT NULL,
                    line INTEGER NOT NULL,
                    employee_code TEXT NOT NULL,
                    PRIMARY KEY(ticket_id, line),
                    FOREIGN KEY(ticket_id) REFERENCES tickets(id),
                    FOREIGN KEY(employee_code) REFERENCES employees(code)
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS activity_schedule (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    ticket_id INTEGER NOT NULL,
                    line INTEGER NOT NULL,
                    scheduled_at TEXT NOT NULL,
                    hours INTEGER NOT NULL DEFAULT 0,
                    minutes INTEGER NOT NULL DEFAULT 0,
                    FOREIGN KEY(ticket_id, line) REFERENCES ticket_activities(ticket_id, line)
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY,
                    description TEXT,
                    creator_code TEXT,
                    assignee_code TEXT,
                    notified INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            conn.commit()

    # region Employees
    def upsert_employee(self, employee: Dict[str, Any]) -> None:
        record = {
            "name": None,
            "alias": None,
            "rest_type": None,
            "status": ACTIVE,
            "national_id": None,
            "crm_username": None,
            "crm_password": None,
            "area_id": None,
            "position_id": None,
            **employee,
        }
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO employees (code, name, alias, rest_type, status, national_id,
                                       crm_username, crm_password, area_id, position_id)
                VALUES (:code, :name, :alias, :rest_type, :status, :national_id,
                        :crm_username, :crm_password, :area_id, :position_id)
                ON CONFLICT(code) DO UPDATE SET
                    name=excluded.name,
                    alias=excluded.alias,
                    rest_type=excluded.rest_type,
                    status=excluded.status,
                    national_id=excluded.national_id,
                    crm_username=excluded.crm_username,
                    crm_password=excluded.crm_password,
                    area_id=excluded.area_id,
                    position_id=excluded.position_id
                """,
                record,
            )
            conn.commit()

    def upsert_area(self, area_id: int, name: str) -> None:
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO areas (id, name) VALUES (?, ?) "
                "ON CONFLICT(id) DO UPDATE SET name=excluded.name",
                (area_id, name),
            )
            conn.commit()

    def upsert_position(self, position_id: int, name: str) -> None:
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO positions (id, name) VALUES (?, ?) "
                "ON CONFLICT(id) DO UPDATE SET name=excluded.name",
                (position_id, name),
            )
            conn.commit()

    def get_employee_by_alias(self, alias: str) -> Optional[Row]:
        with self.connect() as conn:
            cursor = conn.execute(
                """
                SELECT code, name, alias, rest_type
                FROM employees
                WHERE status = 'A' AND lower(alias) = lower(?)
                """,
                (alias,),
            )
            return cursor.fetchone()

    def get_employee_by_code(self, code: str) -> Optional[Row]:
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT code, name, alias, rest_type, status FROM employees WHERE code = ?",
                (code,),
            )
            return cursor.fetchone()

    def get_active_employees(self) -> List[Row]:
        """Active employees that have a messaging alias, in directory order."""

        with self.connect() as conn:
            cursor = conn.execute(
                """
                SELECT code, name, alias, rest_type
                FROM employees
                WHERE status = 'A' AND alias IS NOT NULL AND alias != ''
                ORDER BY code
                """
            )
            return cursor.fetchall()

    def get_employee_profile(self, alias: str) -> Optional[Row]:
        with self.connect() as conn:
            cursor = conn.execute(
                """
                SELECT e.code, e.name, e.alias, e.national_id, e.crm_username,
                       e.crm_password, a.name AS area, p.name AS position
                FROM employees e
                LEFT JOIN areas a ON a.id = e.area_id
                LEFT JOIN positions p ON p.id = e.position_id
                WHERE e.status = 'A' AND lower(e.alias) = lower(?)
                """,
                (alias,),
            )
            return cursor.fetchone()

    def list_active_employees(self) -> List[Dict[str, Any]]:
        with self.connect() as conn:
            cursor = conn.execute(
                """
                SELECT e.code, e.name, e.alias, e.rest_type, e.national_id,
                       a.name AS area, p.name AS position
                FROM employees e
                LEFT JOIN areas a ON a.id = e.area_id
                LEFT JOIN positions p ON p.id = e.position_id
                WHERE e.status = 'A'
                ORDER BY e.name
                """
            )
            return [dict(row) for row in cursor.fetchall()]

    # endregion

    # region Activity log
    def record_activity(
        self,
        ticket_id: int,
        line: int,
        employee_code: str,
        scheduled_at: str,
        hours: int,
        minutes: int,
    ) -> None:
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO tickets (id) VALUES (?) ON CONFLICT(id) DO NOTHING",
                (ticket_id,),
            )
            conn.execute(
                """
                INSERT INTO ticket_activities (ticket_id, line, employee_code)
                VALUES (?, ?, ?)
                ON CONFLICT(ticket_id, line) DO UPDATE SET employee_code=excluded.employee_code
                """,
                (ticket_id, line, employee_code),
            )
            conn.execute(
                """
                INSERT INTO activity_schedule (ticket_id, line, scheduled_at, hours, minutes)
                VALUES (?, ?, ?, ?, ?)
                """,
                (ticket_id, line, scheduled_at, hours, minutes),
            )
            conn.commit()

    def get_logged_time(self, employee_code: str, day: date) -> Row:
        """Summed hours and minutes for one day; both are NULL when nothing was logged."""

        with self.connect() as conn:
            cursor = conn.execute(
                """
                SELECT SUM(s.hours) AS total_hours, SUM(s.minutes) AS total_minutes
                FROM ticket_activities ta
                JOIN activity_schedule s ON s.ticket_id = ta.ticket_id AND s.line = ta.line
                JOIN tickets t ON t.id = ta.ticket_id
                WHERE ta.employee_code = ? AND date(s.scheduled_at) = ?
                """,
                (employee_code, day.isoformat()),
            )
            return cursor.fetchone()

    def get_logged_time_by_day(self, employee_code: str, start: date, end: date) -> List[Row]:
        with self.connect() as conn:
            cursor = conn.execute(
                """
                SELECT date(s.scheduled_at) AS day,
                       SUM(s.hours) AS total_hours,
                       SUM(s.minutes) AS total_minutes
                FROM ticket_activities ta
                JOIN activity_schedule s ON s.ticket_id = ta.ticket_id AND s.line = ta.line
                JOIN tickets t ON t.id = ta.ticket_id
                WHERE ta.employee_code = ? AND date(s.scheduled_at) BETWEEN ? AND ?
                GROUP BY date(s.scheduled_at)
                ORDER BY day
                """,
                (employee_code, start.isoformat(), end.isoformat()),
            )
            return cursor.fetchall()

    # endregion

    # region Tasks
    def upsert_task(self, task: Dict[str, Any]) -> None:
        record = {"description": None, "creator_code": None, "assignee_code": None, "notified": 0, **task}
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO tasks (id, description, creator_code, assignee_code, notified)
                VALUES (:id, :description, :creator_code, :assignee_code, :notified)
                ON CONFLICT(id) DO UPDATE SET
                    description=excluded.description,
                    creator_code=excluded.creator_code,
                    assignee_code=excluded.assignee_code,
                    notified=excluded.notified
                """,
                record,
            )
            conn.commit()

    def get_task(self, task_id: int) -> Optional[Row]:
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT id, description, creator_code, assignee_code, notified FROM tasks WHERE id = ?",
                (task_id,),
            )
            return cursor.fetchone()

    def get_pending_tasks(self) -> List[Row]:
        with self.connect() as conn:
            cursor = conn.execute(
                """
                SELECT id, description, creator_code, assignee_code, notified
                FROM tasks
                WHERE notified = 0
                ORDER BY id
                """
            )
            return cursor.fetchall()

    def mark_task_notified(self, task_id: int) -> None:
        with self.connect() as conn:
            conn.execute("UPDATE tasks SET notified = 1 WHERE id = ?", (task_id,))
            conn.commit()

    # endregion


__all__ = ["Database"]
