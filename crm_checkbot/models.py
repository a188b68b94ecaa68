"""Dataclasses representing CRM check bot domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any


class RestRotation(Enum):
    """Saturday rest rotation, stored as ``1``/``2`` in the employee directory."""

    A = 1
    B = 2

    @classmethod
    def from_value(cls, value: Any) -> "RestRotation":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            value = value.strip().upper()
            if value in cls.__members__:
                return cls[value]
        try:
            return cls(int(value))
        except (TypeError, ValueError) as exc:
            raise InvalidRestRotationError(value) from exc


class CheckbotError(Exception):
    """Base class for errors raised by the bot's domain layer."""


class EmployeeNotFoundError(CheckbotError, LookupError):
    """Raised when a Slack identity cannot be matched to an active employee."""

    def __init__(self, alias: str | None) -> None:
        super().__init__(f"No active employee found for alias {alias!r}")
        self.alias = alias


class InvalidRestRotationError(CheckbotError, ValueError):
    def __init__(self, value: Any) -> None:
        super().__init__(f"Invalid rest rotation type ({value!r}); expected 1 (A) or 2 (B)")
        self.value = value


@dataclass(slots=True)
class Employee:
    code: str
    name: str
    alias: str
    rotation: RestRotation
    active: bool = True


@dataclass(slots=True)
class EmployeeProfile:
    code: str
    name: str | None
    alias: str | None
    national_id: str | None = None
    area: str | None = None
    position: str | None = None
    crm_username: str | None = None
    crm_password: str | None = None


@dataclass(slots=True)
class DailyTimeRecord:
    day: date
    logged_minutes: int
    required_minutes: int
    is_saturday: bool
    has_record: bool

    @property
    def passed(self) -> bool:
        return self.logged_minutes >= self.required_minutes

    @property
    def shortfall_minutes(self) -> int:
        return max(self.required_minutes - self.logged_minutes, 0)


@dataclass(slots=True)
class TimeSummary:
    logged_minutes: int
    required_minutes: int

    @property
    def passed(self) -> bool:
        return self.logged_minutes >= self.required_minutes


@dataclass(slots=True)
class MonthlySummary(TimeSummary):
    excluded_saturdays: int = 0
    excluded_holidays: int = 0


@dataclass(slots=True)
class ReportPeriod:
    start: date
    end: date
    label: str = ""

    @property
    def is_empty(self) -> bool:
        return self.end < self.start


@dataclass(slots=True)
class EmployeeReport:
    employee: Employee
    display_name: str
    period: ReportPeriod
    records: list[DailyTimeRecord]
    weeks: list[list[DailyTimeRecord]]
    summary: MonthlySummary


@dataclass(slots=True)
class ReportSection:
    """A render-ready group of Slack blocks, sent as one message."""

    kind: str
    text: str
    blocks: list[dict[str, Any]]


@dataclass(slots=True)
class Task:
    id: int
    description: str | None
    creator_code: str | None
    assignee_code: str | None
    notified: bool = False


@dataclass(slots=True)
class BroadcastOutcome:
    total: int = 0
    compliant: list[str] = field(default_factory=list)
    non_compliant: list[str] = field(default_factory=list)
    unreachable: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


@dataclass(slots=True)
class NotificationResult:
    delivered: bool
    message: str


__all__ = [
    "RestRotation",
    "CheckbotError",
    "EmployeeNotFoundError",
    "InvalidRestRotationError",
    "Employee",
    "EmployeeProfile",
    "DailyTimeRecord",
    "TimeSummary",
    "MonthlySummary",
    "ReportPeriod",
    "EmployeeReport",
    "ReportSection",
    "Task",
    "BroadcastOutcome",
    "NotificationResult",
]
