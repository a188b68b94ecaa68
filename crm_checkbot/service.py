"""Core orchestration logic for the CRM check bot."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from . import report
from .calendar_rules import (
    DEFAULT_HOLIDAYS,
    excluded_holidays,
    excluded_saturdays,
    holidays_between,
    working_days,
)
from .db import Database, Row
from .models import (
    BroadcastOutcome,
    DailyTimeRecord,
    Employee,
    EmployeeNotFoundError,
    EmployeeProfile,
    EmployeeReport,
    InvalidRestRotationError,
    ReportPeriod,
    ReportSection,
    RestRotation,
)
from .slack_client import SlackClient, UserDirectory, display_name, member_aliases
from .timesheet import (
    daily_record,
    format_duration,
    group_by_week,
    logged_minutes_from,
    monthly_summary,
)

logger = logging.getLogger(__name__)

Reply = Callable[[str, List[Dict[str, Any]]], Awaitable[Any]]
PeriodStrategy = Callable[[date], ReportPeriod]
Clock = Callable[[], date]


# region Periods
def current_month_to_date(today: date) -> ReportPeriod:
    """First day of the month through yesterday; empty on the 1st."""

    return ReportPeriod(start=today.replace(day=1), end=today - timedelta(days=1))


def previous_month(today: date) -> ReportPeriod:
    end = today.replace(day=1) - timedelta(days=1)
    return ReportPeriod(start=end.replace(day=1), end=end, label=" (Mes Anterior)")


def zone_clock(timezone_name: str) -> Clock:
    zone = ZoneInfo(timezone_name)

    def today() -> date:
        return datetime.now(zone).date()

    return today


# endregion


class AccessPolicy:
    """Decides which employee codes may run administrator commands."""

    def __init__(self, admin_codes: Iterable[str] = ()) -> None:
        self._admin_codes = frozenset(code.strip() for code in admin_codes)

    def is_admin(self, employee_code: Optional[str]) -> bool:
        return bool(employee_code) and employee_code.strip() in self._admin_codes


def employee_from_row(row: Row) -> Employee:
    return Employee(
        code=row["code"],
        name=(row["name"] or row["code"]).strip(),
        alias=row["alias"],
        rotation=RestRotation.from_value(row["rest_type"]),
    )


class ReportService:
    """Builds compliance reports and runs the self-service and broadcast commands."""

    def __init__(
        self,
        database: Database,
        client: SlackClient,
        access_policy: AccessPolicy,
        holidays: Iterable[Tuple[int, int]] = DEFAULT_HOLIDAYS,
        clock: Optional[Clock] = None,
    ) -> None:
        self.database = database
        self.client = client
        self.access_policy = access_policy
        self.holidays = tuple(holidays)
        self.clock = clock or date.today

    # region Time aggregation
    def daily_record(self, employee_code: str, day: date) -> DailyTimeRecord:
        row = self.database.get_logged_time(employee_code, day)
        return daily_record(day, logged_minutes_from(row["total_hours"], row["total_minutes"]))

    def compile_report(
        self, employee: Employee, name: str, period: ReportPeriod
    ) -> EmployeeReport:
        if period.is_empty:
            days: List[date] = []
            saturdays = holidays = 0
        else:
            holiday_set = holidays_between(period.start, period.end, self.holidays)
            days = working_days(period.start, period.end, employee.rotation, holiday_set)
            saturdays = excluded_saturdays(period.start, period.end, employee.rotation)
            holidays = excluded_holidays(period.start, period.end, holiday_set)

        logged: Dict[date, Optional[int]] = {}
        if days:
            for row in self.database.get_logged_time_by_day(employee.code, period.start, period.end):
                logged[date.fromisoformat(row["day"])] = logged_minutes_from(
                    row["total_hours"], row["total_minutes"]
                )
        records = [daily_record(day, logged.get(day)) for day in days]
        return EmployeeReport(
            employee=employee,
            display_name=name,
            period=period,
            records=records,
            weeks=group_by_week(records),
            summary=monthly_summary(records, saturdays, holidays),
        )

    def render(self, employee_report: EmployeeReport) -> List[ReportSection]:
        summary = employee_report.summary
        return report.build_report(
            employee_report.display_name,
            employee_report.employee.code,
            employee_report.employee.rotation,
            employee_report.period.start,
            employee_report.period.end,
            summary.excluded_saturdays,
            summary.excluded_holidays,
            employee_report.weeks,
            summary,
            title_suffix=employee_report.period.label,
        )

    # endregion

    # region Identity
    async def resolve_caller(self, user_id: str) -> Tuple[Dict[str, Any], Row]:
        """Match a Slack user to an active employee row by username, then email."""

        if not user_id:
            raise EmployeeNotFoundError(None)
        member = await self.client.users_info(user_id)
        aliases = member_aliases(member)
        for alias in aliases:
            row = self.database.get_employee_by_alias(alias)
            if row is not None:
                return member, row
        raise EmployeeNotFoundError(aliases[0] if aliases else user_id)

    def active_employees(self) -> List[Employee]:
        employees: List[Employee] = []
        for row in self.database.get_active_employees():
            try:
                employees.append(employee_from_row(row))
            except InvalidRestRotationError:
                logger.warning(
                    "Employee %s has invalid rest rotation %r; skipping", row["code"], row["rest_type"]
                )
        return employees

    # endregion

    # region Commands
    async def self_report(self, user_id: str, period_strategy: PeriodStrategy, reply: Reply) -> EmployeeReport:
        member, row = await self.resolve_caller(user_id)
        employee = employee_from_row(row)
        period = period_strategy(self.clock())
        employee_report = self.compile_report(employee, display_name(member, employee.name), period)
        for section in self.render(employee_report):
            await reply(section.text, section.blocks)
        return employee_report

    async def profile(self, user_id: str, reply: Reply) -> EmployeeProfile:
        member = await self.client.users_info(user_id)
        for alias in member_aliases(member):
            row = self.database.get_employee_profile(alias)
            if row is not None:
                break
        else:
            raise EmployeeNotFoundError(member.get("name") or user_id)

        profile = EmployeeProfile(
            code=row["code"],
            name=row["name"],
            alias=row["alias"],
            national_id=row["national_id"],
            area=row["area"],
            position=row["position"],
            crm_username=row["crm_username"],
            crm_password=row["crm_password"],
        )
        name = profile.name or display_name(member)
        await reply(f"Perfil de {name}", report.profile_blocks(profile, display_name(member)))
        return profile

    async def broadcast(
        self, user_id: str, period_strategy: PeriodStrategy, reply: Reply
    ) -> Optional[BroadcastOutcome]:
        """Send reports to every active employee whose period total falls short.

        Returns ``None`` when the caller is not an authorized administrator.
        """

        try:
            _, caller = await self.resolve_caller(user_id)
        except EmployeeNotFoundError:
            caller = None
        if caller is None or not self.access_policy.is_admin(caller["code"]):
            logger.warning("Denied broadcast command to Slack user %s", user_id)
            await reply("Acceso denegado", report.access_denied_blocks())
            return None

        employees = self.active_employees()
        period = period_strategy(self.clock())
        await reply(
            f"Iniciando envío masivo de reportes a {len(employees)} funcionarios",
            report.broadcast_started_blocks(len(employees), period.start),
        )

        directory = UserDirectory(self.client)
        outcome = BroadcastOutcome(total=len(employees))
        for employee in employees:
            try:
                member = await directory.find(employee.alias)
                if member is None:
                    logger.warning("No Slack user with username %s (%s)", employee.alias, employee.code)
                    outcome.unreachable.append(employee.name)
                    continue

                name = display_name(member, employee.name)
                employee_report = self.compile_report(employee, name, period)
                summary = employee_report.summary
                if summary.passed:
                    logger.info("Employee %s (%s) is up to date", name, employee.code)
                    outcome.compliant.append(name)
                    continue

                await self.client.post_message(
                    member["id"],
                    f"Reporte mensual completo para {name}",
                    blocks=report.flatten(self.render(employee_report)),
                )
                outcome.non_compliant.append(
                    f"*{name}*: {format_duration(summary.logged_minutes)} "
                    f"de {format_duration(summary.required_minutes)}"
                )
            except Exception:  # noqa: BLE001
                logger.exception("Failed to process employee %s", employee.code)
                outcome.failed.append(employee.name)

        logger.info(
            "Broadcast finished: %s employees, %s compliant, %s with shortfalls",
            outcome.total,
            len(outcome.compliant),
            len(outcome.non_compliant),
        )
        await reply("Resumen del envío masivo de reportes", report.broadcast_summary_blocks(outcome))
        return outcome

    # endregion


__all__ = [
    "ReportService",
    "AccessPolicy",
    "current_month_to_date",
    "previous_month",
    "zone_clock",
    "employee_from_row",
]
