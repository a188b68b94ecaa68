"""MCP server exposing read-only compliance tools."""

from __future__ import annotations

from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from .config import load_settings
from .db import Database
from .service import (
    AccessPolicy,
    ReportService,
    current_month_to_date,
    employee_from_row,
    previous_month,
    zone_clock,
)
from .slack_client import SlackClient
from .timesheet import format_duration

PERIODS = {"current": current_month_to_date, "previous": previous_month}


def compliance_report(service: ReportService, alias: str, period: str = "current") -> Dict[str, Any]:
    """Daily and period compliance for the active employee stored under ``alias``."""

    strategy = PERIODS.get(period.lower())
    if strategy is None:
        raise ValueError("period must be one of: current, previous")
    row = service.database.get_employee_by_alias(alias)
    if row is None:
        raise ValueError(f"No active employee with alias {alias!r}")
    employee = employee_from_row(row)
    employee_report = service.compile_report(employee, employee.name, strategy(service.clock()))
    summary = employee_report.summary
    return {
        "employee": employee.code,
        "start": employee_report.period.start.isoformat(),
        "end": employee_report.period.end.isoformat(),
        "logged": format_duration(summary.logged_minutes),
        "required": format_duration(summary.required_minutes),
        "passed": summary.passed,
        "excluded_saturdays": summary.excluded_saturdays,
        "excluded_holidays": summary.excluded_holidays,
        "days": [
            {
                "date": record.day.isoformat(),
                "logged_minutes": record.logged_minutes,
                "required_minutes": record.required_minutes,
                "passed": record.passed,
            }
            for record in employee_report.records
        ],
    }


def create_mcp(service: ReportService) -> FastMCP:
    mcp = FastMCP("crm-checkbot")

    @mcp.tool()
    async def list_active_employees() -> list[dict]:
        """Return active employees with their rest rotation."""

        return [
            {
                "code": employee.code,
                "name": employee.name,
                "alias": employee.alias,
                "rotation": employee.rotation.name,
            }
            for employee in service.active_employees()
        ]

    @mcp.tool()
    async def get_compliance_report(alias: str, period: str = "current") -> dict:
        """Return an employee's daily and monthly time compliance.

        ``period`` is ``current`` (month to yesterday) or ``previous`` (last full month).
        """

        return compliance_report(service, alias, period)

    return mcp


def build_service(env_file: Optional[str] = None) -> ReportService:
    settings = load_settings(env_file)
    return ReportService(
        Database(settings.database_path),
        SlackClient(settings.slack_bot_token),
        AccessPolicy(settings.admin_employee_codes),
        holidays=settings.holidays,
        clock=zone_clock(settings.timezone),
    )


if __name__ == "__main__":  # pragma: no cover
    create_mcp(build_service()).run()


__all__ = ["create_mcp", "build_service", "compliance_report"]
