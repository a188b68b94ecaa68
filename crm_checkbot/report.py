"""Slack Block Kit builders for compliance reports and bot replies."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import Any, Dict, List

from .models import (
    BroadcastOutcome,
    DailyTimeRecord,
    EmployeeProfile,
    MonthlySummary,
    ReportSection,
    RestRotation,
)
from .timesheet import (
    SATURDAY_REQUIRED_MINUTES,
    WEEKDAY_REQUIRED_MINUTES,
    format_duration,
    shortfall_text,
    weekly_summary,
)

Block = Dict[str, Any]

MONTHS = (
    "enero",
    "febrero",
    "marzo",
    "abril",
    "mayo",
    "junio",
    "julio",
    "agosto",
    "septiembre",
    "octubre",
    "noviembre",
    "diciembre",
)

PASS_ICON = "✅"
FAIL_ICON = "⚠️"


def month_label(day: date) -> str:
    return f"{MONTHS[day.month - 1]} {day.year}"


def _icon(passed: bool) -> str:
    return PASS_ICON if passed else FAIL_ICON


def _section(text: str) -> Block:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def _header(text: str) -> Block:
    return {"type": "header", "text": {"type": "plain_text", "text": text}}


def _context(text: str) -> Block:
    return {"type": "context", "elements": [{"type": "mrkdwn", "text": text}]}


def _divider() -> Block:
    return {"type": "divider"}


def day_text(record: DailyTimeRecord) -> str:
    if record.has_record:
        text = f"*{format_duration(record.logged_minutes)}*"
    else:
        text = "*Sin registro*"
    missing = shortfall_text(record)
    if missing:
        text += f" - *Faltan {missing}*"
    return f"{_icon(record.passed)} *{record.day:%d/%m/%Y}*\n{text}"


def week_blocks(number: int, records: Sequence[DailyTimeRecord], show_total: bool = True) -> List[Block]:
    first, last = records[0].day, records[-1].day
    blocks: List[Block] = [_header(f"📆 Semana {number} ({first:%d/%m} - {last:%d/%m})")]

    weekdays = [record for record in records if not record.is_saturday]
    if weekdays:
        blocks.append(
            _section(
                "*📝 Días laborales (L-V) - Requerido: "
                f"{format_duration(WEEKDAY_REQUIRED_MINUTES)}*"
            )
        )
        # two days per row
        for start in range(0, len(weekdays), 2):
            fields = [{"type": "mrkdwn", "text": day_text(record)} for record in weekdays[start : start + 2]]
            while len(fields) < 2:
                fields.append({"type": "mrkdwn", "text": " "})
            blocks.append({"type": "section", "fields": fields})

    saturdays = [record for record in records if record.is_saturday]
    if saturdays:
        blocks.append(
            _section(
                "*🛠️ Sábados laborables - Requerido: "
                f"{format_duration(SATURDAY_REQUIRED_MINUTES, pad=False)}*"
            )
        )
        blocks.extend(_section(day_text(record)) for record in saturdays)

    if show_total:
        totals = weekly_summary(records)
        blocks.append(
            _context(
                f"*📊 Total semana {number}:* {format_duration(totals.logged_minutes)} "
                f"(Requerido: {format_duration(totals.required_minutes)}) {_icon(totals.passed)}"
            )
        )
    blocks.append(_divider())
    return blocks


def summary_blocks(summary: MonthlySummary) -> List[Block]:
    return [
        _header("📊 Resumen Mensual"),
        {
            "type": "section",
            "fields": [
                {"type": "mrkdwn", "text": f"*Total registrado:* {format_duration(summary.logged_minutes)}"},
                {"type": "mrkdwn", "text": f"*Requerido:* {format_duration(summary.required_minutes)}"},
            ],
        },
        {
            "type": "section",
            "fields": [
                {
                    "type": "mrkdwn",
                    "text": f"*Estado:* {_icon(summary.passed)} {'Cumple' if summary.passed else 'No cumple'}",
                }
            ],
        },
        {
            "type": "section",
            "fields": [
                {"type": "mrkdwn", "text": f"*Sábados excluidos:* {summary.excluded_saturdays}"},
                {"type": "mrkdwn", "text": f"*Festivos excluidos:* {summary.excluded_holidays}"},
            ],
        },
    ]


def build_report(
    employee_name: str,
    employee_code: str,
    rotation: RestRotation,
    period_start: date,
    period_end: date,
    excluded_saturdays: int,
    excluded_holidays: int,
    weeks: Sequence[Sequence[DailyTimeRecord]],
    summary: MonthlySummary,
    title_suffix: str = "",
) -> List[ReportSection]:
    """Turn an aggregated period into ordered header, week and summary sections.

    The last week carries no weekly total; the monthly summary closes the report.
    A period without working days yields the header and an ``empty`` section.
    """

    title = f"📅 Reporte Mensual - {month_label(period_start)}{title_suffix}"
    if period_end < period_start:
        period_text = f"{period_start:%d/%m/%Y}"
    else:
        period_text = f"{period_start:%d/%m/%Y} - {period_end:%d/%m/%Y}"
    sections = [
        ReportSection(
            kind="header",
            text=f"Reporte mensual para {employee_name}",
            blocks=[
                _header(title),
                _section(
                    f"*Usuario:* {employee_name} ({employee_code})\n"
                    f"*Tipo Descanso:* {rotation.value} ({rotation.name})\n"
                    f"*Período:* {period_text}\n"
                    f"*Sábados excluidos:* {excluded_saturdays}\n"
                    f"*Festivos excluidos:* {excluded_holidays}"
                ),
                _divider(),
            ],
        )
    ]
    if not weeks:
        sections.append(
            ReportSection(kind="empty", text="No hay días laborables en el período solicitado", blocks=no_working_days_blocks())
        )
        return sections

    for index, records in enumerate(weeks):
        number = index + 1
        sections.append(
            ReportSection(
                kind="week",
                text=f"Reporte semana {number} para {employee_name}",
                blocks=week_blocks(number, records, show_total=index < len(weeks) - 1),
            )
        )
    sections.append(
        ReportSection(kind="summary", text=f"Resumen mensual para {employee_name}", blocks=summary_blocks(summary))
    )
    return sections


def flatten(sections: Sequence[ReportSection]) -> List[Block]:
    return [block for section in sections for block in section.blocks]


def help_blocks() -> List[Block]:
    return [
        _header("📚 Ayuda de Comandos CRM"),
        _divider(),
        _section("*Estos son los comandos disponibles:*"),
        _section(
            ":mag: `unicheck` - *Muestra tu información personal*\n"
            ":bar_chart: `crm-check-me` - *Registros de este mes*\n"
            ":rewind: `crm-check-me-past` - *Registros del mes anterior*\n"
            ":information_source: `info` / `ayuda` - *Muestra esta lista*"
        ),
        _divider(),
        _context("ℹ️ Ejecuta estos comandos en mensajes directos al bot"),
        _context("🔧 ¿Necesitas ayuda? Contacta al equipo de soporte técnico"),
    ]


def unknown_command_blocks() -> List[Block]:
    return [
        _section("❌ *Comando no reconocido*"),
        _divider(),
        _section(
            "Comandos disponibles:\n\n"
            "• `info`/`ayuda` - Muestra ayuda\n"
            "• `unicheck` - Tu perfil\n"
            "• `crm-check-me` - Tus registros\n"
            "• `crm-check-me-past` - Registros mes pasado"
        ),
    ]


def profile_blocks(profile: EmployeeProfile, fallback_name: str) -> List[Block]:
    return [
        _header("📋 Perfil del Funcionario"),
        _divider(),
        _section(
            f"🆔 *Código:* {profile.code or 'No disponible'}\n"
            f"👤 *Nombre:* {profile.name or fallback_name}"
        ),
        _section(
            f"📧 *Usuario Slack:* {profile.alias or 'No disponible'}\n"
            f"🪪 *Cédula:* {profile.national_id or 'Pendiente'}"
        ),
        _section(
            f"🏢 *Área:* {profile.area or 'No asignada'}\n"
            f"💼 *Cargo:* {profile.position or 'No asignado'}"
        ),
        _divider(),
        _section("*🔑 Credenciales CRM*"),
        _section(
            f"👤 *Usuario:* `{profile.crm_username or 'No disponible'}`\n"
            f"🔒 *Contraseña:* `{profile.crm_password or 'No disponible'}`"
        ),
    ]


def access_denied_blocks() -> List[Block]:
    return [
        _section("⛔ *Acceso denegado*"),
        _section(
            "No tienes permisos para ejecutar este comando de administrador.\n\n"
            "Por favor, contacta al servicio técnico si necesitas acceso."
        ),
    ]


def identity_error_blocks() -> List[Block]:
    return [
        _section("😔 *Lo sentimos, no pudimos identificarte*"),
        _section(
            "Tu usuario de Slack no está asociado a un funcionario activo en el CRM.\n"
            "Contacta al equipo de soporte técnico para revisar tu registro."
        ),
    ]


def error_blocks(error: BaseException, title: str = "Error al procesar el comando") -> List[Block]:
    return [_section(f"❌ *{title}*"), _section(f"```{error}```")]


def no_working_days_blocks() -> List[Block]:
    return [_section("*ℹ️ No hay días laborables en el período solicitado*")]


def broadcast_started_blocks(total: int, period_start: date) -> List[Block]:
    return [
        _section(
            "⏳ *Iniciando envío masivo de reportes mensuales*\n"
            f"Se revisarán los registros de {month_label(period_start)} "
            f"de {total} funcionarios activos"
        )
    ]


def broadcast_summary_blocks(outcome: BroadcastOutcome) -> List[Block]:
    blocks: List[Block] = [
        _section("✅ *Envío masivo de reportes completado*"),
        _section(
            f"*Total de funcionarios revisados:* {outcome.total}\n"
            f"*Reportes enviados (con pendientes):* {len(outcome.non_compliant)}\n"
            f"*Funcionarios al día (sin reporte):* {len(outcome.compliant)}\n"
            f"*Sin usuario de Slack:* {len(outcome.unreachable)}\n"
            f"*Con errores:* {len(outcome.failed)}"
        ),
        _divider(),
    ]
    if outcome.non_compliant:
        blocks.append(
            _section(
                f"⚠️ *Funcionarios con horas pendientes ({len(outcome.non_compliant)}):*\n"
                + "\n".join(outcome.non_compliant)
            )
        )
    if outcome.compliant:
        blocks.append(
            _section(
                f"✅ *Funcionarios al día ({len(outcome.compliant)}):*\n" + "\n".join(outcome.compliant)
            )
        )
    blocks.append(_context("Se enviaron reportes detallados solo a los usuarios con horas pendientes."))
    return blocks


__all__ = [
    "build_report",
    "flatten",
    "week_blocks",
    "summary_blocks",
    "day_text",
    "month_label",
    "help_blocks",
    "unknown_command_blocks",
    "profile_blocks",
    "access_denied_blocks",
    "identity_error_blocks",
    "error_blocks",
    "no_working_days_blocks",
    "broadcast_started_blocks",
    "broadcast_summary_blocks",
]
