"""Direct-message command routing."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from . import report
from .models import EmployeeNotFoundError
from .service import PeriodStrategy, Reply, ReportService, current_month_to_date, previous_month
from .slack_client import SlackClient

logger = logging.getLogger(__name__)

Handler = Callable[[str, Reply], Awaitable[Any]]


class CommandDispatcher:
    """Routes DM text to a command and replies in the triggering message's thread."""

    def __init__(self, service: ReportService, client: SlackClient) -> None:
        self.service = service
        self.client = client
        self.commands: Dict[str, Handler] = {
            "info": self._help,
            "ayuda": self._help,
            "unicheck": self.service.profile,
            "crm-check-me": self._self_report(current_month_to_date),
            "crm-check-me-past": self._self_report(previous_month),
            "crm-check-all-admin": self._broadcast(current_month_to_date),
            "crm-check-all-admin-past": self._broadcast(previous_month),
        }

    @staticmethod
    def is_direct_message(event: Dict[str, Any]) -> bool:
        return (
            event.get("type") == "message"
            and event.get("channel_type") == "im"
            and not event.get("bot_id")
            and not event.get("subtype")
        )

    def _self_report(self, strategy: PeriodStrategy) -> Handler:
        async def handler(user_id: str, reply: Reply) -> Any:
            return await self.service.self_report(user_id, strategy, reply)

        return handler

    def _broadcast(self, strategy: PeriodStrategy) -> Handler:
        async def handler(user_id: str, reply: Reply) -> Any:
            return await self.service.broadcast(user_id, strategy, reply)

        return handler

    async def _help(self, user_id: str, reply: Reply) -> None:
        await reply("📚 Comandos disponibles del bot de reportes CRM", report.help_blocks())

    def thread_reply(self, event: Dict[str, Any]) -> Reply:
        channel = event["channel"]
        thread_ts = event.get("thread_ts") or event.get("ts")

        async def reply(text: str, blocks: List[Dict[str, Any]]) -> None:
            await self.client.post_message(channel, text, blocks=blocks, thread_ts=thread_ts)

        return reply

    async def handle_event(self, event: Dict[str, Any]) -> Optional[str]:
        """Run the command in ``event``; returns the normalized command text."""

        if not self.is_direct_message(event):
            return None

        command = (event.get("text") or "").strip().lower()
        user_id = event.get("user", "")
        reply = self.thread_reply(event)
        handler = self.commands.get(command)
        if handler is None:
            await reply("Comando no reconocido", report.unknown_command_blocks())
            return command

        logger.info("Running command %s for Slack user %s", command, user_id)
        try:
            await handler(user_id, reply)
        except EmployeeNotFoundError as exc:
            logger.warning("Identity resolution failed for %s: %s", user_id, exc)
            await reply("No pudimos identificarte", report.identity_error_blocks())
        except Exception as exc:  # noqa: BLE001
            logger.exception("Command %s failed for %s", command, user_id)
            await reply("❌ Error al procesar el comando", report.error_blocks(exc))
        return command


__all__ = ["CommandDispatcher"]
