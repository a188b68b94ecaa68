"""Task assignment and completion notifications relayed from the task system."""

from __future__ import annotations

import logging
from typing import List, Optional

from .db import Database, Row
from .models import NotificationResult, Task
from .slack_client import SlackClient, UserDirectory

logger = logging.getLogger(__name__)

NOTIFY_ASSIGNEE = "NotificarAsignado"
NOTIFY_CREATOR = "NotificarCreador"
TARGETS = (NOTIFY_ASSIGNEE, NOTIFY_CREATOR)


class InvalidTargetError(ValueError):
    def __init__(self, target: str) -> None:
        super().__init__(f"Notification target {target!r} is not valid; expected one of {', '.join(TARGETS)}")
        self.target = target


def task_from_row(row: Row) -> Task:
    return Task(
        id=row["id"],
        description=row["description"],
        creator_code=row["creator_code"],
        assignee_code=row["assignee_code"],
        notified=bool(row["notified"]),
    )


class NotificationRelay:
    """Sends one-line DMs about a task to its assignee or its creator.

    Missing links in the chain (task, recipient code, alias, Slack user) end the
    operation with an undelivered result rather than an exception.
    """

    def __init__(self, database: Database, client: SlackClient) -> None:
        self.database = database
        self.client = client

    def get_task(self, task_id: int) -> Optional[Task]:
        row = self.database.get_task(task_id)
        return task_from_row(row) if row is not None else None

    def employee_name(self, code: Optional[str]) -> str:
        if not code:
            return "Un usuario"
        row = self.database.get_employee_by_code(code)
        if row is None or not row["name"]:
            return "Un usuario"
        return row["name"].strip()

    def employee_alias(self, code: str) -> Optional[str]:
        row = self.database.get_employee_by_code(code)
        if row is None or row["status"] != "A" or not row["alias"]:
            return None
        return row["alias"]

    def compose(self, target: str, task: Task) -> tuple[Optional[str], str]:
        if target == NOTIFY_ASSIGNEE:
            creator = self.employee_name(task.creator_code)
            return task.assignee_code, (
                f"👋 ¡Hola! *{creator}* te asignó la tarea con ID *{task.id}*. "
                "Por favor, revísala en el sistema."
            )
        if target == NOTIFY_CREATOR:
            assignee = self.employee_name(task.assignee_code)
            return task.creator_code, (
                f"👍 ¡Buenas noticias! *{assignee}* finalizó la tarea con ID *{task.id}*. "
                "Ya puedes verificarla."
            )
        raise InvalidTargetError(target)

    async def deliver(self, target: str, task: Task, directory: UserDirectory) -> NotificationResult:
        recipient_code, message = self.compose(target, task)
        if not recipient_code:
            return NotificationResult(
                False, f"La tarea {task.id} no tiene un destinatario válido para la acción '{target}'."
            )

        alias = self.employee_alias(recipient_code)
        if not alias:
            logger.warning("No Slack username stored for employee %s", recipient_code)
            return NotificationResult(
                False, f"No se encontró el username de Slack para el funcionario {recipient_code}."
            )

        member = await directory.find(alias)
        if member is None:
            logger.warning("No Slack user with username %s (employee %s)", alias, recipient_code)
            return NotificationResult(
                False, f"No se encontró el usuario de Slack correspondiente al funcionario {recipient_code}."
            )

        await self.client.post_message(member["id"], message)
        logger.info("Task %s notification (%s) sent to %s", task.id, target, recipient_code)
        return NotificationResult(
            True, f"Notificación para la tarea {task.id} enviada correctamente a {recipient_code}."
        )

    async def notify(self, target: str, task_id: int) -> NotificationResult:
        if target not in TARGETS:
            raise InvalidTargetError(target)
        task = self.get_task(task_id)
        if task is None:
            logger.warning("Task %s does not exist", task_id)
            return NotificationResult(False, f"La tarea con ID {task_id} no existe.")
        return await self.deliver(target, task, UserDirectory(self.client))

    async def notify_pending(self, target: str) -> List[NotificationResult]:
        """Notify every task whose ``notified`` flag is unset, then set the flag."""

        if target not in TARGETS:
            raise InvalidTargetError(target)
        directory = UserDirectory(self.client)
        results: List[NotificationResult] = []
        for row in self.database.get_pending_tasks():
            task = task_from_row(row)
            try:
                result = await self.deliver(target, task, directory)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Task %s notification (%s) failed", task.id, target)
                result = NotificationResult(False, f"Error al notificar la tarea {task.id}: {exc}")
            if result.delivered:
                self.database.mark_task_notified(task.id)
            results.append(result)
        return results


__all__ = [
    "NotificationRelay",
    "InvalidTargetError",
    "NOTIFY_ASSIGNEE",
    "NOTIFY_CREATOR",
    "TARGETS",
]
