"""FastAPI application receiving Slack events and task-system notifications."""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any, Dict, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Header, HTTPException, Path, Request, status
from fastapi.responses import JSONResponse
from slack_sdk.signature import SignatureVerifier

from .commands import CommandDispatcher
from .config import Settings, load_settings
from .db import Database
from .notifications import InvalidTargetError, NotificationRelay
from .service import AccessPolicy, Clock, ReportService, zone_clock
from .slack_client import SlackClient

logger = logging.getLogger(__name__)


def verify_signature(
    verifier: SignatureVerifier,
    timestamp: Optional[str],
    body: bytes,
    signature: Optional[str],
) -> bool:
    """Check a ``v0`` Slack request signature; stale or malformed timestamps fail."""

    if not timestamp or not signature:
        return False
    try:
        return verifier.is_valid(body, timestamp, signature)
    except ValueError:
        return False


def error_response(status_code: int, message: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message, "detail": detail},
    )


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    slack_client: Optional[SlackClient] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    settings = settings or load_settings()
    database = database or Database(settings.database_path)
    slack_client = slack_client or SlackClient(settings.slack_bot_token)
    service = ReportService(
        database,
        slack_client,
        AccessPolicy(settings.admin_employee_codes),
        holidays=settings.holidays,
        clock=clock or zone_clock(settings.timezone),
    )
    dispatcher = CommandDispatcher(service, slack_client)
    relay = NotificationRelay(database, slack_client)
    verifier = SignatureVerifier(settings.slack_signing_secret)

    async def verify_api_key(x_api_key: Optional[str] = Header(None, alias="X-API-Key")) -> None:
        if settings.api_key and x_api_key != settings.api_key:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid api key")

    async def verify_slack_request(
        request: Request,
        x_slack_request_timestamp: Optional[str] = Header(None),
        x_slack_signature: Optional[str] = Header(None),
    ) -> bytes:
        body = await request.body()
        if not verify_signature(verifier, x_slack_request_timestamp, body, x_slack_signature):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid slack signature")
        return body

    app = FastAPI(title="CRM Check Bot", version="1.0.0")
    app.state.service = service
    app.state.dispatcher = dispatcher
    app.state.relay = relay

    @app.on_event("shutdown")
    async def shutdown_event() -> None:  # pragma: no cover - io bound
        await slack_client.close()

    @app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/slack/events")
    async def slack_events(
        request: Request,
        background_tasks: BackgroundTasks,
        body: bytes = Depends(verify_slack_request),
    ) -> Dict[str, Any]:
        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="invalid json payload") from exc

        if payload.get("type") == "url_verification":
            return {"challenge": payload.get("challenge")}
        if request.headers.get("X-Slack-Retry-Num"):
            # the first delivery is already being handled
            return {"status": "ignored"}

        event = payload.get("event") or {}
        if payload.get("type") == "event_callback" and dispatcher.is_direct_message(event):
            background_tasks.add_task(dispatcher.handle_event, event)
        return {"status": "ok"}

    @app.post("/api/notificar-tareas/pendientes/{target}", dependencies=[Depends(verify_api_key)])
    async def notify_pending_tasks(target: str) -> Any:
        try:
            results = await relay.notify_pending(target)
        except InvalidTargetError as exc:
            return error_response(400, "Tipo de notificación no válido", str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Batch notification for %s failed", target)
            return error_response(500, "Error al procesar las notificaciones", str(exc))
        return {
            "status": "ok",
            "message": f"{sum(1 for result in results if result.delivered)} de {len(results)} notificaciones enviadas",
            "results": [result.message for result in results],
        }

    @app.post("/api/notificar-tareas/{target}/{task_id}", dependencies=[Depends(verify_api_key)])
    async def notify_task(target: str, task_id: int = Path(..., gt=0)) -> Any:
        try:
            result = await relay.notify(target, task_id)
        except InvalidTargetError as exc:
            return error_response(400, "Tipo de notificación no válido", str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Notification %s for task %s failed", target, task_id)
            return error_response(500, "Error al procesar la notificación", str(exc))
        return {"status": "ok", "message": result.message}

    @app.get("/funcionarios")
    async def list_employees() -> Any:
        try:
            data = database.list_active_employees()
        except sqlite3.Error as exc:
            logger.exception("Employee listing failed")
            return JSONResponse(
                status_code=500,
                content={
                    "success": False,
                    "message": "Error al conectar con la base de datos o al realizar la consulta.",
                    "error": str(exc),
                },
            )
        return {"success": True, "message": "Consulta de funcionarios exitosa", "data": data}

    return app


__all__ = ["create_app", "verify_signature"]
