"""Tests for the FastAPI application."""

import dataclasses
import hashlib
import hmac
import json
import time
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from slack_sdk.signature import Clock, SignatureVerifier

from crm_checkbot.api import create_app, verify_signature

SECRET = "s3cret"


def signed_headers(body: bytes, secret: str, timestamp: int | None = None) -> dict:
    timestamp = str(timestamp if timestamp is not None else int(time.time()))
    digest = hmac.new(secret.encode(), b"v0:" + timestamp.encode() + b":" + body, hashlib.sha256).hexdigest()
    return {
        "X-Slack-Request-Timestamp": timestamp,
        "X-Slack-Signature": f"v0={digest}",
        "Content-Type": "application/json",
    }


@pytest.fixture
def app(settings, seeded_database, slack_client, today):
    return create_app(settings, database=seeded_database, slack_client=slack_client, clock=lambda: today)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def post_event(client, settings):
    def post(payload, **headers):
        body = json.dumps(payload).encode()
        signed = signed_headers(body, settings.slack_signing_secret)
        return client.post("/slack/events", content=body, headers={**signed, **headers})

    return post


class FrozenClock(Clock):
    def __init__(self, now: float) -> None:
        self._now = now

    def now(self) -> float:
        return self._now


def verifier_at(now: float) -> SignatureVerifier:
    return SignatureVerifier(SECRET, clock=FrozenClock(now))


class TestSignature:
    def test_valid(self):
        body = b'{"type":"event_callback"}'
        headers = signed_headers(body, SECRET, timestamp=1_700_000_000)

        assert verify_signature(
            verifier_at(1_700_000_010),
            headers["X-Slack-Request-Timestamp"],
            body,
            headers["X-Slack-Signature"],
        )

    def test_stale_timestamp(self):
        body = b"{}"
        headers = signed_headers(body, SECRET, timestamp=1_700_000_000)

        assert not verify_signature(
            verifier_at(1_700_000_000 + 60 * 5 + 1),
            headers["X-Slack-Request-Timestamp"],
            body,
            headers["X-Slack-Signature"],
        )

    def test_tampered_body(self):
        headers = signed_headers(b"{}", SECRET, timestamp=1_700_000_000)

        assert not verify_signature(
            verifier_at(1_700_000_000),
            headers["X-Slack-Request-Timestamp"],
            b'{"type":"url_verification"}',
            headers["X-Slack-Signature"],
        )

    def test_missing_or_malformed(self):
        verifier = verifier_at(1_700_000_000)

        assert not verify_signature(verifier, None, b"{}", "v0=abc")
        assert not verify_signature(verifier, "yesterday", b"{}", "v0=abc")


class TestSlackEvents:
    def test_healthcheck(self, client):
        assert client.get("/healthz").json() == {"status": "ok"}

    def test_url_verification(self, post_event):
        response = post_event({"type": "url_verification", "challenge": "abc123"})

        assert response.status_code == 200
        assert response.json() == {"challenge": "abc123"}

    def test_rejects_bad_signature(self, client, slack_client):
        body = json.dumps({"type": "url_verification", "challenge": "x"}).encode()

        response = client.post("/slack/events", content=body, headers=signed_headers(body, secret="wrong"))

        assert response.status_code == 401

    def test_rejects_invalid_json(self, client, settings):
        body = b"not json"

        response = client.post(
            "/slack/events", content=body, headers=signed_headers(body, settings.slack_signing_secret)
        )

        assert response.status_code == 400

    def test_direct_message_runs_command(self, post_event, slack_client):
        event = {"type": "message", "channel_type": "im", "channel": "D1", "user": "U001", "text": "info", "ts": "5.5"}

        response = post_event({"type": "event_callback", "event": event})

        assert response.json() == {"status": "ok"}
        slack_client.post_message.assert_awaited_once()
        assert slack_client.post_message.await_args.args[0] == "D1"
        assert slack_client.post_message.await_args.kwargs["thread_ts"] == "5.5"

    def test_bot_messages_ignored(self, post_event, slack_client):
        event = {"type": "message", "channel_type": "im", "channel": "D1", "bot_id": "B1", "text": "info", "ts": "5.5"}

        response = post_event({"type": "event_callback", "event": event})

        assert response.status_code == 200
        slack_client.post_message.assert_not_awaited()

    def test_retries_ignored(self, post_event, slack_client):
        event = {"type": "message", "channel_type": "im", "channel": "D1", "user": "U001", "text": "info", "ts": "5.5"}

        response = post_event({"type": "event_callback", "event": event}, **{"X-Slack-Retry-Num": "1"})

        assert response.json() == {"status": "ignored"}
        slack_client.post_message.assert_not_awaited()


class TestTaskNotifications:
    def test_delivers_to_assignee(self, client, seeded_database, slack_client):
        seeded_database.upsert_task({"id": 5, "creator_code": "E1", "assignee_code": "E3"})

        response = client.post("/api/notificar-tareas/NotificarAsignado/5")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert slack_client.post_message.await_args.args[0] == "U003"

    def test_missing_task_is_not_an_error(self, client, slack_client):
        response = client.post("/api/notificar-tareas/NotificarCreador/99")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "message": "La tarea con ID 99 no existe."}
        slack_client.post_message.assert_not_awaited()

    def test_invalid_target(self, client):
        response = client.post("/api/notificar-tareas/NotificarTodos/1")

        assert response.status_code == 400
        assert response.json()["status"] == "error"

    def test_task_id_must_be_positive(self, client):
        assert client.post("/api/notificar-tareas/NotificarAsignado/0").status_code == 422

    def test_unexpected_failure(self, app, client):
        app.state.relay.notify = AsyncMock(side_effect=RuntimeError("boom"))

        response = client.post("/api/notificar-tareas/NotificarAsignado/1")

        assert response.status_code == 500
        assert response.json() == {
            "status": "error",
            "message": "Error al procesar la notificación",
            "detail": "boom",
        }

    def test_pending_batch(self, client, seeded_database):
        seeded_database.upsert_task({"id": 5, "creator_code": "E1", "assignee_code": "E3"})
        seeded_database.upsert_task({"id": 6, "creator_code": "E2", "assignee_code": "E1"})

        response = client.post("/api/notificar-tareas/pendientes/NotificarAsignado")

        assert response.status_code == 200
        assert response.json()["message"] == "2 de 2 notificaciones enviadas"
        assert seeded_database.get_pending_tasks() == []

    def test_api_key_enforced_when_configured(self, settings, seeded_database, slack_client):
        app = create_app(dataclasses.replace(settings, api_key="k"), database=seeded_database, slack_client=slack_client)
        client = TestClient(app)

        assert client.post("/api/notificar-tareas/NotificarAsignado/1").status_code == 401
        response = client.post("/api/notificar-tareas/NotificarAsignado/1", headers={"X-API-Key": "k"})
        assert response.status_code == 200


class TestEmployees:
    def test_lists_active_employees_without_credentials(self, client, seeded_database):
        seeded_database.upsert_employee({"code": "E9", "name": "Baja", "alias": "baja", "rest_type": 1, "status": "I"})

        response = client.get("/funcionarios")

        body = response.json()
        assert body["success"] is True
        assert [row["code"] for row in body["data"]] == ["E1", "E2", "E3", "ADM"]
        assert body["data"][0]["area"] == "Soporte"
        assert all("crm_password" not in row for row in body["data"])
