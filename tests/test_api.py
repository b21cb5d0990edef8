"""Integration tests for the HTTP surface."""
import asyncio
import json
import time
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from zoom_relay.config import APOLOGY_MESSAGE, settings
from zoom_relay.core.exceptions import CompletionError, DeliveryError
from zoom_relay.core.models import Turn
from zoom_relay.dependencies import get_chat_client, get_dispatcher, get_store
from zoom_relay.main import app
from zoom_relay.services.completion_service import CompletionService
from zoom_relay.services.dispatcher import EventDispatcher
from zoom_relay.utils.signature import compute_signature

NOTIFICATION = {"event": "bot_notification", "payload": {"toJid": "u1@x", "message": "hi"}}


@pytest.fixture
def client(store, provider, delivery):
    """Test client wired to in-memory fakes."""
    service = CompletionService(store, provider, delivery, streaming=False)
    dispatcher = EventDispatcher(service, delivery)

    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_chat_client] = lambda: delivery
    yield TestClient(app)
    app.dependency_overrides.clear()


def post_signed(client, body, timestamp=None, raw=None):
    raw = raw if raw is not None else json.dumps(body).encode("utf-8")
    timestamp = str(timestamp or int(time.time()))
    headers = {
        "Content-Type": "application/json",
        "x-zm-request-timestamp": timestamp,
        "x-zm-signature": compute_signature(settings.ZOOM_WEBHOOK_SECRET_TOKEN, timestamp, raw),
    }
    return client.post("/webhooks", content=raw, headers=headers)


class TestHealthEndpoints:
    """Tests for liveness endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == settings.SERVICE_NAME

    def test_webhook_health(self, client):
        response = client.get("/webhooks/health")

        assert response.status_code == 200
        assert response.json()["service"] == "zoom-webhook-handler"


class TestWebhookEndpoint:
    """Tests for POST /webhooks."""

    def test_url_validation_needs_no_signature(self, client):
        response = client.post(
            "/webhooks",
            json={"event": "endpoint.url_validation", "payload": {"plainToken": "qgg8vlvZRS6UYooatFL8Aw"}}
        )

        assert response.status_code == 200
        assert response.json() == {"message": {"plainToken": "qgg8vlvZRS6UYooatFL8Aw"}}

    def test_url_validation_without_token(self, client):
        response = client.post("/webhooks", json={"event": "endpoint.url_validation", "payload": {}})

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_bot_notification_end_to_end(self, client, store, provider, delivery):
        """Signed notification is acked, answered, remembered and delivered."""
        response = post_signed(client, NOTIFICATION)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Event processed successfully",
            "event": "bot_notification",
        }
        assert provider.calls == [[{"role": "user", "content": "hi"}]]
        delivery.send.assert_awaited_once_with("u1@x", "Hello!", None)

    def test_history_recorded(self, client, store):
        post_signed(client, NOTIFICATION)

        history = asyncio.run(store.get("u1@x"))
        assert [(t.role.value, t.content) for t in history] == [("user", "hi"), ("assistant", "Hello!")]

    def test_completion_failure_still_acknowledged(self, client, provider, delivery):
        provider.error = CompletionError("HTTP 500: boom", status=500)

        response = post_signed(client, NOTIFICATION)

        assert response.status_code == 200
        assert response.json()["success"] is True
        delivery.send.assert_awaited_once_with("u1@x", APOLOGY_MESSAGE, None)

    def test_altered_body_rejected(self, client, delivery):
        raw = json.dumps(NOTIFICATION).encode("utf-8")
        timestamp = str(int(time.time()))
        headers = {
            "Content-Type": "application/json",
            "x-zm-request-timestamp": timestamp,
            "x-zm-signature": compute_signature(settings.ZOOM_WEBHOOK_SECRET_TOKEN, timestamp, raw),
        }

        response = client.post("/webhooks", content=raw.replace(b'"hi"', b'"hijacked"'), headers=headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid signature"
        delivery.send.assert_not_awaited()

    def test_missing_signature_headers(self, client):
        response = client.post("/webhooks", json=NOTIFICATION)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Missing signature headers"
        assert len(body["details"]) == 2

    def test_stale_timestamp_rejected(self, client):
        response = post_signed(client, NOTIFICATION, timestamp=int(time.time()) - 3600)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid signature"

    def test_payload_validation_failure(self, client, delivery):
        response = post_signed(client, {"event": "bot_notification", "payload": {"message": "hi"}})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["details"] == ["toJid is required in bot_notification payload"]
        delivery.send.assert_not_awaited()

    def test_non_string_fields_rejected_at_ingress(self, client, delivery):
        response = post_signed(client, {"event": "bot_notification", "payload": {"toJid": ["a@x"], "message": {"x": 1}}})

        assert response.status_code == 400
        assert len(response.json()["details"]) == 2
        delivery.send.assert_not_awaited()

    def test_invalid_json(self, client):
        response = client.post("/webhooks", content=b"{not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 400

    def test_unknown_event_acknowledged(self, client):
        response = post_signed(client, {"event": "foo", "payload": {}})

        assert response.status_code == 200
        assert response.json()["event"] == "foo"
        assert response.json()["success"] is True

    def test_missing_webhook_secret(self, client, monkeypatch):
        monkeypatch.setattr(settings, "ZOOM_WEBHOOK_SECRET_TOKEN", "")

        response = post_signed(client, NOTIFICATION)

        assert response.status_code == 500
        assert response.json()["success"] is False

    def test_internal_fault(self, client):
        broken = MagicMock()
        broken.dispatch = AsyncMock(side_effect=RuntimeError("boom"))
        app.dependency_overrides[get_dispatcher] = lambda: broken

        response = post_signed(client, NOTIFICATION)

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Internal Server Error"}


class TestDirectSend:
    """Tests for POST /api/message."""

    def test_send_success(self, client, delivery):
        response = client.post("/api/message", json={"to_jid": "u1@x", "message": "  hello\x07  "})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Message sent successfully!",
            "data": {"message_id": "msg-1"},
        }
        delivery.send.assert_awaited_once_with("u1@x", "hello", None)

    def test_send_with_reply_to(self, client, delivery):
        client.post("/api/message", json={"to_jid": "u1@x", "message": "hi", "reply_to": "parent-1"})

        delivery.send.assert_awaited_once_with("u1@x", "hi", "parent-1")

    def test_validation_errors(self, client, delivery):
        response = client.post("/api/message", json={"to_jid": "not-a-jid", "message": ""})

        assert response.status_code == 400
        details = response.json()["details"]
        assert len(details) == 2
        assert details[0].startswith("to_jid:")
        assert "user@domain" in details[0]
        assert details[1].startswith("message:")
        delivery.send.assert_not_awaited()

    @pytest.mark.parametrize("payload,field", [
        ({"message": "hi"}, "to_jid"),
        ({"to_jid": "u1@x"}, "message"),
        ({"to_jid": "u1@x", "message": 5}, "message"),
        ({"to_jid": ["u1@x"], "message": "hi"}, "to_jid"),
        ({"to_jid": "u1@x", "message": "hi", "reply_to": 5}, "reply_to"),
    ])
    def test_field_errors_name_the_field(self, client, delivery, payload, field):
        response = client.post("/api/message", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert [detail.split(":")[0] for detail in body["details"]] == [field]
        delivery.send.assert_not_awaited()

    def test_body_must_be_an_object(self, client):
        response = client.post("/api/message", json=["hi"])

        assert response.status_code == 400
        assert len(response.json()["details"]) == 1

    def test_control_characters_only_rejected(self, client, delivery):
        response = client.post("/api/message", json={"to_jid": "u1@x", "message": "\x07\x00"})

        assert response.status_code == 400
        assert response.json()["details"] == ["message must contain printable text"]
        delivery.send.assert_not_awaited()

    def test_message_too_long(self, client):
        response = client.post("/api/message", json={"to_jid": "u1@x", "message": "x" * 4097})

        assert response.status_code == 400

    def test_upstream_status_relayed(self, client, delivery):
        delivery.send.side_effect = DeliveryError(
            "Failed to send message: Invalid to_jid", status=400, body={"code": 7001}
        )

        response = client.post("/api/message", json={"to_jid": "u1@x", "message": "hi"})

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Zoom API error", "details": {"code": 7001}}

    def test_internal_api_key_enforced_when_set(self, client, monkeypatch):
        monkeypatch.setattr(settings, "INTERNAL_API_KEY", "secret-key")
        payload = {"to_jid": "u1@x", "message": "hi"}

        assert client.post("/api/message", json=payload).status_code == 401
        assert client.post(
            "/api/message", json=payload, headers={"X-Internal-API-Key": "wrong"}
        ).status_code == 403
        assert client.post(
            "/api/message", json=payload, headers={"X-Internal-API-Key": "secret-key"}
        ).status_code == 200


class TestManagementEndpoints:
    """Tests for chat history and conversation memory endpoints."""

    def test_list_messages(self, client, delivery):
        delivery.get_messages.return_value = {"messages": [{"id": "m1"}]}

        response = client.get("/api/messages", params={"to_jid": "u1@x", "page_size": 5})

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": {"messages": [{"id": "m1"}]}}
        delivery.get_messages.assert_awaited_once_with("u1@x", page_size=5)

    def test_list_messages_rejects_bad_jid(self, client):
        response = client.get("/api/messages", params={"to_jid": "nope"})

        assert response.status_code == 400

    def test_get_and_clear_conversation(self, client, store):
        asyncio.run(store.append("u1@x", Turn.user("hi")))

        response = client.get("/api/conversations/u1@x")
        assert response.status_code == 200
        assert response.json()["turns"] == [{"role": "user", "content": "hi"}]
        assert response.json()["count"] == 1

        response = client.delete("/api/conversations/u1@x")
        assert response.json() == {"success": True, "to_jid": "u1@x", "cleared": True}
        assert client.get("/api/conversations/u1@x").json()["count"] == 0
