"""Unit tests for ZoomChatClient."""
import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from zoom_relay.clients.zoom_client import ZoomChatClient
from zoom_relay.config import MAX_MESSAGE_LENGTH
from zoom_relay.core.exceptions import DeliveryError

BASE_URL = "https://api.zoom.test/v2"


@pytest.fixture
def token_provider():
    provider = MagicMock()
    provider.get_token = AsyncMock(return_value="bearer-token")
    return provider


def make_client(token_provider, handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ZoomChatClient(
        token_provider,
        base_url=BASE_URL,
        robot_jid="bot@xmpp.zoom.us",
        account_id="acct-1",
        client=client,
        **kwargs
    )


class TestBuildMessageBody:
    """Tests for card composition."""

    def test_card_shape(self, token_provider):
        chat = make_client(token_provider, lambda r: httpx.Response(200))

        body = chat.build_message_body("u1@x", "Hello!")

        assert body == {
            "robot_jid": "bot@xmpp.zoom.us",
            "to_jid": "u1@x",
            "user_jid": "u1@x",
            "account_id": "acct-1",
            "content": {
                "head": {"text": "AI Assistant", "style": {"bold": True}},
                "body": [{"type": "message", "text": "Hello!"}],
            },
        }

    def test_reply_to_only_when_given(self, token_provider):
        chat = make_client(token_provider, lambda r: httpx.Response(200))

        assert "reply_to" not in chat.build_message_body("u1@x", "hi")
        assert chat.build_message_body("u1@x", "hi", "msg-9")["reply_to"] == "msg-9"

    def test_long_text_is_clamped(self, token_provider):
        chat = make_client(token_provider, lambda r: httpx.Response(200), headline="Claude")

        body = chat.build_message_body("u1@x", "x" * (MAX_MESSAGE_LENGTH + 10))

        assert len(body["content"]["body"][0]["text"]) == MAX_MESSAGE_LENGTH
        assert body["content"]["head"]["text"] == "Claude"


class TestSend:
    """Tests for POST /im/chat/messages."""

    @pytest.mark.asyncio
    async def test_send_success(self, token_provider):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(201, json={"message_id": "msg-1"})

        chat = make_client(token_provider, handler)

        result = await chat.send("u1@x", "Hello!", reply_to="parent-1")

        request = requests[0]
        assert request.method == "POST"
        assert str(request.url) == f"{BASE_URL}/im/chat/messages"
        assert request.headers["Authorization"] == "Bearer bearer-token"
        sent = json.loads(request.content)
        assert sent["content"]["body"][0]["text"] == "Hello!"
        assert sent["reply_to"] == "parent-1"
        assert result.to_jid == "u1@x"
        assert result.message_id == "msg-1"

    @pytest.mark.asyncio
    async def test_send_error_carries_status_and_body(self, token_provider):
        chat = make_client(
            token_provider,
            lambda r: httpx.Response(400, json={"code": 7001, "message": "Invalid to_jid"})
        )

        with pytest.raises(DeliveryError) as exc_info:
            await chat.send("bad", "hi")

        assert exc_info.value.status == 400
        assert exc_info.value.body == {"code": 7001, "message": "Invalid to_jid"}
        assert "Invalid to_jid" in str(exc_info.value)
        token_provider.invalidate.assert_not_called()

    @pytest.mark.asyncio
    async def test_unauthorized_invalidates_token(self, token_provider):
        chat = make_client(token_provider, lambda r: httpx.Response(401, json={"message": "Invalid access token"}))

        with pytest.raises(DeliveryError):
            await chat.send("u1@x", "hi")

        token_provider.invalidate.assert_called_once()

    @pytest.mark.asyncio
    async def test_transport_error(self, token_provider):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        chat = make_client(token_provider, handler)

        with pytest.raises(DeliveryError) as exc_info:
            await chat.send("u1@x", "hi")

        assert exc_info.value.status is None


class TestGetMessages:
    """Tests for GET /im/chat/messages."""

    @pytest.mark.asyncio
    async def test_query_parameters(self, token_provider):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"messages": [], "page_size": 5})

        chat = make_client(token_provider, handler)

        data = await chat.get_messages("u1@x", page_size=5, next_page_token="abc")

        params = requests[0].url.params
        assert requests[0].method == "GET"
        assert params["to_jid"] == "u1@x"
        assert params["page_size"] == "5"
        assert params["next_page_token"] == "abc"
        assert data == {"messages": [], "page_size": 5}

    @pytest.mark.asyncio
    async def test_error(self, token_provider):
        chat = make_client(token_provider, lambda r: httpx.Response(404, json={"message": "Not found"}))

        with pytest.raises(DeliveryError) as exc_info:
            await chat.get_messages("u1@x")

        assert exc_info.value.status == 404
