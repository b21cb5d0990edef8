"""HTTP client for the Zoom Team Chat chatbot message API."""
import logging
from typing import Any, Dict, Optional

import httpx

from zoom_relay.config import MAX_MESSAGE_LENGTH
from zoom_relay.core.exceptions import DeliveryError
from zoom_relay.core.models import DeliveryResult
from zoom_relay.interfaces.services import ITokenProvider
from zoom_relay.utils.http import error_detail, response_body

logger = logging.getLogger(__name__)


class ZoomChatClient:
    """
    Sends chatbot messages to Zoom Team Chat conversations.

    Every send obtains a bearer token from the token provider and posts a
    card-shaped message (headline + message body) to /im/chat/messages.
    Failed deliveries raise DeliveryError; nothing is retried here.
    """

    def __init__(
        self,
        token_provider: ITokenProvider,
        base_url: str,
        robot_jid: str,
        account_id: str = "",
        headline: str = "AI Assistant",
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize chat client.

        Args:
            token_provider: Source of chatbot bearer tokens
            base_url: Zoom API base URL (e.g., https://api.zoom.us/v2)
            robot_jid: The chatbot's own JID (sender)
            account_id: Zoom account the chatbot is installed on
            headline: Card headline shown above every message
            timeout: Request timeout in seconds
            client: Optional preconfigured HTTP client (tests inject transports)
        """
        self.token_provider = token_provider
        self.base_url = base_url.rstrip("/")
        self.robot_jid = robot_jid
        self.account_id = account_id
        self.headline = headline
        self.client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(
        cls,
        settings,
        token_provider: ITokenProvider,
        client: Optional[httpx.AsyncClient] = None
    ) -> "ZoomChatClient":
        return cls(
            token_provider=token_provider,
            base_url=settings.ZOOM_API_BASE_URL,
            robot_jid=settings.ZOOM_BOT_JID,
            account_id=settings.ZOOM_ACCOUNT_ID,
            headline=settings.CHAT_CARD_HEADLINE,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            client=client
        )

    def build_message_body(
        self,
        to_jid: str,
        text: str,
        reply_to: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Compose the chatbot message body.

        Args:
            to_jid: Recipient JID (user or channel)
            text: Message text, placed in the card body
            reply_to: Optional message ID to thread the reply under

        Returns:
            dict: Request body for POST /im/chat/messages
        """
        if len(text) > MAX_MESSAGE_LENGTH:
            logger.warning(
                f"Message to {to_jid} is {len(text)} chars, "
                f"truncating to {MAX_MESSAGE_LENGTH}"
            )
            text = text[:MAX_MESSAGE_LENGTH]

        body: Dict[str, Any] = {
            "robot_jid": self.robot_jid,
            "to_jid": to_jid,
            "user_jid": to_jid,
            "account_id": self.account_id,
            "content": {
                "head": {
                    "text": self.headline,
                    "style": {"bold": True}
                },
                "body": [
                    {"type": "message", "text": text}
                ]
            }
        }
        if reply_to:
            body["reply_to"] = reply_to
        return body

    async def send(
        self,
        to_jid: str,
        text: str,
        reply_to: Optional[str] = None
    ) -> DeliveryResult:
        """
        Send a message to a Zoom Team Chat conversation.

        Raises:
            AuthConfigError: If chatbot credentials are missing
            TokenError: If the token exchange fails
            DeliveryError: If Zoom rejects the message or is unreachable
        """
        access_token = await self.token_provider.get_token()
        body = self.build_message_body(to_jid, text, reply_to)

        logger.debug(f"Sending chat message to {to_jid} (reply_to={reply_to})")

        try:
            response = await self.client.post(
                f"{self.base_url}/im/chat/messages",
                json=body,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Content-Type": "application/json",
                }
            )
        except httpx.HTTPError as e:
            logger.error(f"Error sending chat message to {to_jid}: {e}")
            raise DeliveryError(f"Failed to send message: {e}") from e

        if response.status_code >= 400:
            data = response_body(response)
            if response.status_code == 401:
                self.token_provider.invalidate()
            logger.error(f"Zoom API error sending to {to_jid}: HTTP {response.status_code} {data}")
            raise DeliveryError(
                f"Failed to send message: {error_detail(data, response.reason_phrase)}",
                status=response.status_code,
                body=data
            )

        data = response_body(response)
        logger.info(f"Message delivered to {to_jid}")
        return DeliveryResult(to_jid=to_jid, response=data if isinstance(data, dict) else {})

    async def get_messages(
        self,
        to_jid: str,
        page_size: int = 10,
        **params: Any
    ) -> Dict[str, Any]:
        """
        Get chat messages for a conversation.

        Args:
            to_jid: Chat JID
            page_size: Number of records per page
            **params: Extra query parameters (next_page_token, from, to, ...)

        Returns:
            dict: Zoom API response
        """
        access_token = await self.token_provider.get_token()
        query = {"to_jid": to_jid, "page_size": page_size, **params}

        try:
            response = await self.client.get(
                f"{self.base_url}/im/chat/messages",
                params=query,
                headers={"Authorization": f"Bearer {access_token}"}
            )
        except httpx.HTTPError as e:
            logger.error(f"Error getting chat messages for {to_jid}: {e}")
            raise DeliveryError(f"Failed to get messages: {e}") from e

        data = response_body(response)
        if response.status_code >= 400:
            if response.status_code == 401:
                self.token_provider.invalidate()
            raise DeliveryError(
                f"Failed to get messages: {error_detail(data, response.reason_phrase)}",
                status=response.status_code,
                body=data
            )
        return data if isinstance(data, dict) else {"messages": data}

    async def close(self) -> None:
        await self.client.aclose()
