"""Management endpoints: direct send, chat history and conversation memory."""
import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
import pydantic
from pydantic import BaseModel, Field, field_validator

from zoom_relay.api.responses import (
    configuration_failure,
    internal_failure,
    upstream_failure,
    validation_failure,
)
from zoom_relay.clients.zoom_client import ZoomChatClient
from zoom_relay.config import MAX_MESSAGE_LENGTH, settings
from zoom_relay.core.exceptions import AuthConfigError, UpstreamError, ValidationError
from zoom_relay.dependencies import get_chat_client, get_store
from zoom_relay.interfaces.storage import IConversationStore
from zoom_relay.utils.validators import describe_validation_errors, is_valid_jid, sanitize_message

logger = logging.getLogger(__name__)


# Request Models
class SendMessageRequest(BaseModel):
    """Direct send to a Zoom Team Chat user or channel."""
    to_jid: str
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    reply_to: Optional[str] = None

    @field_validator("to_jid")
    @classmethod
    def check_jid(cls, value: str) -> str:
        if not is_valid_jid(value):
            raise ValueError("must look like user@domain")
        return value

    def log_summary(self) -> dict:
        """Loggable summary (message text omitted)."""
        return {
            "to_jid": self.to_jid,
            "message_length": len(self.message),
            "reply_to": self.reply_to,
        }


async def verify_internal_api_key(x_internal_api_key: Optional[str] = Header(None)):
    """
    Verify the management API key when one is configured.

    Args:
        x_internal_api_key: API key from X-Internal-API-Key header

    Raises:
        HTTPException: If API key is missing or invalid
    """
    expected_key = settings.INTERNAL_API_KEY
    if not expected_key:
        return

    if not x_internal_api_key:
        logger.warning("Request missing X-Internal-API-Key header")
        raise HTTPException(
            status_code=401,
            detail="Missing X-Internal-API-Key header"
        )

    if not hmac.compare_digest(x_internal_api_key.encode(), expected_key.encode()):
        logger.warning("Invalid internal API key provided")
        raise HTTPException(
            status_code=403,
            detail="Invalid internal API key"
        )


router = APIRouter(dependencies=[Depends(verify_internal_api_key)])


@router.post("/message")
async def send_message(
    request: Request,
    chat_client: ZoomChatClient = Depends(get_chat_client)
):
    """
    Send a message to a Zoom Team Chat channel or user.

    Body: {"to_jid": str, "message": str, "reply_to": str (optional)}
    """
    try:
        try:
            payload = await request.json()
        except ValueError:
            raise ValidationError(["Request body must be valid JSON"])

        try:
            body = SendMessageRequest.model_validate(payload)
        except pydantic.ValidationError as e:
            raise ValidationError(describe_validation_errors(e.errors()))

        message = sanitize_message(body.message)
        if not message:
            raise ValidationError(["message must contain printable text"])

        logger.info(f"Direct send requested: {body.log_summary()}")
        result = await chat_client.send(body.to_jid, message, body.reply_to)

        return {
            "success": True,
            "message": "Message sent successfully!",
            "data": result.response
        }

    except ValidationError as e:
        return validation_failure(e)
    except AuthConfigError as e:
        logger.error(f"Direct send failed, service misconfigured: {e}")
        return configuration_failure(str(e))
    except UpstreamError as e:
        logger.error(f"Zoom API error: {e}")
        return upstream_failure(e)
    except Exception as e:
        logger.exception(f"Error sending message: {e}")
        return internal_failure()


@router.get("/messages")
async def list_messages(
    to_jid: str = Query(...),
    page_size: int = Query(10, ge=1, le=50),
    next_page_token: Optional[str] = Query(None),
    chat_client: ZoomChatClient = Depends(get_chat_client)
):
    """Chat history for a conversation, as returned by Zoom."""
    if not is_valid_jid(to_jid):
        return validation_failure(ValidationError(["to_jid must look like user@domain"]))

    params = {"next_page_token": next_page_token} if next_page_token else {}
    try:
        data = await chat_client.get_messages(to_jid, page_size=page_size, **params)
    except AuthConfigError as e:
        return configuration_failure(str(e))
    except UpstreamError as e:
        logger.error(f"Failed to get messages for {to_jid}: {e}")
        return upstream_failure(e)

    return {"success": True, "data": data}


@router.get("/conversations/{jid}")
async def get_conversation(jid: str, store: IConversationStore = Depends(get_store)):
    """Turns currently remembered for a conversation key."""
    turns = await store.get(jid)
    return {
        "to_jid": jid,
        "count": len(turns),
        "limit": store.limit,
        "turns": [turn.to_message() for turn in turns]
    }


@router.delete("/conversations/{jid}")
async def clear_conversation(jid: str, store: IConversationStore = Depends(get_store)):
    """Forget a conversation's history."""
    async with store.lock(jid):
        cleared = await store.clear(jid)
    return {"success": True, "to_jid": jid, "cleared": cleared}
