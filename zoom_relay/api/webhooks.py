"""Zoom Team Chat webhook endpoint."""
import json
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from zoom_relay.api.responses import configuration_failure, internal_failure, validation_failure
from zoom_relay.config import settings
from zoom_relay.core.events import URL_VALIDATION, decode_event, get_event_type
from zoom_relay.core.exceptions import AuthConfigError, ValidationError
from zoom_relay.dependencies import get_dispatcher
from zoom_relay.services.dispatcher import EventDispatcher
from zoom_relay.utils.signature import verify_webhook_signature

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhooks")
async def handle_zoom_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    dispatcher: EventDispatcher = Depends(get_dispatcher)
):
    """
    Receive a Zoom webhook delivery.

    The endpoint validation challenge is answered before any signature or
    business checks. Every other delivery must carry a valid signature over
    the exact raw body. LLM work is scheduled after the response, so the
    acknowledgment never waits on the model.
    """
    raw_body = await request.body()

    try:
        try:
            body = json.loads(raw_body) if raw_body else None
        except ValueError:
            raise ValidationError(["Request body must be valid JSON"])

        if get_event_type(body) == URL_VALIDATION:
            event = decode_event(body)
            logger.info("Validating webhook endpoint URL")
            return {"message": {"plainToken": event.plain_token}}

        verify_webhook_signature(
            settings.ZOOM_WEBHOOK_SECRET_TOKEN,
            request.headers,
            raw_body,
            max_age_seconds=settings.WEBHOOK_MAX_AGE_SECONDS
        )

        event = decode_event(body)
        return await dispatcher.dispatch(event, schedule=background_tasks.add_task)

    except ValidationError as e:
        logger.warning(f"Rejected webhook delivery: {e.message} {e.errors}")
        return validation_failure(e)
    except AuthConfigError as e:
        logger.error(f"Webhook rejected, service misconfigured: {e}")
        return configuration_failure(str(e))
    except Exception as e:
        logger.exception(f"Error handling Zoom webhook event: {e}")
        return internal_failure()


@router.get("/webhooks/health")
async def webhook_health():
    """Static liveness payload for the webhook handler."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "zoom-webhook-handler"
    }
