"""
Webhook event dispatcher.

Maps each event variant to a handler through a registry, so new event
types are added by registering a handler rather than editing a switch.
Every path produces the same acknowledgment shape; downstream failures
are compensated inside the handlers and never turn into webhook failures.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Type

from zoom_relay.core.events import (
    AppDeauthorizedEvent,
    BotInstalledEvent,
    BotNotificationEvent,
    InboundEvent,
    InteractiveMessageActionEvent,
    TeamChatEvent,
    UnrecognizedEvent,
    UrlValidationEvent,
)
from zoom_relay.core.exceptions import RelayError
from zoom_relay.interfaces.services import IChatDelivery
from zoom_relay.services.completion_service import CompletionService

logger = logging.getLogger(__name__)

# Schedules deferred work, e.g. fastapi.BackgroundTasks.add_task
Scheduler = Callable[..., Any]
Handler = Callable[[InboundEvent, Optional[Scheduler]], Awaitable[None]]


class EventDispatcher:
    """
    Routes decoded webhook events to their effects.

    Example:
        dispatcher = EventDispatcher(completion_service, chat_client)
        ack = await dispatcher.dispatch(event, schedule=background_tasks.add_task)
        # {"success": True, "message": "...", "event": "bot_notification"}
    """

    def __init__(self, completion_service: CompletionService, delivery: IChatDelivery):
        self.completion_service = completion_service
        self.delivery = delivery
        self._handlers: Dict[Type[InboundEvent], Handler] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        self.register(BotInstalledEvent, self._handle_bot_installed)
        self.register(AppDeauthorizedEvent, self._handle_app_deauthorized)
        self.register(BotNotificationEvent, self._handle_bot_notification)
        self.register(InteractiveMessageActionEvent, self._handle_interactive_action)
        self.register(TeamChatEvent, self._handle_team_chat)
        self.register(UrlValidationEvent, self._handle_url_validation)
        self.register(UnrecognizedEvent, self._handle_unrecognized)

    def register(self, event_class: Type[InboundEvent], handler: Handler) -> None:
        """Register (or replace) the handler for an event variant."""
        self._handlers[event_class] = handler

    async def dispatch(
        self,
        event: InboundEvent,
        schedule: Optional[Scheduler] = None
    ) -> Dict[str, Any]:
        """
        Apply an event's effect and build the webhook acknowledgment.

        Args:
            event: Decoded webhook event
            schedule: Defers slow work (LLM calls, replies) past the response.
                      When None, that work is awaited inline.

        Returns:
            dict: {"success": True, "message": str, "event": <type>}
        """
        logger.info(f"Received Zoom webhook event: {event.event_type}")

        handler = self._handlers.get(type(event), self._handle_unrecognized)
        await handler(event, schedule)

        return {
            "success": True,
            "message": "Event processed successfully",
            "event": event.event_type
        }

    @staticmethod
    async def _run(schedule: Optional[Scheduler], func: Callable[..., Awaitable[Any]], *args, **kwargs) -> None:
        if schedule is None:
            await func(*args, **kwargs)
        else:
            schedule(func, *args, **kwargs)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _handle_bot_installed(self, event: BotInstalledEvent, schedule: Optional[Scheduler]) -> None:
        logger.info(f"Zoom Team Chat bot installed successfully (account={event.account_id})")

    async def _handle_app_deauthorized(self, event: AppDeauthorizedEvent, schedule: Optional[Scheduler]) -> None:
        # Conversation history is keyed by JID, not account, so nothing is purged here
        logger.info(
            f"Zoom Team Chat bot uninstalled (account={event.account_id}, user={event.user_id})"
        )

    async def _handle_bot_notification(self, event: BotNotificationEvent, schedule: Optional[Scheduler]) -> None:
        logger.info(f"Processing bot notification from {event.user_name or event.user_jid} in {event.to_jid}")
        await self._run(
            schedule,
            self.completion_service.complete,
            event.to_jid,
            event.text,
            reply_to=event.reply_to
        )

    async def _handle_interactive_action(
        self,
        event: InteractiveMessageActionEvent,
        schedule: Optional[Scheduler]
    ) -> None:
        logger.info(f"Processing interactive message action in {event.to_jid}")
        await self._run(schedule, self._acknowledge_action, event)

    async def _acknowledge_action(self, event: InteractiveMessageActionEvent) -> None:
        try:
            await self.delivery.send(
                event.to_jid,
                f"You clicked a button with value: {event.action_value}"
            )
        except RelayError as e:
            logger.error(f"Failed to acknowledge interactive action in {event.to_jid}: {e}")

    async def _handle_team_chat(self, event: TeamChatEvent, schedule: Optional[Scheduler]) -> None:
        logger.info(f"{event.event_type} {event.log_context()}")

    async def _handle_url_validation(self, event: UrlValidationEvent, schedule: Optional[Scheduler]) -> None:
        logger.warning("URL validation event reached the dispatcher; it is answered at ingress")

    async def _handle_unrecognized(self, event: InboundEvent, schedule: Optional[Scheduler]) -> None:
        logger.info(f"Unsupported Zoom webhook event type: {event.event_type}")
