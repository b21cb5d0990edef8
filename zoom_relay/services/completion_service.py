"""
Completion service: conversation memory + LLM call + delivery.

Every call resolves to exactly one outbound chat message attempt: the
answer when the completion succeeds, otherwise a fixed apology. Failures
never propagate to the caller.
"""
import asyncio
import inspect
import logging
from typing import Awaitable, Callable, List, Dict, Optional, Union

from zoom_relay.config import APOLOGY_MESSAGE
from zoom_relay.core.exceptions import CompletionError, EmptyCompletionError, RelayError
from zoom_relay.core.models import Role, Turn
from zoom_relay.interfaces.services import IChatDelivery, ICompletionProvider
from zoom_relay.interfaces.storage import IConversationStore

logger = logging.getLogger(__name__)

# Called with (delta, accumulated_so_far); may be sync or async
ChunkCallback = Callable[[str, str], Union[None, Awaitable[None]]]


def build_request_messages(history: List[Turn]) -> List[Dict[str, str]]:
    """Provider messages for a history, which must open with a user turn."""
    start = 0
    while start < len(history) and history[start].role is Role.ASSISTANT:
        start += 1
    return [turn.to_message() for turn in history[start:]]


class CompletionService:
    """
    Relays one user prompt to the LLM and the answer back to the chat.

    The store's per-key lock is held from appending the user turn until the
    assistant turn is appended, so concurrent prompts for the same
    conversation produce an interleaving-free history.
    """

    def __init__(
        self,
        store: IConversationStore,
        provider: ICompletionProvider,
        delivery: IChatDelivery,
        streaming: bool = True,
        apology_message: str = APOLOGY_MESSAGE,
        timeout: Optional[float] = None
    ):
        """
        Initialize completion service.

        Args:
            store: Conversation history store
            provider: LLM provider client
            delivery: Chat delivery client
            streaming: Default mode when callers don't choose one
            apology_message: Text sent when the completion fails
            timeout: Overall deadline in seconds for one completion (None: no limit)
        """
        self.store = store
        self.provider = provider
        self.delivery = delivery
        self.streaming = streaming
        self.apology_message = apology_message
        self.timeout = timeout

    async def complete(
        self,
        conversation_key: str,
        prompt: str,
        stream: Optional[bool] = None,
        on_chunk: Optional[ChunkCallback] = None,
        reply_to: Optional[str] = None
    ) -> Optional[str]:
        """
        Complete a prompt in the context of the conversation's history.

        Args:
            conversation_key: Conversation JID (history key and recipient)
            prompt: User message text
            stream: Stream the completion (defaults to the service setting)
            on_chunk: Per-delta callback for partial updates (streaming only)
            reply_to: Optional message ID to thread the answer under

        Returns:
            The final answer text, or None if the completion failed
        """
        if not conversation_key:
            logger.error("Conversation key is missing, dropping prompt")
            return None

        stream = self.streaming if stream is None else stream

        try:
            async with self.store.lock(conversation_key):
                history = await self.store.append(conversation_key, Turn.user(prompt))
                messages = build_request_messages(history)

                logger.info(
                    f"Sending {len(messages)} turns to LLM "
                    f"(stream={stream}) for user: {conversation_key}"
                )

                completion = await self._run_completion(messages, stream, on_chunk)

                await self.store.append(conversation_key, Turn.assistant(completion))

        except RelayError as e:
            logger.error(f"Completion failed for {conversation_key}: {e}")
            await self._send_apology(conversation_key, reply_to)
            return None
        except Exception as e:
            logger.exception(f"Unexpected completion failure for {conversation_key}: {e}")
            await self._send_apology(conversation_key, reply_to)
            return None

        try:
            await self.delivery.send(conversation_key, completion, reply_to)
            logger.info(f"Successfully sent response to Zoom Team Chat for {conversation_key}")
        except RelayError as e:
            logger.error(f"Failed to deliver response to {conversation_key}: {e}")

        return completion

    async def _run_completion(
        self,
        messages: List[Dict[str, str]],
        stream: bool,
        on_chunk: Optional[ChunkCallback]
    ) -> str:
        if stream:
            pending = self._stream_completion(messages, on_chunk)
        else:
            pending = self.provider.complete(messages)

        try:
            return await asyncio.wait_for(pending, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise CompletionError(f"LLM completion timed out after {self.timeout}s") from e

    async def _stream_completion(
        self,
        messages: List[Dict[str, str]],
        on_chunk: Optional[ChunkCallback]
    ) -> str:
        accumulated = ""
        async for delta in self.provider.stream_text(messages):
            accumulated += delta
            if on_chunk is not None:
                await self._notify(on_chunk, delta, accumulated)

        completion = accumulated.strip()
        if not completion:
            raise EmptyCompletionError("Empty response from Anthropic streaming API")
        return completion

    async def _notify(self, on_chunk: ChunkCallback, delta: str, accumulated: str) -> None:
        try:
            result = on_chunk(delta, accumulated)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            # A broken UI callback must not cost the user their answer
            logger.warning(f"Stream chunk callback failed: {e}")

    async def _send_apology(self, conversation_key: str, reply_to: Optional[str]) -> None:
        """Best-effort apology; a second failure is logged, never retried."""
        try:
            await self.delivery.send(conversation_key, self.apology_message, reply_to)
        except RelayError as e:
            logger.error(f"Failed to send error message to user {conversation_key}: {e}")
