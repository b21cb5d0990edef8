"""Anthropic Messages API client (buffered and streamed completions)."""
import logging
from typing import Any, AsyncIterable, AsyncIterator, Dict, List, Optional

import httpx

from zoom_relay.config import MAX_TOKENS, SYSTEM_PROMPT, TEMPERATURE
from zoom_relay.core.exceptions import (
    AuthConfigError,
    CompletionError,
    EmptyCompletionError,
    StreamParseError,
)
from zoom_relay.core.models import StreamFrame
from zoom_relay.streaming.sse import decode_frame_data, iter_frames
from zoom_relay.utils.http import error_detail, response_body

logger = logging.getLogger(__name__)

# Provider hints logged alongside failed requests
_STATUS_HINTS = {
    400: "Bad request (params/schema).",
    401: "Authentication failed. Check ANTHROPIC_API_KEY.",
    404: "Model not found for your account/region.",
    429: "Rate limit exceeded.",
}


def extract_text(content: Any) -> str:
    """
    Concatenate the text blocks of a Messages API `content` array.

    Raises:
        CompletionError: If `content` is not a list
        EmptyCompletionError: If there is no text at all
    """
    if not isinstance(content, list):
        raise CompletionError(f"Unexpected response from Anthropic API: content={content!r}")

    text = "".join(
        block.get("text") or ""
        for block in content
        if isinstance(block, dict) and block.get("type") == "text"
    ).strip()

    if not text:
        raise EmptyCompletionError("Empty response from Anthropic API")
    return text


async def iter_text_deltas(frames: AsyncIterable[StreamFrame]) -> AsyncIterator[str]:
    """
    Reduce Messages API stream frames to text deltas.

    Stream lifecycle: message_start, content_block_start,
    content_block_delta (delta.type == "text_delta"), content_block_stop,
    message_delta, message_stop. Only text deltas are yielded; the stream
    ends at message_stop without waiting for the transport to close.
    Malformed frames are skipped.

    Raises:
        CompletionError: If the provider sends an `error` frame
    """
    async for frame in frames:
        if frame.is_done_sentinel:
            return

        try:
            data = decode_frame_data(frame)
        except StreamParseError as e:
            logger.debug(f"Skipping malformed stream frame: {e}")
            continue

        kind = data.get("type") or frame.event_type

        if kind == "content_block_delta":
            delta = data.get("delta")
            if isinstance(delta, dict) and delta.get("type") == "text_delta":
                text = delta.get("text")
                if text:
                    yield text

        elif kind == "error":
            raise CompletionError(
                f"Anthropic stream error: {error_detail(data, 'unknown error')}",
                body=data
            )

        elif kind == "message_stop" or frame.event_type == "message_stop":
            return


class AnthropicClient:
    """
    Client for POST /v1/messages.

    The system prompt and sampling parameters are fixed per instance; the
    caller supplies the conversation `messages`.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://api.anthropic.com",
        api_version: str = "2023-06-01",
        timeout: float = 120.0,
        system_prompt: str = SYSTEM_PROMPT,
        temperature: float = TEMPERATURE,
        max_tokens: int = MAX_TOKENS,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize Anthropic client.

        Args:
            api_key: Anthropic API key (sk-ant-...)
            model: Model identifier
            base_url: API base URL
            api_version: Value of the anthropic-version header
            timeout: Per-read timeout in seconds (applies to each stream chunk)
            system_prompt: Fixed system instruction
            temperature: Fixed sampling temperature
            max_tokens: Fixed output token cap
            client: Optional preconfigured HTTP client (tests inject transports)
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self.system_prompt = system_prompt
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout, connect=10.0))

    @classmethod
    def from_settings(cls, settings, client: Optional[httpx.AsyncClient] = None) -> "AnthropicClient":
        return cls(
            api_key=settings.ANTHROPIC_API_KEY,
            model=settings.ANTHROPIC_MODEL,
            base_url=settings.ANTHROPIC_BASE_URL,
            api_version=settings.ANTHROPIC_VERSION,
            timeout=settings.LLM_TIMEOUT_SECONDS,
            client=client
        )

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/v1/messages"

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise AuthConfigError("Missing ANTHROPIC_API_KEY in environment variables.")
        if not self.api_key.startswith("sk-ant-"):
            raise AuthConfigError('Invalid ANTHROPIC_API_KEY format. Should start with "sk-ant-".')

        return {
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
            "Content-Type": "application/json",
        }

    def build_request_body(self, messages: List[Dict[str, Any]], stream: bool) -> Dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "system": self.system_prompt,
            "messages": messages,
            "stream": stream,
        }

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.status_code < 400:
            return

        body = response_body(response)
        hint = _STATUS_HINTS.get(response.status_code)
        logger.error(f"Anthropic API Error: HTTP {response.status_code} {body}")
        if hint:
            logger.error(hint)

        raise CompletionError(
            f"HTTP {response.status_code}: {error_detail(body, response.reason_phrase)}",
            status=response.status_code,
            body=body
        )

    async def complete(self, messages: List[Dict[str, Any]]) -> str:
        """
        Buffered completion.

        Returns:
            The concatenated, trimmed text of every text block

        Raises:
            AuthConfigError: If the API key is missing or malformed
            CompletionError: On transport errors, non-2xx or unexpected bodies
            EmptyCompletionError: If the response holds no text
        """
        headers = self._headers()
        body = self.build_request_body(messages, stream=False)

        try:
            response = await self.client.post(self.messages_url, json=body, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"No response from Anthropic API: {e}")
            raise CompletionError(f"No response from Anthropic API: {e}") from e

        self._raise_for_status(response)

        data = response_body(response)
        if not isinstance(data, dict):
            raise CompletionError(f"Unexpected response from Anthropic API: {data!r}")
        return extract_text(data.get("content"))

    async def stream_text(self, messages: List[Dict[str, Any]]) -> AsyncIterator[str]:
        """
        Streamed completion as a lazy, non-restartable sequence of text deltas.

        Each network read is a suspension point. The sequence ends at
        message_stop or when the transport closes, whichever comes first.
        Closing the iterator early closes the underlying response.

        Raises:
            AuthConfigError: If the API key is missing or malformed
            CompletionError: On transport errors, non-2xx or stream error frames
        """
        headers = {**self._headers(), "Accept": "text/event-stream"}
        body = self.build_request_body(messages, stream=True)

        try:
            async with self.client.stream("POST", self.messages_url, json=body, headers=headers) as response:
                if response.status_code >= 400:
                    await response.aread()
                    self._raise_for_status(response)

                async for delta in iter_text_deltas(iter_frames(response.aiter_bytes())):
                    yield delta
        except httpx.HTTPError as e:
            logger.error(f"Anthropic stream failed: {e}")
            raise CompletionError(f"Anthropic stream failed: {e}") from e

    async def close(self) -> None:
        await self.client.aclose()
