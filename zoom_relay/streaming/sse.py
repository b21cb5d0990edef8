"""Incremental Server-Sent-Events decoding.

Turns an unbounded, arbitrarily chunked byte stream into StreamFrame
objects. Frames are separated by a blank line; each carries an optional
`event:` line and one or more `data:` lines.

Handles:
- Frames split across any number of network chunks
- Multi-byte UTF-8 characters split across chunks
- CRLF line endings
- Comment lines (": keep-alive")
"""
import codecs
import json
import logging
from typing import Any, AsyncIterable, AsyncIterator, Dict, List, Optional

from zoom_relay.core.exceptions import StreamParseError
from zoom_relay.core.models import StreamFrame

logger = logging.getLogger(__name__)

FRAME_SEPARATOR = "\n\n"


def parse_frame(raw: str) -> Optional[StreamFrame]:
    """
    Parse the text of one frame (without its trailing blank line).

    Args:
        raw: Frame text, lines separated by '\\n'

    Returns:
        StreamFrame, or None when the frame carries no data
    """
    event_type = ""
    data_lines: List[str] = []

    for line in raw.split("\n"):
        if not line or line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            event_type = value.strip()
        elif name == "data":
            data_lines.append(value)

    if not data_lines:
        return None
    return StreamFrame(event_type=event_type, data="\n".join(data_lines).strip())


def decode_frame_data(frame: StreamFrame) -> Dict[str, Any]:
    """
    Parse a frame's data as a JSON object.

    Raises:
        StreamParseError: If the data is not a JSON object
    """
    try:
        data = json.loads(frame.data)
    except json.JSONDecodeError as e:
        raise StreamParseError(f"Malformed frame data: {e}") from e
    if not isinstance(data, dict):
        raise StreamParseError(f"Frame data is not an object: {frame.data[:80]}")
    return data


class SSEDecoder:
    """Stateful decoder fed with raw byte chunks as they arrive."""

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> List[StreamFrame]:
        """Consume a chunk and return every frame it completed."""
        self._buffer += self._decoder.decode(chunk)
        # A trailing '\r' stays put until its '\n' arrives in the next chunk
        self._buffer = self._buffer.replace("\r\n", "\n")
        return self._drain()

    def flush(self) -> List[StreamFrame]:
        """Return the final frame if the stream ended without a blank line."""
        self._buffer += self._decoder.decode(b"", final=True)
        self._buffer = self._buffer.replace("\r\n", "\n")
        frames = self._drain()

        tail, self._buffer = self._buffer, ""
        if tail.strip():
            frame = parse_frame(tail)
            if frame is not None:
                frames.append(frame)
        return frames

    def _drain(self) -> List[StreamFrame]:
        frames: List[StreamFrame] = []
        while True:
            sep = self._buffer.find(FRAME_SEPARATOR)
            if sep == -1:
                break
            raw = self._buffer[:sep]
            self._buffer = self._buffer[sep + len(FRAME_SEPARATOR):]
            frame = parse_frame(raw)
            if frame is not None:
                frames.append(frame)
        return frames


async def iter_frames(chunks: AsyncIterable[bytes]) -> AsyncIterator[StreamFrame]:
    """
    Decode an async byte stream into frames, lazily.

    Each chunk read is a suspension point; frames are yielded as soon as
    their terminating blank line has arrived.
    """
    decoder = SSEDecoder()
    async for chunk in chunks:
        for frame in decoder.feed(chunk):
            yield frame
    for frame in decoder.flush():
        yield frame
