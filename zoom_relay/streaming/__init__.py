"""Streaming support for incremental LLM responses."""
from .sse import SSEDecoder, parse_frame, decode_frame_data, iter_frames

__all__ = [
    "SSEDecoder",
    "parse_frame",
    "decode_frame_data",
    "iter_frames",
]
