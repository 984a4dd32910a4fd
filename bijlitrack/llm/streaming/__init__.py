"""
Streaming support for assistant replies.

This package contains:
- The shared event-stream wire contract
- Incremental SSE frame decoding with malformed-frame recovery
- Delta accumulation into the running reply
"""

from __future__ import annotations

from .models import (
    DATA_PREFIX,
    DONE_SENTINEL,
    EVENT_STREAM_MEDIA_TYPE,
    STREAM_CONTRACT_VERSION,
    CompletionChunk,
    DecoderStats,
    FrameType,
    StreamChunk,
    StreamFrame,
)
from .parser import DeltaAccumulator, SSEFrameDecoder, StreamingParser

__all__ = [
    "DATA_PREFIX",
    "DONE_SENTINEL",
    "EVENT_STREAM_MEDIA_TYPE",
    "STREAM_CONTRACT_VERSION",
    "CompletionChunk",
    "DecoderStats",
    "DeltaAccumulator",
    "FrameType",
    "SSEFrameDecoder",
    "StreamChunk",
    "StreamFrame",
    "StreamingParser",
]
