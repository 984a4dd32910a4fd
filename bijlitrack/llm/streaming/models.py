"""
Streaming wire contract and frame dataclasses.

The relay pipes the gateway's event stream through unmodified, so the grammar
below is shared by the relay and the client parser:

    data: {"choices": [{"delta": {"content": "..."}}]}\\n
    ...
    data: [DONE]\\n

Lines starting with ``:`` are keep-alive comments.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

STREAM_CONTRACT_VERSION = "1"
EVENT_STREAM_MEDIA_TYPE = "text/event-stream"
DATA_PREFIX = "data: "
COMMENT_PREFIX = ":"
DONE_SENTINEL = "[DONE]"


class FrameType(Enum):
    """Classification of a single stream line."""
    BLANK = "blank"
    HEARTBEAT = "heartbeat"
    COMMENT = "comment"
    IGNORED = "ignored"
    DELTA = "delta"
    DONE = "done"
    MALFORMED = "malformed"


class ChunkDelta(BaseModel):
    """Incremental message fragment."""
    model_config = ConfigDict(extra="ignore")

    role: str | None = None
    content: str | None = None


class ChunkChoice(BaseModel):
    """One streamed choice."""
    model_config = ConfigDict(extra="ignore")

    index: int = 0
    delta: ChunkDelta = Field(default_factory=ChunkDelta)
    finish_reason: str | None = None


class CompletionChunk(BaseModel):
    """Validated payload of a ``data:`` frame."""
    model_config = ConfigDict(extra="ignore")

    choices: list[ChunkChoice] = Field(default_factory=list)

    @property
    def delta_content(self) -> str:
        """Content of the first choice's delta, empty when absent."""
        if not self.choices:
            return ""
        return self.choices[0].delta.content or ""


@dataclass(frozen=True)
class StreamFrame:
    """A classified line from the event stream."""
    frame_type: FrameType
    raw_line: str
    content: str = ""
    error: str | None = None


@dataclass(frozen=True)
class StreamChunk:
    """A content delta together with the reply accumulated so far."""
    content: str
    accumulated_content: str
    index: int


@dataclass
class DecoderStats:
    """Counters for one decoded stream."""
    bytes_received: int = 0
    chunks_received: int = 0
    lines_processed: int = 0
    delta_frames: int = 0
    skipped_lines: int = 0
    pushbacks: int = 0
    malformed_frames: int = 0
    malformed_samples: list[str] = field(default_factory=list)
