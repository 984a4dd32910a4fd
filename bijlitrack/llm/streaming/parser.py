"""
Incremental SSE parser for assistant replies.

Network chunks arrive with arbitrary boundaries: a chunk may hold several
lines, part of a line, or part of a multi-byte character. The decoder keeps
a stateful UTF-8 decoder and a single text buffer, and only ever classifies
complete lines.
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import AsyncGenerator, AsyncIterable

from pydantic import ValidationError

from .models import (
    COMMENT_PREFIX,
    DATA_PREFIX,
    DONE_SENTINEL,
    CompletionChunk,
    DecoderStats,
    FrameType,
    StreamChunk,
    StreamFrame,
)

# Constants
DEFAULT_MAX_FRAME_RETRIES = 3
MAX_MALFORMED_SAMPLES = 5

logger = logging.getLogger(__name__)


class SSEFrameDecoder:
    """
    Turns raw byte chunks into classified stream frames.

    A ``data:`` line whose JSON fails to parse is pushed back to the front of
    the buffer and decoding for the current chunk stops; the line is retried
    when the next chunk arrives. After ``max_frame_retries`` retries the line
    is dropped as malformed so one corrupt frame cannot stall the stream.
    """

    def __init__(self, max_frame_retries: int = DEFAULT_MAX_FRAME_RETRIES):
        if max_frame_retries < 0:
            raise ValueError("max_frame_retries must be non-negative")
        self.max_frame_retries = max_frame_retries
        self.stats = DecoderStats()
        self.finished = False

        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._retry_line: str | None = None
        self._retry_count = 0

    @property
    def buffered_text(self) -> str:
        """Text waiting for a line terminator (or a retry)."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[StreamFrame]:
        """Decode one network chunk and return the frames it completed."""
        if self.finished:
            return []

        self.stats.bytes_received += len(chunk)
        self.stats.chunks_received += 1
        self._buffer += self._decoder.decode(chunk)
        return self._drain(final=False)

    def close(self) -> list[StreamFrame]:
        """Flush the decoder at end of stream and process what is left."""
        if self.finished:
            return []

        self._buffer += self._decoder.decode(b"", final=True)
        frames = self._drain(final=True)
        self.finished = True
        return frames

    def _drain(self, final: bool) -> list[StreamFrame]:
        frames: list[StreamFrame] = []

        while self._buffer:
            newline_index = self._buffer.find("\n")
            if newline_index == -1:
                if not final:
                    break
                line, self._buffer = self._buffer, ""
            else:
                line = self._buffer[:newline_index]
                self._buffer = self._buffer[newline_index + 1:]

            if line.endswith("\r"):
                line = line[:-1]
            self.stats.lines_processed += 1

            try:
                frame = self._classify_line(line)
            except json.JSONDecodeError as e:
                if final or self._retries_exhausted(line):
                    frame = self._drop_line(line, f"JSON decode error: {e}")
                else:
                    # Possibly truncated upstream; wait for the next chunk.
                    self._buffer = line + "\n" + self._buffer
                    self.stats.pushbacks += 1
                    break

            frames.append(frame)
            if frame.frame_type is FrameType.DONE:
                self.finished = True
                self._buffer = ""
                break

        return frames

    def _classify_line(self, line: str) -> StreamFrame:
        """Classify one line.

        Raises:
            json.JSONDecodeError: If a ``data:`` payload is not valid JSON.
        """
        if not line.strip():
            self.stats.skipped_lines += 1
            return StreamFrame(FrameType.BLANK, line)

        if line.startswith(COMMENT_PREFIX):
            self.stats.skipped_lines += 1
            return StreamFrame(FrameType.COMMENT, line)

        if not line.startswith(DATA_PREFIX):
            self.stats.skipped_lines += 1
            return StreamFrame(FrameType.IGNORED, line)

        payload = line[len(DATA_PREFIX):].strip()

        if payload == DONE_SENTINEL:
            return StreamFrame(FrameType.DONE, line)

        if not payload:
            self.stats.skipped_lines += 1
            return StreamFrame(FrameType.HEARTBEAT, line)

        data = json.loads(payload)
        try:
            chunk = CompletionChunk.model_validate(data)
        except ValidationError as e:
            return self._record_malformed(line, f"Schema validation error: {e}")

        self.stats.delta_frames += 1
        return StreamFrame(FrameType.DELTA, line, content=chunk.delta_content)

    def _retries_exhausted(self, line: str) -> bool:
        if line == self._retry_line:
            self._retry_count += 1
        else:
            self._retry_line = line
            self._retry_count = 0
        return self._retry_count >= self.max_frame_retries

    def _drop_line(self, line: str, error: str) -> StreamFrame:
        self._retry_line = None
        self._retry_count = 0
        logger.warning(f"Dropping unparsable stream line after retries: {line[:120]!r}")
        return self._record_malformed(line, error)

    def _record_malformed(self, line: str, error: str) -> StreamFrame:
        self.stats.malformed_frames += 1
        if len(self.stats.malformed_samples) < MAX_MALFORMED_SAMPLES:
            self.stats.malformed_samples.append(line)
        logger.debug(f"Malformed stream frame: {error}")
        return StreamFrame(FrameType.MALFORMED, line, error=error)


class StreamingParser:
    """Async SSE parser over an iterable of byte chunks."""

    def __init__(self, max_frame_retries: int = DEFAULT_MAX_FRAME_RETRIES):
        self.max_frame_retries = max_frame_retries
        self.last_stats: DecoderStats | None = None

    async def parse_sse_stream(
        self, byte_stream: AsyncIterable[bytes]
    ) -> AsyncGenerator[StreamFrame]:
        """
        Yield frames as soon as the chunk completing them arrives.

        Stops after ``[DONE]`` without reading further chunks; if the stream
        ends first, whatever is still buffered is flushed as final lines.
        """
        decoder = SSEFrameDecoder(self.max_frame_retries)
        self.last_stats = decoder.stats

        async for chunk in byte_stream:
            for frame in decoder.feed(chunk):
                yield frame
            if decoder.finished:
                return

        for frame in decoder.close():
            yield frame

    def get_stats(self) -> dict[str, int]:
        """Counters of the most recent stream, for logging."""
        if self.last_stats is None:
            return {}
        return {
            "bytes_received": self.last_stats.bytes_received,
            "chunks_received": self.last_stats.chunks_received,
            "lines_processed": self.last_stats.lines_processed,
            "delta_frames": self.last_stats.delta_frames,
            "skipped_lines": self.last_stats.skipped_lines,
            "pushbacks": self.last_stats.pushbacks,
            "malformed_frames": self.last_stats.malformed_frames,
        }


class DeltaAccumulator:
    """Concatenates delta frames into the assistant reply, in arrival order."""

    def __init__(self):
        self.content = ""
        self.delta_count = 0

    def process_frame(self, frame: StreamFrame) -> StreamChunk | None:
        """Apply a frame; returns a chunk only when it carried new text."""
        if frame.frame_type is not FrameType.DELTA or not frame.content:
            return None

        self.content += frame.content
        self.delta_count += 1
        return StreamChunk(
            content=frame.content,
            accumulated_content=self.content,
            index=self.delta_count - 1,
        )

    def reset(self) -> None:
        """Reset accumulator state for a new stream."""
        self.content = ""
        self.delta_count = 0
