"""Incremental decoder for upstream Server-Sent-Event streams.

Bytes arrive in arbitrary chunks, so buffering happens at the line level: only
complete lines are ever parsed, and a JSON frame split across two chunks is
simply held back until its newline shows up.
"""

import json
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

FrameParser = Callable[[Dict[str, Any]], Optional[str]]

DATA_PREFIX = b"data:"
DONE_SENTINEL = "[DONE]"


class EventKind(str, Enum):
    DELTA = "delta"
    TERMINATOR = "terminator"
    MALFORMED = "malformed"


class StreamEvent(BaseModel):
    kind: EventKind
    text: str = ""
    raw: Optional[str] = None  # offending payload of a malformed frame

    @classmethod
    def delta(cls, text: str) -> "StreamEvent":
        return cls(kind=EventKind.DELTA, text=text)

    @classmethod
    def terminator(cls) -> "StreamEvent":
        return cls(kind=EventKind.TERMINATOR)

    @classmethod
    def malformed(cls, raw: str) -> "StreamEvent":
        return cls(kind=EventKind.MALFORMED, raw=raw)


class StreamDecoder:
    def __init__(
        self,
        parse_frame: FrameParser,
        *,
        prefix: bytes = DATA_PREFIX,
        sentinel: str = DONE_SENTINEL,
    ) -> None:
        self._parse_frame = parse_frame
        self._prefix = prefix
        self._sentinel = sentinel
        self._buffer = b""
        self.finished = False

    def feed(self, chunk: bytes) -> List[StreamEvent]:
        """Decode one chunk, keeping any incomplete trailing line for later."""
        if self.finished:
            return []
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split(b"\n")
        return self._process(lines)

    def close(self) -> List[StreamEvent]:
        """Flush at end of input, where the last unterminated line is complete."""
        if self.finished:
            return []
        tail, self._buffer = self._buffer, b""
        events = self._process([tail]) if tail.strip() else []
        self.finished = True
        return events

    def _process(self, lines: List[bytes]) -> List[StreamEvent]:
        events: List[StreamEvent] = []
        for line in lines:
            event = self._decode_line(line.rstrip(b"\r"))
            if event is None:
                continue
            events.append(event)
            if event.kind is EventKind.TERMINATOR:
                self.finished = True
                self._buffer = b""
                break
        return events

    def _decode_line(self, line: bytes) -> Optional[StreamEvent]:
        # id:, event:, ":comment" and blank separator lines carry nothing for us
        if not line.startswith(self._prefix):
            return None
        payload = line[len(self._prefix):].decode("utf-8", errors="replace").strip()
        if not payload or payload == self._sentinel:
            return StreamEvent.terminator()
        try:
            frame = json.loads(payload)
        except json.JSONDecodeError:
            return StreamEvent.malformed(payload)
        if not isinstance(frame, dict):
            return StreamEvent.malformed(payload)
        text = self._parse_frame(frame)
        if not text:
            return None
        return StreamEvent.delta(text)
