"""SSE frame reassembly and event classification.

Shared by the relay (reading the upstream model service) and the terminal
client (reading the relay). Both sides feed arbitrary chunks in and get
canonical ``StreamEvent`` objects out, regardless of where the transport
split the bytes.
"""

from __future__ import annotations

import codecs
import json
from enum import Enum
from typing import Any

from vibeflows.core.errors import FrameParseError
from vibeflows.core.logger import get_logger
from vibeflows.schemas.stream import THOUGHT_STREAM, StreamEvent

logger = get_logger("vibeflows.streaming.frames")

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"
DONE_FRAME = f"data: {DONE_SENTINEL}\n\n"


class Signal(Enum):
    DONE = DONE_SENTINEL


class FrameReassembler:
    """Turn ordered text chunks into complete lines.

    The last fragment of every split is held back because it may be the
    head of a line whose tail has not arrived yet.
    """

    def __init__(self) -> None:
        self._buffer = ""

    @property
    def pending(self) -> str:
        return self._buffer

    def feed(self, text: str) -> list[str]:
        if not text:
            return []
        self._buffer += text
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return lines

    def finish(self) -> list[str]:
        """Release whatever is left once the stream has ended."""
        remaining, self._buffer = self._buffer, ""
        if not remaining:
            return []
        return remaining.split("\n")


def _parse_payload(payload: str) -> Any:
    try:
        return json.loads(payload)
    except ValueError as exc:
        raise FrameParseError(f"invalid JSON in data frame: {exc}", line=payload) from exc


def classify_line(line: str) -> StreamEvent | Signal | None:
    """Classify one raw line.

    Returns ``Signal.DONE`` for the terminal sentinel (or an empty payload),
    a ``StreamEvent`` for a well-formed frame, and ``None`` for anything that
    should be skipped.
    """
    if not line.strip():
        return None
    if not line.startswith(DATA_PREFIX):
        return None

    payload = line[len(DATA_PREFIX) :].strip()
    if not payload or payload == DONE_SENTINEL:
        return Signal.DONE

    try:
        data = _parse_payload(payload)
    except FrameParseError as exc:
        logger.debug("skipping malformed frame: %s", exc.message)
        return None

    if not isinstance(data, dict):
        return None

    message = data.get("message")
    if not isinstance(message, str):
        return None

    event_type = data.get("type")
    if event_type is None or event_type == "":
        data = {**data, "type": THOUGHT_STREAM}
    elif not isinstance(event_type, str):
        return None

    return StreamEvent.model_validate(data)


def format_frame(event: StreamEvent) -> str:
    return f"data: {event.model_dump_json(exclude_unset=True)}\n\n"


class EventDecoder:
    """Bytes (or text) in, canonical events out.

    Once ``[DONE]`` is seen the decoder is closed: the rest of that chunk and
    every later chunk are ignored.
    """

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._frames = FrameReassembler()
        self.done = False
        self.chunks = 0

    def feed(self, chunk: bytes | str) -> list[StreamEvent]:
        if self.done:
            return []
        self.chunks += 1
        text = self._utf8.decode(chunk) if isinstance(chunk, bytes) else chunk
        return self._classify(self._frames.feed(text))

    def finish(self) -> list[StreamEvent]:
        if self.done:
            return []
        lines = self._frames.feed(self._utf8.decode(b"", final=True))
        lines.extend(self._frames.finish())
        return self._classify(lines)

    def _classify(self, lines: list[str]) -> list[StreamEvent]:
        events: list[StreamEvent] = []
        for line in lines:
            result = classify_line(line)
            if result is Signal.DONE:
                self.done = True
                break
            if result is not None:
                events.append(result)
        return events
