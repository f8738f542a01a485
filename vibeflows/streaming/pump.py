from __future__ import annotations

from typing import AsyncIterable, AsyncIterator, Optional, Protocol

from vibeflows.schemas.stream import StreamEvent
from vibeflows.streaming.frames import EventDecoder


class EventSink(Protocol):
    """Anything that consumes decoded events in arrival order."""

    def push(self, event: StreamEvent) -> None: ...

    def finish(self) -> None: ...


async def aiter_events(
    chunks: AsyncIterable[bytes | str],
    decoder: Optional[EventDecoder] = None,
) -> AsyncIterator[StreamEvent]:
    """Decode a chunk stream into events, stopping at ``[DONE]``.

    When the source ends without ``[DONE]`` the retained tail gets one last
    parse attempt.
    """
    decoder = decoder or EventDecoder()
    async for chunk in chunks:
        for event in decoder.feed(chunk):
            yield event
        if decoder.done:
            return
    for event in decoder.finish():
        yield event


async def pump(
    chunks: AsyncIterable[bytes | str],
    sink: EventSink,
    decoder: Optional[EventDecoder] = None,
) -> bool:
    """Push every decoded event into ``sink``; return whether ``[DONE]`` arrived.

    ``sink.finish()`` runs even when the source fails, so buffered output is
    never lost.
    """
    decoder = decoder or EventDecoder()
    try:
        async for event in aiter_events(chunks, decoder):
            sink.push(event)
    finally:
        sink.finish()
    return decoder.done
