"""SSE relay between the model service and the client.

The HTTP response is already committed as a 200 event stream by the time
this generator runs, so every failure is turned into one in-band ``error``
frame instead of an exception.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, Optional

from fastapi.concurrency import run_in_threadpool

from vibeflows.core.errors import PersistenceError, RelayError
from vibeflows.core.logger import get_logger
from vibeflows.schemas.stream import THOUGHT_STREAM, AiStreamRequest, StreamEvent, error_event
from vibeflows.services import chat_store
from vibeflows.services.upstream import UpstreamClient
from vibeflows.streaming import DONE_FRAME, EventDecoder, aiter_events, format_frame

logger = get_logger("vibeflows.relay")

UpstreamFactory = Callable[[], UpstreamClient]


@dataclass
class StreamSession:
    """Per-request state. Never shared between requests."""

    chat_id: Optional[str] = None
    user_id: Optional[str] = None
    decoder: EventDecoder = field(default_factory=EventDecoder)
    parts: list[str] = field(default_factory=list)

    @property
    def assistant_text(self) -> str:
        return "".join(self.parts)

    @property
    def chunk_count(self) -> int:
        return self.decoder.chunks

    def absorb(self, event: StreamEvent) -> None:
        if event.type == THOUGHT_STREAM:
            self.parts.append(event.message)


async def _persist(chat_id: str, user_id: Optional[str], text: str, role: str) -> None:
    try:
        await run_in_threadpool(chat_store.insert_message, chat_id, user_id, text, role, "text")
    except PersistenceError as exc:
        logger.error("failed to persist %s message: %s", role, exc.message)


async def relay_ai_stream(
    request: AiStreamRequest,
    upstream_factory: UpstreamFactory = UpstreamClient.from_settings,
) -> AsyncIterator[str]:
    """Yield outbound SSE frames for one assistant turn."""

    session = StreamSession(chat_id=request.chat_id, user_id=request.user_id)
    try:
        if session.chat_id:
            await _persist(session.chat_id, session.user_id, request.user_query or "", "user")

        upstream = upstream_factory()
        payload = {
            "user_query": request.user_query,
            "chat_id": request.chat_id,
            "user_id": request.user_id,
        }
        async with upstream.stream(payload) as chunks:
            async for event in aiter_events(chunks, session.decoder):
                yield format_frame(event)
                session.absorb(event)

        logger.info(
            "upstream stream finished: chunks=%s done=%s chars=%s",
            session.chunk_count,
            session.decoder.done,
            len(session.assistant_text),
        )
        if session.chat_id and session.assistant_text:
            await _persist(session.chat_id, session.user_id, session.assistant_text, "assistant")
        yield DONE_FRAME
    except (asyncio.CancelledError, GeneratorExit):
        logger.info(
            "client disconnected after %s chunks, discarding %s chars of assistant text",
            session.chunk_count,
            len(session.assistant_text),
        )
        raise
    except RelayError as exc:
        logger.warning("relay error (%s): %s", type(exc).__name__, exc.message)
        yield format_frame(error_event(f"AI service error: {exc.message}"))
    except Exception as exc:
        logger.exception("unexpected relay failure")
        yield format_frame(error_event(f"AI service error: {exc}"))
