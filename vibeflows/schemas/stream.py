from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

THOUGHT_STREAM = "thought_stream"
ERROR = "error"

EVENT_TYPES: tuple[str, ...] = (
    "thought_stream",
    "iteration",
    "thinking",
    "reasoning_start",
    "tool_prep",
    "tool_ready",
    "executing",
    "tool_result",
    "tool_stream",
    "final",
    "reasoning_done",
    "continue",
    "keepalive",
    "tool_input",
    "error",
)


class StreamEvent(BaseModel):
    """Canonical protocol unit carried in one ``data:`` frame.

    Extra keys sent by the upstream service are kept so the relay forwards
    the object unchanged.
    """

    model_config = ConfigDict(extra="allow")

    type: str
    message: str
    # Passed through as sent; upstream values are not coerced to bool.
    final: Any = None


class AiStreamRequest(BaseModel):
    user_query: str | None = None
    chat_id: str | None = None
    user_id: str | None = None


def error_event(message: str) -> StreamEvent:
    return StreamEvent(type=ERROR, message=message, final=True)
