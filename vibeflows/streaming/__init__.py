from vibeflows.streaming.frames import (
    DONE_FRAME,
    EventDecoder,
    FrameReassembler,
    Signal,
    classify_line,
    format_frame,
)
from vibeflows.streaming.pump import EventSink, aiter_events, pump

__all__ = [
    "DONE_FRAME",
    "EventDecoder",
    "EventSink",
    "FrameReassembler",
    "Signal",
    "aiter_events",
    "classify_line",
    "format_frame",
    "pump",
]
