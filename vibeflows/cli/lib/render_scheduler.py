"""Throttled rendering of decoded stream events.

``thought_stream`` fragments are coalesced in a RenderBuffer and committed
at sentence boundaries or once the coalescing window has passed. Other
visible types are committed right away, after any pending text.
"""

from __future__ import annotations

import asyncio
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from vibeflows.cli.lib.render_policy import FlushStrategy, Profile, policy_for
from vibeflows.schemas.stream import StreamEvent

DEFAULT_WINDOW_SECONDS = 0.3

_SENTENCE_END = re.compile(r"[.!?。！？…][\"'”’)\]]*\s*$")


def ends_sentence(text: str) -> bool:
    return bool(_SENTENCE_END.search(text))


@dataclass
class RenderBuffer:
    accumulated_text: str = ""
    last_flush: float = 0.0


class RenderScheduler:
    """Event sink that decides, per event, to flush now, defer, or drop.

    Args:
        commit: called with each chunk of text that becomes visible
        profile: ``compact`` hides secondary event types
        window: coalescing window in seconds
        loop: object providing ``call_later``; defaults to the running loop
        clock: monotonic time source
    """

    def __init__(
        self,
        commit: Callable[[str], None],
        profile: Profile = "verbose",
        window: float = DEFAULT_WINDOW_SECONDS,
        loop: Optional[Any] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._commit = commit
        self.profile = profile
        self.window = window
        self._loop = loop
        self._clock = clock
        self._timer: Optional[Any] = None
        self.buffer = RenderBuffer(last_flush=clock())
        self.transcript: list[str] = []

    @property
    def visible_text(self) -> str:
        return "".join(self.transcript)

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    def push(self, event: StreamEvent) -> None:
        policy = policy_for(event.type)
        if not policy.visible_in(self.profile):
            return

        text = policy.transform(event.message)
        if policy.flush is FlushStrategy.COALESCE:
            self._coalesce(text)
            return

        self.flush()
        self._emit(text)

    def flush(self) -> None:
        self._cancel_timer()
        text, self.buffer.accumulated_text = self.buffer.accumulated_text, ""
        self.buffer.last_flush = self._clock()
        if text:
            self._emit(text)

    def finish(self) -> None:
        """Stream ended: commit everything, whatever the timer state."""
        self.flush()

    def _coalesce(self, text: str) -> None:
        self.buffer.accumulated_text += text
        elapsed = self._clock() - self.buffer.last_flush
        if ends_sentence(text) or elapsed >= self.window:
            self.flush()
            return
        self._arm_timer(self.window - elapsed)

    def _arm_timer(self, delay: float) -> None:
        self._cancel_timer()
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                # Nothing can fire a deferred flush outside an event loop.
                self.flush()
                return
        self._timer = loop.call_later(delay, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        self.flush()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _emit(self, text: str) -> None:
        self.transcript.append(text)
        self._commit(text)
