"""Per-event-type presentation policy.

Adding an event type means adding one row to ``EVENT_POLICIES``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Literal

Profile = Literal["compact", "verbose"]

# Terminals narrower than this count as a small viewport.
COMPACT_MAX_COLUMNS = 80


class Visibility(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    SUPPRESSED = "suppressed"


class FlushStrategy(str, Enum):
    COALESCE = "coalesce"
    IMMEDIATE = "immediate"


def _plain(message: str) -> str:
    return message


def _bold_line(message: str) -> str:
    return f"\n**{message.strip()}**\n"


def _italic_line(message: str) -> str:
    return f"\n*{message.strip()}*\n"


def _code_line(message: str) -> str:
    return f"\n`{message.strip()}`\n"


def _error_line(message: str) -> str:
    return f"\n[ERROR] {message.strip()}\n"


@dataclass(frozen=True)
class EventPolicy:
    visibility: Visibility
    flush: FlushStrategy = FlushStrategy.IMMEDIATE
    transform: Callable[[str], str] = _plain

    def visible_in(self, profile: Profile) -> bool:
        if self.visibility is Visibility.PRIMARY:
            return True
        if self.visibility is Visibility.SECONDARY:
            return profile == "verbose"
        return False


SUPPRESSED = EventPolicy(Visibility.SUPPRESSED)

EVENT_POLICIES: dict[str, EventPolicy] = {
    "thought_stream": EventPolicy(Visibility.PRIMARY, FlushStrategy.COALESCE, _plain),
    "final": EventPolicy(Visibility.PRIMARY, transform=_bold_line),
    "tool_result": EventPolicy(Visibility.PRIMARY, transform=_code_line),
    "error": EventPolicy(Visibility.PRIMARY, transform=_error_line),
    "iteration": EventPolicy(Visibility.SECONDARY, transform=_bold_line),
    "thinking": EventPolicy(Visibility.SECONDARY, transform=_italic_line),
    "reasoning_start": EventPolicy(Visibility.SECONDARY, transform=_italic_line),
    "reasoning_done": EventPolicy(Visibility.SECONDARY, transform=_italic_line),
    "tool_prep": EventPolicy(Visibility.SECONDARY, transform=_code_line),
    "tool_ready": EventPolicy(Visibility.SECONDARY, transform=_code_line),
    "executing": EventPolicy(Visibility.SECONDARY, transform=_code_line),
    "tool_stream": EventPolicy(Visibility.SECONDARY, transform=_plain),
    "continue": EventPolicy(Visibility.SECONDARY, transform=_italic_line),
    "keepalive": SUPPRESSED,
    "tool_input": SUPPRESSED,
}


def policy_for(event_type: str) -> EventPolicy:
    """Unknown types are hidden."""
    return EVENT_POLICIES.get(event_type, SUPPRESSED)


def profile_for_width(columns: int) -> Profile:
    return "compact" if columns < COMPACT_MAX_COLUMNS else "verbose"
