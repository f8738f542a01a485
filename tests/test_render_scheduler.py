"""
Unit tests for the terminal render scheduler.

Uses a fake clock and a fake loop so coalescing decisions are deterministic.
"""

import pytest

from vibeflows.cli.lib.render_policy import (
    EVENT_POLICIES,
    FlushStrategy,
    Visibility,
    policy_for,
    profile_for_width,
)
from vibeflows.cli.lib.render_scheduler import RenderScheduler, ends_sentence
from vibeflows.schemas.stream import EVENT_TYPES, StreamEvent


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeHandle:
    def __init__(self, delay: float, callback) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeLoop:
    def __init__(self) -> None:
        self.handles: list[FakeHandle] = []

    def call_later(self, delay, callback):
        handle = FakeHandle(delay, callback)
        self.handles.append(handle)
        return handle

    def fire_pending(self) -> None:
        for handle in list(self.handles):
            if not handle.cancelled:
                handle.callback()


def _event(event_type: str, message: str) -> StreamEvent:
    return StreamEvent(type=event_type, message=message)


def _scheduler(profile: str = "verbose", window: float = 0.3):
    committed: list[str] = []
    clock = FakeClock()
    loop = FakeLoop()
    scheduler = RenderScheduler(committed.append, profile=profile, window=window, loop=loop, clock=clock)
    return scheduler, committed, clock, loop


class TestCoalescing:
    """thought_stream fragments are buffered and committed in batches."""

    def test_fragments_within_window_are_held(self) -> None:
        scheduler, committed, clock, loop = _scheduler()
        scheduler.push(_event("thought_stream", "Hel"))
        clock.advance(0.05)
        scheduler.push(_event("thought_stream", "lo"))

        assert committed == []
        assert scheduler.buffer.accumulated_text == "Hello"
        assert scheduler.has_pending_timer

    def test_sentence_end_flushes_immediately(self) -> None:
        scheduler, committed, _, _ = _scheduler()
        scheduler.push(_event("thought_stream", "Hello"))
        scheduler.push(_event("thought_stream", " world."))

        assert committed == ["Hello world."]
        assert scheduler.buffer.accumulated_text == ""
        assert not scheduler.has_pending_timer

    def test_window_elapsed_flushes_on_next_fragment(self) -> None:
        scheduler, committed, clock, _ = _scheduler()
        scheduler.push(_event("thought_stream", "a"))
        clock.advance(0.31)
        scheduler.push(_event("thought_stream", "b"))

        assert committed == ["ab"]

    def test_timer_fires_deferred_flush(self) -> None:
        scheduler, committed, clock, loop = _scheduler()
        clock.advance(0.1)
        scheduler.push(_event("thought_stream", "partial"))

        assert len(loop.handles) == 1
        assert loop.handles[0].delay == pytest.approx(0.2)

        loop.fire_pending()
        assert committed == ["partial"]
        assert not scheduler.has_pending_timer

    def test_new_fragment_replaces_pending_timer(self) -> None:
        scheduler, committed, clock, loop = _scheduler()
        scheduler.push(_event("thought_stream", "a"))
        clock.advance(0.1)
        scheduler.push(_event("thought_stream", "b"))

        assert len(loop.handles) == 2
        assert loop.handles[0].cancelled is True
        assert loop.handles[1].cancelled is False

        loop.fire_pending()
        assert committed == ["ab"]

    def test_finish_forces_final_flush(self) -> None:
        scheduler, committed, _, loop = _scheduler()
        scheduler.push(_event("thought_stream", "no punctuation"))

        scheduler.finish()

        assert committed == ["no punctuation"]
        assert all(handle.cancelled for handle in loop.handles)
        assert scheduler.visible_text == "no punctuation"

    def test_no_event_loop_means_immediate_flush(self) -> None:
        committed: list[str] = []
        scheduler = RenderScheduler(committed.append, clock=FakeClock())
        scheduler.push(_event("thought_stream", "sync"))
        assert committed == ["sync"]


class TestImmediateEvents:
    """Non-coalesced types commit at once, after any buffered text."""

    def test_buffered_text_precedes_immediate_event(self) -> None:
        scheduler, committed, _, _ = _scheduler()
        scheduler.push(_event("thought_stream", "thinking out loud"))
        scheduler.push(_event("tool_result", "42"))

        assert committed == ["thinking out loud", "\n`42`\n"]

    def test_final_and_error_are_visible_in_compact(self) -> None:
        scheduler, committed, _, _ = _scheduler(profile="compact")
        scheduler.push(_event("final", "Summary"))
        scheduler.push(_event("error", "AI service error: boom"))

        assert committed == ["\n**Summary**\n", "\n[ERROR] AI service error: boom\n"]


class TestProfiles:
    """Compact hides secondary types; suppressed types never render."""

    @pytest.mark.parametrize("event_type", ["thinking", "iteration", "tool_prep", "executing", "continue"])
    def test_secondary_hidden_in_compact(self, event_type: str) -> None:
        scheduler, committed, _, _ = _scheduler(profile="compact")
        scheduler.push(_event(event_type, "detail"))
        scheduler.finish()
        assert committed == []

    def test_secondary_shown_in_verbose(self) -> None:
        scheduler, committed, _, _ = _scheduler(profile="verbose")
        scheduler.push(_event("thinking", " planning "))
        assert committed == ["\n*planning*\n"]

    @pytest.mark.parametrize("event_type", ["keepalive", "tool_input", "something_new"])
    def test_suppressed_everywhere(self, event_type: str) -> None:
        for profile in ("compact", "verbose"):
            scheduler, committed, _, _ = _scheduler(profile=profile)
            scheduler.push(_event(event_type, "noise"))
            scheduler.finish()
            assert committed == []

    def test_width_threshold(self) -> None:
        assert profile_for_width(60) == "compact"
        assert profile_for_width(79) == "compact"
        assert profile_for_width(80) == "verbose"
        assert profile_for_width(200) == "verbose"


class TestPolicyTable:
    def test_every_known_type_has_a_policy(self) -> None:
        assert set(EVENT_TYPES) == set(EVENT_POLICIES)

    def test_only_thought_stream_coalesces(self) -> None:
        coalesced = [name for name, policy in EVENT_POLICIES.items() if policy.flush is FlushStrategy.COALESCE]
        assert coalesced == ["thought_stream"]

    def test_unknown_type_is_suppressed(self) -> None:
        assert policy_for("brand_new").visibility is Visibility.SUPPRESSED


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Done.", True),
        ("Really?", True),
        ("Wow!", True),
        ('He said "stop."', True),
        ("完成。", True),
        ("trailing space. ", True),
        ("no end", False),
        ("3.5 million", False),
        ("", False),
    ],
)
def test_ends_sentence(text: str, expected: bool) -> None:
    assert ends_sentence(text) is expected
