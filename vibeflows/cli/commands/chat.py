"""Chat commands - stream assistant replies through the relay."""

import asyncio
import sys
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
import typer

from vibeflows.cli._globals import get_global_config
from vibeflows.cli.client import APIClient, APIError, AsyncAPIClient, TimeoutError as APITimeoutError
from vibeflows.cli.config import CLIConfig
from vibeflows.cli.lib.chat_renderer import ChatRenderer
from vibeflows.cli.lib.render_scheduler import RenderScheduler
from vibeflows.streaming import pump

AI_STREAM_PATH = "/api/ai/stream"

_EXIT_WORDS = {"/exit", "quit", "exit"}


@dataclass
class TurnResult:
    completed: bool
    text: str


def build_payload(user_query: str, chat_id: Optional[str], user_id: Optional[str]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"user_query": user_query}
    if chat_id:
        payload["chat_id"] = chat_id
    if user_id:
        payload["user_id"] = user_id
    return payload


async def stream_ai_reply(
    client: AsyncAPIClient,
    payload: Dict[str, Any],
    scheduler: RenderScheduler,
) -> bool:
    """
    Send one query to the relay and feed its events into ``scheduler``.

    Returns:
        True if the relay closed the stream with ``[DONE]``
    """
    try:
        async with client.stream("POST", AI_STREAM_PATH, json=payload) as response:
            return await pump(response.aiter_bytes(), scheduler)
    except httpx.TimeoutException as e:
        raise APITimeoutError("SSE stream timed out while waiting for relay events") from e
    except httpx.HTTPError as e:
        raise APIError(f"SSE stream HTTP error: {e}") from e


async def _run_turn_async(
    config: CLIConfig,
    payload: Dict[str, Any],
    renderer: ChatRenderer,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> TurnResult:
    scheduler = RenderScheduler(
        renderer.render_text,
        profile=config.resolve_profile(),
        window=config.coalesce_ms / 1000.0,
    )
    async with AsyncAPIClient(base_url=config.api_base, timeout=config.timeout, transport=transport) as client:
        completed = await stream_ai_reply(client, payload, scheduler)
    return TurnResult(completed=completed, text=scheduler.visible_text)


def run_turn(
    config: CLIConfig,
    user_query: str,
    chat_id: Optional[str] = None,
    user_id: Optional[str] = None,
    renderer: Optional[ChatRenderer] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> TurnResult:
    """Run one streamed assistant turn; client-side failures are rendered, not raised."""
    renderer = renderer or ChatRenderer()
    payload = build_payload(user_query, chat_id, user_id)
    try:
        return asyncio.run(_run_turn_async(config, payload, renderer, transport))
    except APIError as e:
        renderer.render_error(e.user_friendly_message())
        return TurnResult(completed=False, text="")
    finally:
        renderer.end_turn()


def create_chat(config: CLIConfig, user_id: Optional[str], title: Optional[str] = None) -> Optional[str]:
    """Create a chat on the relay; returns its id or None."""
    try:
        with APIClient(base_url=config.api_base, timeout=config.timeout, retry_times=config.retry_times) as client:
            created = client.post("/api/chats", json={"title": title, "user_id": user_id})
    except APIError as e:
        print(f"\n{e.user_friendly_message()}", file=sys.stderr)
        return None
    return created.get("chat_id")


def chat(
    chat_id: Optional[str] = typer.Option(None, "--chat-id", "-c", help="Store the conversation in this chat"),
    user_id: Optional[str] = typer.Option(None, "--user-id", "-u", help="Owner of the chat"),
    new: bool = typer.Option(False, "--new", help="Create a new chat before starting"),
) -> None:
    """
    Interactive chat with the assistant.

    Each line is streamed through the relay; type /exit or quit to leave.
    """
    config = get_global_config()
    renderer = ChatRenderer()

    if new and not chat_id:
        chat_id = create_chat(config, user_id)
        if not chat_id:
            raise typer.Exit(1)
        typer.echo(f"[CHAT] created {chat_id}")

    typer.echo("=" * 60)
    typer.echo("VibeFlows assistant - type /exit to quit")
    typer.echo("=" * 60)

    while True:
        try:
            raw_input = input("You: ").strip()
        except EOFError:
            typer.echo("\n[EXIT] bye")
            break

        if not raw_input:
            continue
        if raw_input.lower() in _EXIT_WORDS:
            typer.echo("[EXIT] bye")
            break

        typer.echo()
        run_turn(config, raw_input, chat_id=chat_id, user_id=user_id, renderer=renderer)
        typer.echo()


def ask(
    query: str = typer.Argument(..., help="Question for the assistant"),
    chat_id: Optional[str] = typer.Option(None, "--chat-id", "-c", help="Store the exchange in this chat"),
    user_id: Optional[str] = typer.Option(None, "--user-id", "-u", help="Owner of the chat"),
) -> None:
    """Ask a single question and stream the answer."""
    config = get_global_config()
    result = run_turn(config, query, chat_id=chat_id, user_id=user_id)
    if not result.completed:
        raise typer.Exit(1)
