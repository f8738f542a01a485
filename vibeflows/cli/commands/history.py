"""Stored chat commands."""

import sys
from typing import Optional

import typer

from vibeflows.cli._globals import get_global_config
from vibeflows.cli.client import APIClient, APIError
from vibeflows.cli.lib.chat_renderer import ChatRenderer


def _client() -> APIClient:
    config = get_global_config()
    return APIClient(base_url=config.api_base, timeout=config.timeout, retry_times=config.retry_times)


def chats(
    user_id: Optional[str] = typer.Option(None, "--user-id", "-u", help="Only chats owned by this user"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum number of chats"),
) -> None:
    """List stored chats, most recently active first."""
    params = {"limit": limit}
    if user_id:
        params["user_id"] = user_id
    try:
        with _client() as client:
            body = client.get("/api/chats", params=params)
    except APIError as e:
        print(f"\n{e.user_friendly_message()}", file=sys.stderr)
        raise typer.Exit(1)
    ChatRenderer().render_chats(body.get("chats", []))


def history(chat_id: str = typer.Argument(..., help="Chat to print")) -> None:
    """Print the stored messages of one chat."""
    try:
        with _client() as client:
            body = client.get(f"/api/chats/{chat_id}")
    except APIError as e:
        print(f"\n{e.user_friendly_message()}", file=sys.stderr)
        raise typer.Exit(1)
    ChatRenderer().render_history(body.get("chat", {}), body.get("messages", []))
