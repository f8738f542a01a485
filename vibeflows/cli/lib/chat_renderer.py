"""Terminal output for the assistant transcript and stored chats."""

from __future__ import annotations

from typing import Any

import typer

_SEPARATOR = "-" * 60

_ROLE_LABEL = {
    "user": "You",
    "assistant": "Assistant",
    "system": "System",
}


class ChatRenderer:
    """Write committed transcript text and chat listings to the terminal."""

    def render_text(self, text: str) -> None:
        """Append committed text to the live transcript without newline."""
        typer.echo(text, nl=False)

    def end_turn(self) -> None:
        typer.echo()

    def render_error(self, error_msg: str) -> None:
        typer.echo(f"\n[ERROR] {error_msg}", err=True)

    def render_history(self, chat: dict[str, Any], messages: list[dict[str, Any]]) -> None:
        title = chat.get("title") or chat.get("chat_id", "")
        typer.echo(_SEPARATOR)
        typer.echo(f"{title}  ({chat.get('chat_id', '')})")
        typer.echo(_SEPARATOR)
        if not messages:
            typer.echo("(no messages)")
        for message in messages:
            label = _ROLE_LABEL.get(message.get("role", ""), message.get("role", ""))
            typer.echo(f"[{message.get('created_at', '')}] {label}:")
            typer.echo(message.get("text", ""))
            typer.echo()
        typer.echo(_SEPARATOR)

    def render_chats(self, chats: list[dict[str, Any]]) -> None:
        if not chats:
            typer.echo("No chats yet.")
            return
        for chat in chats:
            title = chat.get("title") or "(untitled)"
            typer.echo(f"{chat.get('chat_id', '')}  {chat.get('updated_at', '')}  {title}")
