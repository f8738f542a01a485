"""
VibeFlows CLI Main Entry Point

Terminal client for the assistant relay: streams replies and browses stored chats.
"""

import sys

import typer

from vibeflows.core.env_loader import load_project_env

load_project_env()

from vibeflows.cli._globals import set_global_config
from vibeflows.cli.commands import chat, history
from vibeflows.cli.config import get_config


def config_callback(
    api_base: str = typer.Option(
        None,
        "--api-base",
        help="Relay base URL (e.g., http://127.0.0.1:8000). Overrides VIBEFLOWS_API_BASE env var.",
        envvar="VIBEFLOWS_API_BASE",
    ),
    timeout: int = typer.Option(
        None,
        "--timeout",
        help="Request timeout in seconds. Overrides VIBEFLOWS_CLI_TIMEOUT env var.",
        envvar="VIBEFLOWS_CLI_TIMEOUT",
    ),
    profile: str = typer.Option(
        None,
        "--profile",
        help="Rendering profile: auto, compact or verbose. Overrides VIBEFLOWS_CLI_PROFILE env var.",
    ),
) -> None:
    """Global options callback. Sets configuration for all commands."""
    if profile is not None and profile not in ("auto", "compact", "verbose"):
        raise typer.BadParameter("profile must be one of: auto, compact, verbose", param_hint="--profile")
    set_global_config(get_config(api_base=api_base, timeout=timeout, profile=profile))  # type: ignore[arg-type]


app = typer.Typer(
    name="vibeflows",
    help="VibeFlows: assistant relay terminal client",
    no_args_is_help=True,
    callback=config_callback,
)

app.command()(chat.chat)
app.command()(chat.ask)
app.command()(history.chats)
app.command()(history.history)


def main() -> None:
    """Main entry point for CLI."""
    try:
        app()
    except KeyboardInterrupt:
        print("\n[ABORTED] Aborted by user.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    main()
