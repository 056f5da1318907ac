"""engage-bridge CLI - Main entry point.

Commands:
- config: Show the effective Engage settings
- serve: Run the webhook server
"""

from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from engage_bridge import __version__
from engage_bridge.client.engage import EngageClient
from engage_bridge.config import EngageSettings, ServerSettings
from engage_bridge.engine.adapter import EngageAdapter
from engage_bridge.engine.context import CancellationToken, TurnContext
from engage_bridge.engine.recognizer import PhraseHandoffRecognizer
from engage_bridge.exceptions import ConfigurationError
from engage_bridge.server.app import create_app
from engage_bridge.server.run import run_server

app = typer.Typer(
    help="engage-bridge - RingCentral Engage webhook adapter.",
    no_args_is_help=True,
)

console = Console()


class EchoBot:
    """Replies to every message with its own text."""

    async def on_turn(
        self, turn_context: TurnContext, cancellation: CancellationToken | None = None
    ) -> None:
        text = turn_context.activity.text
        if text:
            await turn_context.send_activity(text)


class _LoggingBot:
    async def on_turn(
        self, turn_context: TurnContext, cancellation: CancellationToken | None = None
    ) -> None:
        activity = turn_context.activity
        console.print(f"[dim]{activity.type.value}[/] {activity.id}: {activity.text or activity.name or ''}")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"engage-bridge {__version__}")
        raise typer.Exit()


def build_adapter(settings: EngageSettings) -> EngageAdapter:
    """Wire the Engage client and the phrase recognizer into an adapter."""
    if settings.handoff_phrases_file is not None:
        recognizer = PhraseHandoffRecognizer.from_yaml(settings.handoff_phrases_file)
    else:
        recognizer = PhraseHandoffRecognizer()
    return EngageAdapter(EngageClient(settings), recognizer)


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """engage-bridge - RingCentral Engage webhook adapter."""
    pass


@app.command()
def config() -> None:
    """Show the effective settings with secrets masked.

    Examples:
        engage-bridge config
    """
    table = Table(title="Engage settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in EngageSettings().masked().items():
        table.add_row(key, "" if value is None else str(value))
    console.print(table)


@app.command()
def serve(
    host: Annotated[
        Optional[str], typer.Option("--host", help="Bind address (default from settings)")
    ] = None,
    port: Annotated[
        Optional[int], typer.Option("--port", "-p", help="Port (default from settings)")
    ] = None,
    echo: Annotated[
        bool, typer.Option("--echo", help="Answer every message with its own text")
    ] = False,
) -> None:
    """Run the webhook server.

    Without --echo the bot only records turns in the log, which is enough
    to exercise verification and handoff.

    Examples:
        engage-bridge serve --echo
        engage-bridge serve --host 0.0.0.0 --port 8080
    """
    settings = EngageSettings()
    server_settings = ServerSettings()
    if host is not None:
        server_settings.host = host
    if port is not None:
        server_settings.port = port

    try:
        adapter = build_adapter(settings)
    except ConfigurationError as e:
        console.print(f"[bold red]✗[/] {e.message}")
        raise typer.Exit(1) from e

    bot = EchoBot() if echo else _LoggingBot()
    run_server(create_app(adapter, bot, settings), server_settings)


if __name__ == "__main__":
    app()
