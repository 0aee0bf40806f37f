"""streamchat CLI: Typer + Rich terminal front end.

Commands: list, show, new, send, delete, watch. The CLI is a thin
presentation layer; it calls the core only through TranscriptStore,
SessionManager.start_session(), and notification listeners.
"""

from __future__ import annotations

import asyncio
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from streamchat import __version__
from streamchat.errors import StreamchatError
from streamchat.keys import has_key, load_keys_env
from streamchat.notifications import Notification, NotificationEmitter, NotificationType
from streamchat.persistence.store import TranscriptStore, error_transcript
from streamchat.persistence.watcher import TranscriptWatcher
from streamchat.providers.litellm_provider import LiteLLMProvider
from streamchat.schemas.config import AppConfig
from streamchat.schemas.session import SessionResult, SessionState
from streamchat.schemas.transcript import Message, Role, Transcript
from streamchat.session import SessionManager
from streamchat.settings import load_config
from streamchat.tools.builtin import register_builtin_tools
from streamchat.tools.registry import ToolRegistry

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="streamchat",
    help="Browse chat transcripts and stream model replies into them.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

_ROLE_STYLE: dict[Role, str] = {
    Role.SYSTEM: "magenta",
    Role.USER: "cyan",
    Role.ASSISTANT: "green",
    Role.TOOL: "yellow",
}


# ── Version callback ───────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"streamchat {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Log debug output to stderr.",
    ),
) -> None:
    """streamchat: local chat transcripts with streamed model replies."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    load_keys_env()


# ── Helpers ──────────────────────────────────────────────────────


def _load_config() -> AppConfig:
    """Load configuration, exit on error."""
    try:
        return load_config()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Config error:[/red] {e}")
        raise typer.Exit(1) from None


def _make_store(config: AppConfig, emitter: NotificationEmitter | None = None) -> TranscriptStore:
    return TranscriptStore(
        config.storage.chats_dir,
        config.storage.default_template,
        emitter=emitter,
    )


def _render_transcript(transcript: Transcript, *, show_system: bool, show_tools: bool) -> None:
    if transcript.title:
        console.print(Text(transcript.title, style="bold"))
    for index, message in enumerate(transcript.messages):
        if message.role == Role.SYSTEM and not show_system:
            continue
        if message.role == Role.TOOL and not show_tools:
            continue
        body = Text(message.content or "")
        if message.tool_calls:
            for call in message.tool_calls:
                body.append(
                    f"\n→ {call.function.name}({call.function.arguments})", style="dim",
                )
        console.print(Panel(
            body,
            title=f"[{_ROLE_STYLE[message.role]}]{message.role.value}[/] #{index}",
            title_align="left",
        ))


class _StreamPrinter:
    """Notification listener that prints streamed text as it arrives."""

    def __init__(self, out: Console) -> None:
        self._out = out
        self._printed: dict[int, int] = {}

    def __call__(self, notification: Notification) -> None:
        data = notification.data
        if notification.type == NotificationType.PLACEHOLDER_CREATED:
            self._printed[data["index"]] = 0
            self._out.print(Text("assistant ▸ ", style="green"), end="")
        elif notification.type in (NotificationType.PROGRESS, NotificationType.FINAL):
            content: str = data["content"]
            done = self._printed.get(data["index"], 0)
            if len(content) > done:
                self._out.print(content[done:], end="", markup=False, highlight=False)
                self._printed[data["index"]] = len(content)
            if notification.type == NotificationType.FINAL:
                self._out.print()
        elif notification.type == NotificationType.TOOL_RESULT:
            style = "red" if data["is_error"] else "yellow"
            self._out.print(Text(f"tool {data['name']} ▸ {data['output']}", style=style))


def _report(result: SessionResult) -> None:
    if result.new_identifier:
        console.print(f"[dim]Saved as[/dim] {result.new_identifier}")
    if result.persist_error:
        console.print(f"[red]Save failed:[/red] {result.persist_error}")
    if result.state == SessionState.CANCELLED:
        console.print("[yellow]Cancelled.[/yellow]")
    elif not result.success:
        console.print(f"[red]Session failed:[/red] {result.error}")


# ── Commands ─────────────────────────────────────────────────────


@app.command("list")
def list_chats() -> None:
    """Show saved chats, newest first."""
    config = _load_config()
    summaries = asyncio.run(_make_store(config).list())

    if not summaries:
        console.print("[dim]No chats found.[/dim]")
        return

    table = Table(title=f"Chats ({len(summaries)})")
    table.add_column("Title", style="cyan")
    table.add_column("File", style="dim")
    table.add_column("Modified", justify="right")
    for s in summaries:
        table.add_row(
            s.display_title,
            s.filename,
            s.modified_at.astimezone().strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@app.command()
def show(
    chat: str = typer.Argument(..., help="Chat file, name, or 'default'"),
    hide_system: bool = typer.Option(False, "--hide-system", help="Hide system messages"),
    hide_tools: bool = typer.Option(False, "--hide-tools", help="Hide tool messages"),
) -> None:
    """Print a chat transcript."""
    config = _load_config()
    store = _make_store(config)
    identifier = store.resolve(chat)
    try:
        transcript = asyncio.run(store.load(identifier))
    except StreamchatError as e:
        transcript = error_transcript(e)
    _render_transcript(transcript, show_system=not hide_system, show_tools=not hide_tools)


@app.command()
def new() -> None:
    """Create the default chat template if needed and print its path."""
    config = _load_config()
    store = _make_store(config)
    try:
        path = asyncio.run(store.ensure_default_template(
            config.storage.default_title, config.storage.default_system_prompt,
        ))
    except StreamchatError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from None
    console.print(path)


@app.command()
def send(
    chat: str = typer.Argument("default", help="Chat file, name, or 'default'"),
    message: str = typer.Option(
        None, "--message", "-m",
        help="User message to append before requesting a reply",
    ),
) -> None:
    """Stream a model reply into a chat."""
    config = _load_config()
    if not has_key(config.model.api_key_env):
        console.print(
            f"[yellow]Warning:[/yellow] {config.model.api_key_env} is not set."
        )

    async def _send() -> SessionResult:
        emitter = NotificationEmitter()
        store = _make_store(config, emitter)
        identifier = store.resolve(chat)
        if store.is_default(identifier):
            await store.ensure_default_template(
                config.storage.default_title, config.storage.default_system_prompt,
            )
        if message:
            transcript = await store.load(identifier)
            transcript.messages.append(Message(role=Role.USER, content=message))
            identifier = await store.save(identifier, transcript)

        manager = SessionManager(
            store,
            LiteLLMProvider(config.model),
            register_builtin_tools(ToolRegistry()),
            emitter,
            config=config.session,
        )
        emitter.add_listener(_StreamPrinter(console))
        return await manager.start_session(identifier)

    try:
        result = asyncio.run(_send())
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled.[/yellow]")
        raise typer.Exit(130) from None
    except StreamchatError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from None

    _report(result)
    if not result.success:
        raise typer.Exit(1)


@app.command()
def delete(
    chat: str = typer.Argument(..., help="Chat file or name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
) -> None:
    """Delete a chat."""
    config = _load_config()
    store = _make_store(config)
    identifier = store.resolve(chat)

    if not yes:
        confirm = typer.confirm(f"Delete {identifier}? This cannot be undone.")
        if not confirm:
            console.print("[dim]Cancelled.[/dim]")
            return

    try:
        asyncio.run(store.delete(identifier))
    except StreamchatError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from None
    console.print(f"[green]Deleted:[/green] {identifier}")


@app.command()
def watch(
    chat: str = typer.Argument(..., help="Chat file or name"),
    interval: float = typer.Option(0.5, "--interval", help="Poll interval in seconds"),
) -> None:
    """Reprint a chat whenever its file changes (Ctrl-C to stop)."""
    config = _load_config()
    identifier = _make_store(config).resolve(chat)

    def _on_change(notification: Notification) -> None:
        if notification.type != NotificationType.TRANSCRIPT_CHANGED:
            return
        try:
            transcript = Transcript.model_validate_json(notification.data["data"])
        except ValueError as e:
            transcript = error_transcript(e)
        console.rule(notification.data["filename"])
        _render_transcript(transcript, show_system=True, show_tools=True)

    async def _watch() -> None:
        emitter = NotificationEmitter()
        emitter.add_listener(_on_change)
        watcher = TranscriptWatcher(identifier, emitter, poll_interval=interval)
        watcher.start()
        try:
            await asyncio.Event().wait()
        finally:
            await watcher.stop()

    console.print(f"[dim]Watching {identifier}[/dim]")
    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/dim]")
