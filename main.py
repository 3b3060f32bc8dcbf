"""
Oracle Command Center — Main CLI Entrypoint.

Wires all layers and runs the interactive CLI loop.
"""

import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv
from rich import box
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from conversation.store import ConversationStore
from entry.cli import CLIAdapter
from gateway.http_gateway import HttpOracleGateway
from observability.logger import Observability
from orchestrator.command_center import CommandCenter
from shared.errors import UnsupportedOracleError
from shared.models import ConversationEntry
from shared.oracle_catalog import ORACLE_OPTIONS

# ─── Configuration ──────────────────────────────────────────────

logger = logging.getLogger(__name__)

# Ensure local .env is loaded before reading runtime configuration.
load_dotenv(override=False)

ORACLE_API_URL = os.getenv("ORACLE_API_URL", "http://localhost:3000")
ORACLE_API_TIMEOUT_SECONDS = float(os.getenv("ORACLE_API_TIMEOUT_SECONDS", "30"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
COMMAND_CENTER_HOST = os.getenv("COMMAND_CENTER_HOST", "0.0.0.0")
COMMAND_CENTER_PORT = int(os.getenv("COMMAND_CENTER_PORT", "8010"))

# ─── Rich Console ───────────────────────────────────────────────

console = Console()

_STATUS_STYLES = {
    "pending": ("⏳ Oracle", "yellow"),
    "resolved_ok": ("✅ Oracle", "green"),
    "resolved_error": ("❌ Oracle", "red"),
}


def setup_logging() -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def build_pipeline(session_id: str | None = None) -> tuple[CLIAdapter, CommandCenter]:
    """Wire the entry adapter, gateway, transcript and controller."""
    cli = CLIAdapter(session_id=session_id)
    gateway = HttpOracleGateway(base_url=ORACLE_API_URL, timeout=ORACLE_API_TIMEOUT_SECONDS)
    command_center = CommandCenter(
        gateway=gateway,
        store=ConversationStore(),
        observability=Observability(session_id=cli.session_id),
    )
    return cli, command_center


def render_entry(entry: ConversationEntry) -> None:
    """Render one transcript entry to the CLI using Rich."""
    timestamp = entry.created_at.astimezone().strftime("%H:%M")
    if entry.role == "system":
        console.print(Panel(Text(entry.text, style="dim"), title="🔮 System", border_style="dim", box=box.ROUNDED))
        return
    if entry.role == "user":
        console.print(Panel(Text(entry.text, style="bold white"), title="🧑 You", border_style="cyan", box=box.ROUNDED))
        return

    title, style = _STATUS_STYLES.get(entry.status or "", ("🤖 Oracle", "white"))
    console.print()
    console.print(Panel(
        Markdown(entry.text),
        title=title,
        subtitle=timestamp,
        border_style=style,
        box=box.ROUNDED,
    ))


def render_oracles(command_center: CommandCenter) -> None:
    """Show the oracle catalog with example questions."""
    table = Table(title="🔮 Oracles", box=box.SIMPLE_HEAVY, show_header=True, header_style="bold cyan")
    table.add_column("Kind", style="bold white")
    table.add_column("Oracle", style="white")
    table.add_column("Examples", style="dim")
    for kind, option in ORACLE_OPTIONS.items():
        marker = " ●" if command_center.selected_oracle == kind else ""
        table.add_row(f"{kind.value}{marker}", f"{option['icon']} {option['name']}", "\n".join(option["examples"]))
    console.print(table)


def render_transcript_change(event: str, entry: ConversationEntry | None, _snapshot) -> None:
    """Transcript listener: show each entry once it is final (pending is shown by the spinner)."""
    if entry is None or entry.status == "pending":
        return
    if event == "append" or (event == "update" and entry.is_terminal):
        render_entry(entry)


def _handle_command(command_center: CommandCenter, command: str, argument: str) -> bool:
    """Run a slash command. Returns False when the loop should stop."""
    if command == "exit":
        console.print("[dim]Goodbye! 👋[/dim]")
        return False
    if command == "oracles":
        render_oracles(command_center)
    elif command == "select":
        try:
            selected = command_center.select_oracle(None if argument.lower() in ("", "none", "auto") else argument)
        except UnsupportedOracleError as e:
            console.print(f"[bold red]{e}[/]")
            return True
        label = ORACLE_OPTIONS[selected]["name"] if selected else "automatic routing"
        console.print(f"[dim]Using {label}.[/dim]")
    elif command == "clear":
        command_center.store.clear()
        command_center.start()
    else:
        console.print(f"[yellow]Unknown command: /{command}[/yellow] [dim](try /oracles, /select <kind>, /clear)[/dim]")
    return True


async def run_agent_loop() -> None:
    """Interactive command center loop."""
    cli, command_center = build_pipeline()

    console.print(Panel(
        Text.from_markup(
            "[bold cyan]Oracle Command Center[/bold cyan]\n"
            f"[dim]Oracle API: {ORACLE_API_URL}[/dim]\n"
            "[dim]Ask a question, /oracles, /select <kind>, /clear, or 'exit' to quit[/dim]"
        ),
        title="🔮",
        border_style="cyan",
        box=box.DOUBLE,
    ))
    console.print(f"[dim]Session: {cli.session_id}[/dim]")

    command_center.subscribe(render_transcript_change)
    command_center.start()

    while True:
        raw_input = console.input("[bold cyan]You → [/]")
        entry_request = cli.read_input(raw_input)
        if not entry_request.input_text:
            continue

        command = entry_request.metadata.get("command")
        if command:
            if not _handle_command(command_center, command, entry_request.metadata.get("argument", "")):
                break
            continue

        with console.status("[yellow]Querying oracle network...[/yellow]", spinner="dots"):
            await command_center.handle_user_message(entry_request.input_text)
        console.print()


async def run_ask(question: str, oracle: str | None = None) -> int:
    """One-shot question: print the resolved oracle entry."""
    _cli, command_center = build_pipeline()
    try:
        command_center.select_oracle(oracle)
    except UnsupportedOracleError as e:
        console.print(f"[bold red]{e}[/]")
        return 2
    entry_id = await command_center.handle_user_message(question)
    entry = command_center.store.get(entry_id) if entry_id else None
    if entry is None:
        console.print("[yellow]Nothing to ask.[/yellow]")
        return 1
    render_entry(entry)
    return 0 if entry.status == "resolved_ok" else 1


def main() -> None:
    """Entrypoint with CLI args."""
    setup_logging()

    parser = argparse.ArgumentParser(description="Oracle Command Center")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("run", help="Run interactive command center")

    serve_parser = subparsers.add_parser("serve", help="Serve the HTTP API")
    serve_parser.add_argument("--host", default=COMMAND_CENTER_HOST, help="Bind host")
    serve_parser.add_argument("--port", type=int, default=COMMAND_CENTER_PORT, help="Bind port")

    ask_parser = subparsers.add_parser("ask", help="Ask a single question and exit")
    ask_parser.add_argument("question", help="Question text, e.g. 'weather in Tokyo'")
    ask_parser.add_argument("--oracle", default=None, help="Explicit oracle kind (price_feed, weather, space)")

    args = parser.parse_args()

    if args.command == "serve":
        import uvicorn

        uvicorn.run("api.server:app", host=args.host, port=args.port)
    elif args.command == "ask":
        sys.exit(asyncio.run(run_ask(args.question, oracle=args.oracle)))
    elif args.command == "run" or args.command is None:
        try:
            asyncio.run(run_agent_loop())
        except (KeyboardInterrupt, EOFError):
            pass
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
