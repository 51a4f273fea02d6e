"""
Command-line interface for contextkit.

Operates on JSONL session files and YAML tool manifests so a conversation can
be inspected, extended and turned into a prompt from the shell.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from contextkit.config import ContextConfig
from contextkit.context.builder import ContextBuilder
from contextkit.context.models import message_to_dict
from contextkit.errors import NotFoundError
from contextkit.logging import get_logger, setup_logging
from contextkit.session.manager import SessionManager
from contextkit.session.models import SessionHeader
from contextkit.session.store import JsonlSessionStore
from contextkit.tools.analyzer import ToolAnalyzer
from contextkit.tools.catalog import DirectoryToolCatalog

console = Console()
logger = get_logger("cli")

DEFAULT_CONFIG_FILE = "contextkit.yaml"


def main() -> None:
    """Main CLI entry point."""
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Conversation context engine CLI",
        prog="contextkit",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("-c", "--config", help=f"Config file (default: ./{DEFAULT_CONFIG_FILE} if present)")
    parser.add_argument("-s", "--sessions-dir", help="Directory holding session JSONL files")
    parser.add_argument(
        "-t",
        "--tools-dir",
        action="append",
        dest="tool_dirs",
        help="Directory of YAML tool manifests (repeatable)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    sessions_parser = subparsers.add_parser("sessions", help="List stored sessions")
    sessions_parser.add_argument("--json", action="store_true", help="Output as JSON")

    new_parser = subparsers.add_parser("new", help="Create a session")
    new_parser.add_argument("cwd", nargs="?", help="Working directory recorded in the header")

    append_parser = subparsers.add_parser("append", help="Append a message to a session")
    append_parser.add_argument("session_id")
    append_parser.add_argument("role", choices=["user", "assistant", "system"])
    append_parser.add_argument("content")
    append_parser.add_argument("--parent", help="Branch from this entry before appending")

    history_parser = subparsers.add_parser("history", help="Show the current branch of a session")
    history_parser.add_argument("session_id")
    history_parser.add_argument("--json", action="store_true", help="Output as JSON")

    tools_parser = subparsers.add_parser("tools", help="Rank tools for a query")
    tools_parser.add_argument("query")
    tools_parser.add_argument("-n", "--max-results", type=int, default=None)
    tools_parser.add_argument("--json", action="store_true", help="Output as JSON")

    build_parser = subparsers.add_parser("build", help="Build the prompt for a query")
    build_parser.add_argument("session_id")
    build_parser.add_argument("query")
    build_parser.add_argument("-m", "--max-tokens", type=int, default=None)
    build_parser.add_argument("--json", action="store_true", help="Output as JSON")

    config_parser = subparsers.add_parser("config", help="Show the effective configuration")
    config_parser.add_argument("--json", action="store_true", help="Output as JSON")

    args = parser.parse_args()

    setup_logging("DEBUG" if args.verbose else None)

    commands = {
        "sessions": cmd_sessions,
        "new": cmd_new,
        "append": cmd_append,
        "history": cmd_history,
        "tools": cmd_tools,
        "build": cmd_build,
        "config": cmd_config,
    }
    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return

    try:
        asyncio.run(handler(args))
    except NotFoundError as exc:
        console.print(f"[red]{exc}[/red]")
        sys.exit(1)


def _load_config(args: argparse.Namespace) -> ContextConfig:
    """Resolve config from file and command-line overrides."""
    config_path = getattr(args, "config", None)
    if config_path:
        config = ContextConfig.from_yaml(Path(config_path))
    elif Path(DEFAULT_CONFIG_FILE).exists():
        config = ContextConfig.from_yaml(Path(DEFAULT_CONFIG_FILE))
    else:
        config = ContextConfig.from_dict({})

    sessions_dir = getattr(args, "sessions_dir", None)
    if sessions_dir:
        config.sessions_dir = Path(sessions_dir).expanduser()
    tool_dirs = getattr(args, "tool_dirs", None)
    if tool_dirs:
        config.tool_dirs = [Path(d).expanduser() for d in tool_dirs]
    if not config.tool_dirs:
        config.tool_dirs = [Path.cwd() / "tools"]
    return config


def _create_manager(config: ContextConfig) -> SessionManager:
    return SessionManager(JsonlSessionStore(config.sessions_dir))


def _create_catalog(config: ContextConfig) -> DirectoryToolCatalog:
    return DirectoryToolCatalog(config.tool_dirs, watch_debounce_ms=config.watch_debounce_ms)


def _print_json(data: object) -> None:
    console.print_json(json.dumps(data, indent=2))


async def cmd_sessions(args: argparse.Namespace) -> None:
    """List stored sessions."""
    config = _load_config(args)
    manager = _create_manager(config)

    rows = []
    for session_id in await manager.store.list_sessions():
        try:
            tree = await manager.load_session(session_id)
        except (NotFoundError, ValueError):
            logger.warning("Skipping unreadable session file for %s", session_id)
            continue
        rows.append(
            {
                "id": session_id,
                "cwd": tree.header.cwd,
                "created_at": tree.header.created_at,
                "entries": len(tree),
            }
        )

    if args.json:
        _print_json(rows)
        return

    table = Table(title="Sessions")
    table.add_column("Id", style="cyan", no_wrap=True)
    table.add_column("Working directory")
    table.add_column("Entries", justify="right", style="dim")
    for row in rows:
        table.add_row(row["id"], row["cwd"], str(row["entries"]))
    console.print(table)
    console.print(f"\n[dim]Total: {len(rows)} sessions[/dim]")


async def cmd_new(args: argparse.Namespace) -> None:
    """Create a session and print its id."""
    config = _load_config(args)
    manager = _create_manager(config)
    session_id = await manager.create_session(args.cwd or config.default_cwd)
    console.print(session_id)


async def cmd_append(args: argparse.Namespace) -> None:
    """Append a message, optionally on a new branch."""
    config = _load_config(args)
    manager = _create_manager(config)
    if args.parent:
        await manager.branch(args.session_id, args.parent)
    entry_id = await manager.append_message(args.session_id, args.role, args.content)
    console.print(entry_id)


async def cmd_history(args: argparse.Namespace) -> None:
    """Show the root-to-leaf history of a session."""
    config = _load_config(args)
    manager = _create_manager(config)
    history = await manager.get_history(args.session_id)

    if args.json:
        data = []
        for entry in history:
            if isinstance(entry, SessionHeader):
                data.append({"id": entry.id, "type": "header", "cwd": entry.cwd})
            else:
                data.append(message_to_dict(entry))
        _print_json(data)
        return

    table = Table(title=f"Session {args.session_id}")
    table.add_column("Role", style="cyan")
    table.add_column("Content")
    for entry in history:
        if isinstance(entry, SessionHeader):
            table.add_row("[dim]header[/dim]", entry.cwd)
        else:
            table.add_row(entry.role, entry.content[:80])
    console.print(table)


async def cmd_tools(args: argparse.Namespace) -> None:
    """Rank catalog tools for a query."""
    config = _load_config(args)
    analyzer = ToolAnalyzer(_create_catalog(config))
    max_results = args.max_results if args.max_results is not None else config.max_tools
    ranked = await analyzer.find_relevant_tools(args.query, max_results)

    if args.json:
        _print_json([{"name": rt.tool.name, "score": rt.score} for rt in ranked])
        return

    table = Table(title="Relevant Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Description")
    for rt in ranked:
        table.add_row(rt.tool.name, f"{rt.score:.2f}", rt.tool.description[:60])
    console.print(table)


async def cmd_build(args: argparse.Namespace) -> None:
    """Build and print the prompt for a query."""
    config = _load_config(args)
    builder = ContextBuilder(_create_catalog(config), _create_manager(config), config=config)
    result = await builder.build_context(args.session_id, args.query, args.max_tokens)

    if args.json:
        _print_json(result.to_dict())
        return

    for message in result.prompt.messages:
        console.print(f"[bold cyan]{message.role}[/bold cyan]")
        console.print(message.content, markup=False)
        console.print()

    usage = result.prompt.token_usage
    console.print(
        f"[dim]Tokens: {usage.current}/{usage.limit} "
        f"({usage.utilization:.1f}%), {usage.remaining} remaining[/dim]"
    )


async def cmd_config(args: argparse.Namespace) -> None:
    """Show the effective configuration."""
    config = _load_config(args)
    if args.json:
        _print_json(config.to_dict())
        return
    for key, value in config.to_dict().items():
        console.print(f"[cyan]{key}[/cyan]: {value}")


if __name__ == "__main__":
    main()
