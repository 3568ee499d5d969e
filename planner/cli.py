"""
Planner CLI — Command-Line Interface for the Planning Assistant
================================================================
Entry point for running the server or calling tools directly.

Usage:
    # Start the HTTP server (JSON-RPC on /mcp, REST on /api)
    python -m planner serve --store sqlite --path planner.db --port 8787

    # List the available tools
    python -m planner tools

    # List the available store backends
    python -m planner stores

    # Call one tool against a persistent store
    python -m planner call create_project --store json --path ./data --args '{"name": "Launch"}'
    python -m planner call list_todos --store json --path ./data -a project_id=<id> -a status=pending

Every option also reads from PLANNER_* environment variables; flags win.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from planner.config import PlannerConfig
from planner.errors import StoreConfigError, UnknownToolError, ValidationError
from planner.service import PlanningService
from planner.stores.registry import list_stores
from planner.tools import call_tool, list_tools

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
#  Helpers
# ─────────────────────────────────────────────────────────────

def configure_logging(level: str):
    """Configure the root logger once for the whole process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


def load_config(args) -> PlannerConfig:
    """Environment first, then any flags given on the command line."""
    return PlannerConfig.from_env().with_overrides(
        store=getattr(args, "store", None),
        store_path=getattr(args, "path", None),
        host=getattr(args, "host", None),
        port=getattr(args, "port", None),
        log_level=getattr(args, "log_level", None),
    )


def parse_arguments(raw_json: Optional[str], pairs: Optional[list[str]]) -> dict:
    """Merge ``--args`` JSON and repeated ``-a key=value`` pairs into one dict."""
    arguments: dict = {}
    if raw_json:
        loaded = json.loads(raw_json)
        if not isinstance(loaded, dict):
            raise ValueError("--args must be a JSON object")
        arguments.update(loaded)
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected key=value, got '{pair}'")
        arguments[key] = value
    return arguments


# ─────────────────────────────────────────────────────────────
#  Commands
# ─────────────────────────────────────────────────────────────

def cmd_serve(args) -> int:
    """Launch the HTTP server."""
    config = load_config(args)
    try:
        import uvicorn  # noqa: F401
    except ImportError:
        print("✘ uvicorn is required to serve.")
        print("  Install it with:  pip install uvicorn fastapi")
        return 1

    from planner.server import run_server
    run_server(config)
    return 0


def cmd_tools(args) -> int:
    """List tool names and descriptions."""
    print("\n◬ ─── Tools ───")
    for tool in list_tools():
        params = ", ".join(tool.args_model.model_fields) or "-"
        print(f"  {tool.name:<16} {tool.description}")
        print(f"  {'':<16} args: {params}")
    print()
    return 0


def cmd_stores(args) -> int:
    """List store backends."""
    print("\n◬ ─── Store Backends ───")
    for name in list_stores():
        print(f"  ✔ {name}")
    print()
    return 0


def cmd_call(args) -> int:
    """Run one tool and print its text payload."""
    config = load_config(args)
    if config.store == "memory":
        logger.warning("calling %s against the memory store; nothing will persist", args.tool)

    try:
        arguments = parse_arguments(args.args, args.arg)
    except ValueError as e:
        print(f"✘ {e}", file=sys.stderr)
        return 2

    try:
        service = PlanningService.from_config(config)
    except StoreConfigError as e:
        print(f"✘ {e}", file=sys.stderr)
        return 2

    async def _run():
        try:
            return await call_tool(service, args.tool, arguments)
        finally:
            await service.store.close()

    try:
        outcome = asyncio.run(_run())
    except (UnknownToolError, ValidationError) as e:
        print(f"✘ {e}", file=sys.stderr)
        return 2

    if outcome.is_error:
        print(f"✘ {outcome.text}", file=sys.stderr)
        return 1
    print(outcome.text)
    return 0


# ─────────────────────────────────────────────────────────────
#  Main
# ─────────────────────────────────────────────────────────────

def _add_store_options(p: argparse.ArgumentParser):
    p.add_argument("--store", default=None, help="Store backend (memory/json/sqlite)")
    p.add_argument("--path", default=None, help="Directory (json) or database file (sqlite)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="planner",
        description="Planning Assistant — projects and todos over a key-value store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  planner serve --store sqlite --path planner.db\n"
            "  planner tools\n"
            "  planner stores\n"
            "  planner call create_project --store json --path ./data --args '{\"name\": \"Launch\"}'\n"
        ),
    )
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # serve
    p_serve = subparsers.add_parser("serve", help="Start the HTTP server")
    _add_store_options(p_serve)
    p_serve.add_argument("--host", default=None, help="Bind address (default: 127.0.0.1)")
    p_serve.add_argument("--port", default=None, type=int, help="Port number (default: 8787)")

    # tools
    subparsers.add_parser("tools", help="List available tools")

    # stores
    subparsers.add_parser("stores", help="List available store backends")

    # call
    p_call = subparsers.add_parser("call", help="Call one tool and print the result")
    p_call.add_argument("tool", help="Tool name (see 'planner tools')")
    p_call.add_argument("--args", default=None, help="Tool arguments as a JSON object")
    p_call.add_argument("-a", "--arg", action="append", default=None,
                        help="Tool argument as key=value (repeatable)")
    _add_store_options(p_call)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(load_config(args).log_level)

    commands = {
        "serve": cmd_serve,
        "tools": cmd_tools,
        "stores": cmd_stores,
        "call": cmd_call,
    }

    if args.command in commands:
        return commands[args.command](args)
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
