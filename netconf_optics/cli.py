#!/usr/bin/env python3
"""
CLI tool for manual NETCONF requests.

Usage:
    python -m netconf_optics.cli get 10.0.0.1 --port 830 -u admin -p secret --rpc get-config.xml
    python -m netconf_optics.cli json 10.0.0.1 -u admin -p secret --rpc get-config.xml
    python -m netconf_optics.cli optics 10.0.0.1 -u admin -p secret
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn

from .decoder import decode
from .framing import unframe
from .optics import OPTICS_REQUEST, extract_components
from .session import request

console = Console()


def setup_logging(verbose: bool = False):
    """Setup logging with rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)]
    )


def _load_body(args) -> str:
    if getattr(args, "rpc", None):
        return Path(args.rpc).read_text(encoding="utf-8")
    return OPTICS_REQUEST


async def _send(args, body: str) -> str:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(f"Querying {args.host}:{args.port}...", total=None)
        return await request(
            args.host,
            args.port,
            args.username,
            args.password,
            body,
            connect_timeout=args.timeout,
        )


async def cmd_get(args):
    """Print the raw reply, framing included."""
    reply = await _send(args, _load_body(args))
    console.print(reply, markup=False, highlight=False)


async def cmd_json(args):
    """Print the decoded reply as JSON."""
    reply = await _send(args, _load_body(args))
    console.print_json(json.dumps(decode(unframe(reply))))


async def cmd_optics(args):
    """Show transceiver inventory and channel statistics."""
    reply = await _send(args, OPTICS_REQUEST)
    components = extract_components(decode(unframe(reply)))

    if not components:
        console.print("[yellow]No components reported[/yellow]")
        return

    table = Table(title=f"Transceivers on {args.host}")
    table.add_column("Component", style="cyan")
    table.add_column("State", style="green")
    table.add_column("Vendor")
    table.add_column("Part")
    table.add_column("Serial")
    table.add_column("Channels", justify="right")

    for component in components:
        table.add_row(
            str(component.get("name") or "?"),
            component["present-state"],
            str(component.get("vendor") or ""),
            str(component.get("vendor-part") or ""),
            str(component.get("serial-no") or ""),
            str(len(component.get("channel", []))),
        )

    console.print(table)
    console.print(f"\n[bold]{len(components)} component(s)[/bold]")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="NETCONF Optics CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    def add_device_args(p):
        p.add_argument("host", help="Device host name or IP address")
        p.add_argument("--port", type=int, default=830, help="NETCONF SSH port")
        p.add_argument("--username", "-u", default="admin", help="Device username")
        p.add_argument("--password", "-p", default="", help="Device password")
        p.add_argument("--timeout", "-t", type=int, default=10, help="Connect timeout")

    get_parser = subparsers.add_parser("get", help="Send an RPC and print the raw reply")
    add_device_args(get_parser)
    get_parser.add_argument("--rpc", "-r", help="RPC body file (default: transceiver <get>)")

    json_parser = subparsers.add_parser("json", help="Send an RPC and print the decoded reply")
    add_device_args(json_parser)
    json_parser.add_argument("--rpc", "-r", help="RPC body file (default: transceiver <get>)")

    optics_parser = subparsers.add_parser("optics", help="Summarize transceivers")
    add_device_args(optics_parser)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.verbose)

    commands = {
        "get": cmd_get,
        "json": cmd_json,
        "optics": cmd_optics,
    }

    try:
        asyncio.run(commands[args.command](args))
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted[/dim]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if args.verbose:
            console.print_exception()
        sys.exit(1)


if __name__ == "__main__":
    main()
