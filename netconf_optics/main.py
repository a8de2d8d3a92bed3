#!/usr/bin/env python3
"""
NETCONF Optics Exporter

Server entry point: loads configuration, sets up logging and serves the HTTP API.
"""

import argparse
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import load_config
from .web import run_server

logger = logging.getLogger(__name__)
console = Console()


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure logging."""
    handlers = [
        RichHandler(
            console=console,
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
        )
    ]

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB per file
            backupCount=3,
        ))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(message)s",
        handlers=handlers,
    )


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="NETCONF Optics Exporter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c", "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    args = parser.parse_args()

    console.print("[bold blue]NETCONF Optics Exporter[/bold blue]")
    console.print()

    try:
        config = load_config(args.config)
    except Exception as e:
        console.print(f"[red]Failed to load configuration: {e}[/red]")
        sys.exit(1)

    setup_logging(config.logging.level, config.logging.file)
    logger.info(f"Listening on {config.server.host}:{config.server.port}")

    run_server(config)


if __name__ == "__main__":
    main()
