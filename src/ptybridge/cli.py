"""Command-line interface for ptybridge.

Provides the main entry point for serving browser terminals.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="ptybridge",
        description="Serve an interactive terminal to browser clients",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/ptybridge.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Start the terminal bridge server")
    serve_parser.add_argument("--host", type=str, default=None, help="Override server.host")
    serve_parser.add_argument("--port", type=int, default=None, help="Override server.port")

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the ptybridge CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from ptybridge.config.settings import load_settings
    from ptybridge.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    if args.command == "serve":
        from ptybridge.endpoint.server import create_app
        import uvicorn

        host = args.host or settings.server.host
        port = args.port or settings.server.port
        logger.info(
            "Starting terminal bridge on %s:%d (cwd=%s)", host, port, settings.terminal.cwd
        )
        uvicorn.run(create_app(settings), host=host, port=port)


if __name__ == "__main__":
    main()
