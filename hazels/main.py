"""
Main entry point for the Haze Language Server.

The server communicates with editors via stdin/stdout using JSON-RPC, or
over TCP with --tcp. Process logs go to stderr (or --log-file) because
stdout carries the protocol.
"""
import argparse
import logging
import os

from hazels import __version__
from hazels.lsp.server import create_server

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="haze-ls",
        description="Language server for the Haze programming language",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--tcp", action="store_true", help="Serve over TCP instead of stdio")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address for --tcp")
    parser.add_argument("--port", type=int, default=2087, help="Port for --tcp")
    parser.add_argument("--log-file", help="Write logs to this file instead of stderr")
    parser.add_argument(
        "--log-level",
        default=os.getenv("HAZELS_LOG_LEVEL", "WARNING"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Log level (default: $HAZELS_LOG_LEVEL or WARNING)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Start the language server."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        filename=args.log_file,
        level=getattr(logging, args.log_level),
        format=LOG_FORMAT,
    )

    server = create_server()

    if args.tcp:
        server.start_tcp(args.host, args.port)
    else:
        # Listen on stdin/stdout for LSP messages from the editor client
        server.start_io()


if __name__ == "__main__":
    main()
