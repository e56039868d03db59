"""
Entry point for running the AI Tutor package as a module.

Run with:
    python -m ai_tutor [chat]
    python -m ai_tutor serve [--host HOST] [--port PORT]
"""

import argparse

from ai_tutor.config import HOST, LOG_LEVEL, PORT
from ai_tutor.logging_config import setup_logging


def main(argv=None):
    parser = argparse.ArgumentParser(prog="ai_tutor", description="AI Tutor Agent")
    parser.add_argument("--log-level", default=LOG_LEVEL, help="Logging level (default: %(default)s)")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("chat", help="Interactive tutor in the terminal (default)")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=HOST)
    serve_parser.add_argument("--port", type=int, default=PORT)

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    from ai_tutor.interfaces.cli import chat, serve

    if args.command == "serve":
        serve(args.host, args.port)
    else:
        chat()


if __name__ == "__main__":
    main()
