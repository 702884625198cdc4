"""
=============================================================================
GUESTBOOK CLI ENTRY POINT
=============================================================================

    # Defaults: 127.0.0.1:8080, 4 workers, ./data/entries.db, serve "."
    python -m guestbook

    # Bind address as a single positional argument
    python -m guestbook 0.0.0.0:8000

    # Front end in ./public, database elsewhere, more workers
    python -m guestbook --root ./public --db /var/lib/guestbook/entries.db -w 8

Settings not given on the command line fall back to GUESTBOOK_*
environment variables, then to the defaults in ServerConfig.

Exit status: 0 after a clean shutdown, 1 if startup failed or workers
missed the shutdown deadline.

=============================================================================
"""

import argparse
import sys
from typing import Optional, Sequence

from . import __version__
from .config import LOG_LEVELS, ServerConfig, parse_bind_address
from .server import GuestbookServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="guestbook",
        description="Multi-worker guestbook HTTP server backed by SQLite",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m guestbook                        # 127.0.0.1:8080
  python -m guestbook 0.0.0.0:8000           # all interfaces, port 8000
  python -m guestbook --root ./public        # serve the front end from ./public
  python -m guestbook --no-visitor-count     # disable /visitor_count
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "address",
        nargs="?",
        default=None,
        help="Bind address as host:port (default: 127.0.0.1:8080)",
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Number of worker threads (default: 4)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # APPLICATION
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--db",
        default=None,
        help="SQLite database file (default: data/entries.db)",
    )
    parser.add_argument(
        "--root", "-r",
        default=None,
        help="Directory to serve static files from (default: current directory)",
    )
    parser.add_argument(
        "--no-visitor-count",
        action="store_true",
        help="Disable the /visitor_count endpoints",
    )
    parser.add_argument(
        "--cors-origin",
        default=None,
        help="Access-Control-Allow-Origin for /visitor_count (default: *)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING AND META
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"guestbook {__version__}",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Layer command-line arguments over the environment-derived config."""
    config = ServerConfig.from_env()

    if args.address is not None:
        config.host, config.port = parse_bind_address(
            args.address, default_host=config.host, default_port=config.port
        )
    if args.workers is not None:
        config.workers = args.workers
    if args.db is not None:
        config.db_path = args.db
    if args.root is not None:
        config.static_root = args.root
    if args.no_visitor_count:
        config.visitor_count = False
    if args.cors_origin is not None:
        config.cors_origin = args.cors_origin
    if args.log_level is not None:
        config.log_level = args.log_level

    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
        server = GuestbookServer(config)
    except ValueError as e:
        print(f"guestbook: {e}", file=sys.stderr)
        return 1

    return server.run()


if __name__ == "__main__":
    sys.exit(main())
