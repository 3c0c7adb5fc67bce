"""
=============================================================================
GAME STATE API CLI ENTRY POINT
=============================================================================

Runs the API standalone, serving a world loaded from a JSON snapshot.
Inside a game server the host process constructs GameStateServer itself
and this module is not involved.

=============================================================================
USAGE
=============================================================================

    # Defaults (127.0.0.1:8080, empty world)
    python -m gamestate_api

    # Serve a snapshot on all interfaces
    python -m gamestate_api --host 0.0.0.0 --snapshot world.json

    # Lock CORS down to the dashboard's origin
    gamestate-api --origin https://dashboard.example.org

Every flag falls back to its GAMESTATE_API_* environment variable, then
to the ServerConfig default.

=============================================================================
"""

import argparse
import signal
import sys
import threading

from . import __version__
from .config import ServerConfig
from .server import GameStateServer, setup_logging
from .world import SnapshotWorld


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gamestate-api",
        description="Read-only HTTP/JSON API over game world state",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  gamestate-api                                  # Run with defaults
  gamestate-api --port 3000                      # Custom port
  gamestate-api --host 0.0.0.0 -s world.json     # Serve a snapshot
  gamestate-api --origin https://example.org     # Restrict CORS origin
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 8080)"
    )

    parser.add_argument(
        "--origin",
        default=None,
        help="Access-Control-Allow-Origin value (default: *)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # PERFORMANCE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Maximum worker threads (default: 8)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # DATA + LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--snapshot", "-s",
        default=None,
        help="JSON file with {\"server\": {...}, \"players\": [...]}"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"gamestate-api {__version__}"
    )

    return parser


def build_config(args: argparse.Namespace) -> ServerConfig:
    """Environment first, then CLI flags on top."""
    config = ServerConfig.from_env()

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.origin is not None:
        config.allowed_origin = args.origin
    if args.workers is not None:
        config.max_workers = args.workers
        config.min_workers = min(config.min_workers, args.workers)
    if args.log_level is not None:
        config.log_level = args.log_level

    return config


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        config = build_config(args)
        config.validate()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    setup_logging(config.log_level)

    # =========================================================================
    # LOAD WORLD
    # =========================================================================

    if args.snapshot:
        try:
            world = SnapshotWorld.from_file(args.snapshot)
        except (OSError, ValueError) as e:
            print(f"Error: cannot load snapshot {args.snapshot}: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        world = SnapshotWorld()

    # =========================================================================
    # RUN UNTIL SIGNALLED
    # =========================================================================

    server = GameStateServer(world, config)
    stop_requested = threading.Event()

    def request_stop(signum, frame):
        stop_requested.set()

    signal.signal(signal.SIGINT, request_stop)
    signal.signal(signal.SIGTERM, request_stop)

    if not server.start():
        sys.exit(1)

    host, port = server.address
    print(f"Game State API listening on http://{host}:{port}/api/health")
    print("Press Ctrl+C to stop")

    try:
        # An untimed wait() does not wake for signals on Windows.
        while not stop_requested.wait(0.5):
            pass
    finally:
        server.stop()


if __name__ == "__main__":
    main()


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Parse command-line arguments
# 2. Layer them over GAMESTATE_API_* environment configuration
# 3. Load the snapshot world
# 4. Start the server and block until SIGINT/SIGTERM
# =============================================================================
