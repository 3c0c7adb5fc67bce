"""
=============================================================================
GAMESTATE_API - Read-only HTTP/JSON API over a running game world
=============================================================================

Embeds a small HTTP/1.1 server in a game server process and exposes its
state to dashboards and tools as JSON. All endpoints are GET (plus the
CORS preflight); nothing can change the game through the API.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    gamestate_api/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m gamestate_api)
    ├── server.py            # GameStateServer lifecycle + connection loop
    ├── config.py            # ServerConfig dataclass
    ├── errors.py            # Error taxonomy → HTTP status
    ├── routes.py            # The route table
    ├── world.py             # GameStateAccessor + SnapshotWorld
    ├── core/                # Sockets, connections, worker pool
    ├── http/                # Parsing, responses, router, CORS policy
    ├── handlers/            # System and player endpoints
    ├── metrics/             # Host CPU / memory sampling
    └── middleware/          # Access log + CORS hook

=============================================================================
QUICK START
=============================================================================

    from gamestate_api import GameStateServer, ServerConfig, SnapshotWorld

    world = SnapshotWorld.from_file("snapshot.json")
    server = GameStateServer(world, ServerConfig(port=8080))

    if server.start():
        ...                  # game loop keeps running
        server.stop()

=============================================================================
"""

from .config import ServerConfig
from .errors import (
    GameStateAPIError,
    ClientInputError,
    NotFoundError,
    InternalFault,
    BindFailure,
)
from .metrics import HostMetrics
from .server import GameStateServer, setup_logging
from .world import GameStateAccessor, PlayerSnapshot, SnapshotWorld

__version__ = "1.0.0"

__all__ = [
    "GameStateServer",
    "ServerConfig",
    "setup_logging",
    "GameStateAccessor",
    "PlayerSnapshot",
    "SnapshotWorld",
    "HostMetrics",
    "GameStateAPIError",
    "ClientInputError",
    "NotFoundError",
    "InternalFault",
    "BindFailure",
    "__version__",
]
