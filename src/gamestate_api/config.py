"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the game state API.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m gamestate_api --port 3000                        │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── GAMESTATE_API_PORT=3000 python -m gamestate_api            │
    │                                                                      │
    │   3. Defaults in this dataclass                                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The embedding game server normally builds a ServerConfig in code from
its own settings file (host, port, allowed origin) and hands it to
GameStateServer.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple


ENV_PREFIX = "GAMESTATE_API_"


@dataclass
class ServerConfig:
    """
    Configuration for the game state API server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, allowed_origin, backlog, buffer_size, timeout

    HTTP SETTINGS
    - keep_alive, keep_alive_timeout, max_request_size

    THREADING SETTINGS
    - min_workers, max_workers, queue_size

    LIFECYCLE
    - start_timeout, stop_timeout, accept_poll_interval

    LOGGING
    - log_level, log_format, access_log_skip_paths

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind. Use "0.0.0.0" to expose the API on all interfaces."""

    port: int = 8080
    """
    Port to listen on, 0-65535.

    0 asks the OS for a free port; read GameStateServer.port after
    start() to learn which one was picked.
    """

    allowed_origin: str = "*"
    """Value sent in Access-Control-Allow-Origin on every response."""

    backlog: int = 64
    """Maximum number of queued, not yet accepted connections."""

    buffer_size: int = 8192
    """Receive chunk size in bytes."""

    timeout: Optional[float] = 10.0
    """Socket timeout for reading the first request on a connection."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0

    max_request_size: int = 64 * 1024
    """
    Upper bound on a single request in bytes.

    The API is read-only, so requests are a request line plus headers.
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 2
    max_workers: int = 8
    queue_size: int = 64
    """Pending connections beyond this are answered with 503."""

    # ─────────────────────────────────────────────────────────────────────
    # LIFECYCLE
    # ─────────────────────────────────────────────────────────────────────

    start_timeout: float = 5.0
    """How long start() waits for the listener to report its bind result."""

    stop_timeout: float = 5.0
    """How long stop() waits for the listener and the workers to exit."""

    accept_poll_interval: float = 0.25
    """Accept timeout; bounds how quickly the listener notices stop()."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"
    """Access log format: 'text' or 'json'."""

    access_log_skip_paths: Tuple[str, ...] = ()
    """Paths served but left out of the access log, e.g. ("/api/health",)."""

    server_name: str = "GameStateAPI/1.0"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        GAMESTATE_API_HOST            Bind address (default: 127.0.0.1)
        GAMESTATE_API_PORT            Port (default: 8080)
        GAMESTATE_API_ALLOWED_ORIGIN  CORS origin (default: *)
        GAMESTATE_API_WORKERS         Max worker threads (default: 8)
        GAMESTATE_API_TIMEOUT         Read timeout in seconds (default: 10)
        GAMESTATE_API_LOG_LEVEL       Logging level (default: INFO)
        GAMESTATE_API_LOG_SKIP_PATHS  Comma-separated paths kept out of the
                                      access log (default: none)

        =====================================================================
        """
        defaults = cls()
        max_workers = int(os.getenv(f"{ENV_PREFIX}WORKERS", str(defaults.max_workers)))
        skip_paths = os.getenv(f"{ENV_PREFIX}LOG_SKIP_PATHS", "")
        return cls(
            host=os.getenv(f"{ENV_PREFIX}HOST", defaults.host),
            port=int(os.getenv(f"{ENV_PREFIX}PORT", str(defaults.port))),
            allowed_origin=os.getenv(f"{ENV_PREFIX}ALLOWED_ORIGIN", defaults.allowed_origin),
            min_workers=min(defaults.min_workers, max_workers),
            max_workers=max_workers,
            timeout=float(os.getenv(f"{ENV_PREFIX}TIMEOUT", str(defaults.timeout))),
            log_level=os.getenv(f"{ENV_PREFIX}LOG_LEVEL", defaults.log_level),
            access_log_skip_paths=tuple(
                path.strip() for path in skip_paths.split(",") if path.strip()
            ),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called by GameStateServer before anything is created, so a bad
        value fails at construction rather than inside the listener thread.

        Raises:
            ValueError: On the first invalid field.
        """
        if not 0 <= self.port <= 65535:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if not self.allowed_origin:
            raise ValueError("allowed_origin must not be empty")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        for name in ("start_timeout", "stop_timeout", "accept_poll_interval"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"Invalid log_format: {self.log_format}")


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Type-safe configuration with a dataclass
# 2. Environment variable support (GAMESTATE_API_*)
# 3. Validation at construction time (fail-fast)
#
# The embedding process owns the values; this module only holds and
# checks them.
# =============================================================================
