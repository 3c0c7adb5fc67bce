"""
=============================================================================
GAME STATE API SERVER
=============================================================================

GameStateServer runs the HTTP API on a background thread inside a host
process (the game server, or the CLI in __main__.py) and can be started
and stopped any number of times.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    GAME STATE API ARCHITECTURE                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   host process ── start()/stop() ──► GameStateServer                 │
    │                                          │                           │
    │              ┌───────────────────────────┼───────────────────┐       │
    │              ▼                           ▼                   ▼       │
    │     ┌────────────────┐          ┌──────────────┐    ┌──────────────┐ │
    │     │ listener thread│─submit──►│  ThreadPool  │    │ Router       │ │
    │     │ SocketServer   │          │  workers     │───►│ (frozen)     │ │
    │     └────────────────┘          └──────────────┘    └──────┬───────┘ │
    │                                                            │         │
    │                        ┌───────────────────────────────────┤         │
    │                        ▼                                   ▼         │
    │               ┌─────────────────┐                 ┌──────────────┐   │
    │               │GameStateAccessor│                 │ HostMetrics  │   │
    │               │ (game world)    │                 │ (peaks)      │   │
    │               └─────────────────┘                 └──────────────┘   │
    │                                                                      │
    │   Pipeline per request: Logging → CORS hook → Router → handler       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
START / STOP
=============================================================================

    start()                                   listener thread
    ───────                                   ───────────────
    lifecycle lock
    already running? → warn, return False
    dead listener left over? → tear it down
    new SocketServer + ThreadPool
    spawn listener ─────────────────────────► bind()
    ready.wait(start_timeout)                    ├─ ok:   pool.start()
                                                 │        running.set()
                                                 │        ready.set()
                                                 │        serve() ... blocks
                                                 └─ fail: ready.set()
    bound? → True : clean up, False

    stop()
    ──────
    lifecycle lock
    not running? → return
    socket_server.shutdown()         accept loop exits within one poll
    abort open connections           workers stop waiting on keep-alive
    join listener (stop_timeout)
    thread_pool.shutdown(stop_timeout)
    running.clear()

The route table, policy and metrics registry are built once in the
constructor and survive restarts, so host metric peaks are kept across
stop()/start().

=============================================================================
"""

import logging
import threading
import time
from http import HTTPStatus
from typing import Callable, Dict, Optional, Set, Tuple

from .config import ServerConfig
from .core import Connection, ConnectionState, RequestTooLarge, SocketServer, ThreadPool
from .errors import BindFailure
from .handlers import INTERNAL_ERROR_MESSAGE, PlayerHandlers, SystemHandlers
from .http import HTTPParseError, HTTPRequest, HTTPResponse, RequestParser, ResponsePolicy
from .metrics import HostMetrics
from .middleware import CORSMiddleware, LoggingMiddleware, MiddlewarePipeline
from .routes import build_router
from .world import GameStateAccessor


logger = logging.getLogger(__name__)


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """
    Configure root logging for a standalone process.

    The library itself never calls this; an embedding game server keeps
    its own logging setup.
    """
    numeric = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logging.getLogger("gamestate_api").setLevel(numeric)


class GameStateServer:
    """
    Embeddable, restartable HTTP server for the game state API.

    Usage:
        world = SnapshotWorld.from_file("snapshot.json")
        server = GameStateServer(world, ServerConfig(port=8080))

        if server.start():
            ...
            server.stop()

        # or
        with GameStateServer(world, ServerConfig(port=0)) as server:
            print(server.port)

    Args:
        world: Read access to the game world.
        config: Server configuration; validated here.
        metrics: Host metrics registry. Pass one in to share peaks with
                 other components or to use a fake provider.
        clock: Unix time source for response timestamps.
    """

    def __init__(
        self,
        world: GameStateAccessor,
        config: Optional[ServerConfig] = None,
        metrics: Optional[HostMetrics] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or ServerConfig()
        self.config.validate()

        self.world = world
        self.metrics = metrics or HostMetrics()
        self.policy = ResponsePolicy(self.config.allowed_origin, clock=clock)

        # ─────────────────────────────────────────────────────────────────
        # REQUEST PIPELINE (immutable after construction)
        # ─────────────────────────────────────────────────────────────────
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        system = SystemHandlers(self.policy, world, self.metrics)
        players = PlayerHandlers(self.policy, world)
        self._router = build_router(system, players, not_found=self._route_not_found)

        self._middleware = (MiddlewarePipeline()
            .add(LoggingMiddleware(
                log_format=self.config.log_format,
                skip_paths=self.config.access_log_skip_paths,
            ))
            .add(CORSMiddleware(self.policy)))

        self._handler = self._middleware.wrap(self._router.handle)

        # ─────────────────────────────────────────────────────────────────
        # RUNTIME STATE (replaced on every start)
        # ─────────────────────────────────────────────────────────────────
        self._lifecycle_lock = threading.Lock()
        self._running = threading.Event()

        self._socket_server: Optional[SocketServer] = None
        self._thread_pool: Optional[ThreadPool] = None
        self._listener: Optional[threading.Thread] = None
        self._address: Optional[Tuple[str, int]] = None

        self._connections: Set[Connection] = set()
        self._connections_lock = threading.Lock()

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._running.is_set()

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        """Bound (host, port) while running, else None."""
        return self._address if self.is_running else None

    @property
    def port(self) -> int:
        """Bound port while running, else the configured port."""
        address = self.address
        return address[1] if address else self.config.port

    @property
    def router(self):
        return self._router

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> bool:
        """
        Bind and start serving on a background thread.

        Returns:
            True once the listener is bound and accepting. False if the
            server was already running (nothing changes) or the bind
            failed or did not finish within start_timeout.
        """
        with self._lifecycle_lock:
            if self._running.is_set():
                logger.warning("HTTP server is already running")
                return False

            if self._listener is not None:
                # Listener exited on its own; release what it left behind.
                self._teardown()

            host, port = self.config.host, self.config.port
            logger.info(f"Starting HTTP server on {host}:{port}")

            socket_server = SocketServer(self.config)
            thread_pool = ThreadPool(
                min_workers=self.config.min_workers,
                max_workers=self.config.max_workers,
                queue_size=self.config.queue_size,
            )
            ready = threading.Event()
            outcome: Dict[str, object] = {}

            self._socket_server = socket_server
            self._thread_pool = thread_pool
            self._listener = threading.Thread(
                target=self._listen,
                args=(socket_server, thread_pool, ready, outcome),
                name="gamestate-api-listener",
                daemon=True,
            )
            self._listener.start()

            if not ready.wait(self.config.start_timeout):
                outcome.setdefault("error", f"no bind result after {self.config.start_timeout}s")

            if "error" in outcome:
                logger.error(f"Failed to start HTTP server on {host}:{port}: {outcome['error']}")
                self._teardown()
                return False

            self._address = outcome["address"]
            logger.info(
                f"Game State API HTTP server started successfully on "
                f"{self._address[0]}:{self._address[1]}"
            )
            return True

    def stop(self) -> None:
        """
        Stop serving and release the port. No-op when not running.

        In-flight requests get up to stop_timeout to finish; workers still
        busy after that are abandoned (they are daemon threads).
        """
        with self._lifecycle_lock:
            if not self._running.is_set() and self._listener is None:
                return

            logger.info("Stopping HTTP server...")
            self._teardown()
            logger.info("HTTP server stopped")

    def _teardown(self) -> None:
        """Shut down listener, connections and pool. Caller holds the lifecycle lock."""
        socket_server, thread_pool, listener = (
            self._socket_server, self._thread_pool, self._listener
        )
        self._socket_server = self._thread_pool = self._listener = None
        self._running.clear()

        if socket_server is not None:
            socket_server.shutdown()

        with self._connections_lock:
            open_connections = list(self._connections)
        for conn in open_connections:
            conn.abort()

        if listener is not None:
            listener.join(timeout=self.config.stop_timeout)
            if listener.is_alive():
                logger.warning("Listener thread did not exit within stop_timeout")

        if thread_pool is not None:
            thread_pool.shutdown(timeout=self.config.stop_timeout)

        self._address = None

    def _listen(
        self,
        socket_server: SocketServer,
        thread_pool: ThreadPool,
        ready: threading.Event,
        outcome: dict,
    ) -> None:
        """Listener thread body: bind, report, serve."""
        try:
            outcome["address"] = socket_server.bind()
        except BindFailure as e:
            outcome["error"] = e.reason
            ready.set()
            return

        if self._socket_server is not socket_server:
            # start() already gave up on us.
            socket_server.close()
            ready.set()
            return

        thread_pool.start()
        self._running.set()
        ready.set()

        try:
            socket_server.serve(
                lambda conn: self._handle_connection(conn, thread_pool)
            )
        except Exception as e:
            logger.exception(f"Listener thread failed: {e}")
        finally:
            # Exiting on our own (not via stop()) still flips the flag.
            if self._socket_server is socket_server:
                self._running.clear()

    def __enter__(self) -> "GameStateServer":
        if not self.start():
            raise RuntimeError(
                f"Failed to start HTTP server on {self.config.host}:{self.config.port}"
            )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False

    def __del__(self):
        running = getattr(self, "_running", None)
        if running is not None and running.is_set():
            self.stop()

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _route_not_found(self, request: HTTPRequest) -> HTTPResponse:
        return self.policy.error_response("Endpoint not found", HTTPStatus.NOT_FOUND)

    def dispatch(self, request: HTTPRequest) -> HTTPResponse:
        """
        Run one parsed request through the pipeline.

        Used by the connection loop; also handy for exercising the API
        without sockets.
        """
        return self._handler(request)

    def _handle_connection(self, conn: Connection, thread_pool: ThreadPool):
        """Queue an accepted connection; answer 503 when the pool is full."""
        try:
            submitted = thread_pool.submit(
                self._process_connection,
                args=(conn,),
                timeout=self.config.timeout,
                on_drop=self._reject_connection,
            )
        except RuntimeError:
            submitted = False

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._reject_connection(conn)

    def _reject_connection(self, conn: Connection, message: str = "Server overloaded"):
        """
        Answer 503 and close without waiting on the client.

        Used for connections the pool refused, left in the queue past
        timeout, or discarded by stop(). Runs on the listener thread, a
        worker, or the thread calling stop(), so it never blocks on recv().
        """
        self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, message)
        conn.close(drain_timeout=0)

    def _process_connection(self, conn: Connection):
        """
        Keep-alive loop for one connection (runs on a worker thread).

            read → parse → pipeline → send → keep-alive? → read ...
        """
        with self._connections_lock:
            self._connections.add(conn)

        try:
            # Registered first: stop() either sees this connection or has
            # already cleared the flag.
            if not self._running.is_set():
                self._reject_connection(conn, "Server stopping")
                return

            with conn:
                while self._running.is_set():
                    try:
                        # ─────────────────────────────────────────────────
                        # READ + PARSE
                        # ─────────────────────────────────────────────────
                        raw_request = conn.read_request()
                        if raw_request is None:
                            break

                        try:
                            request = self._parser.parse(raw_request, conn.address)
                        except HTTPParseError as e:
                            self._send_error(conn, HTTPStatus(e.status_code), str(e))
                            break

                        # ─────────────────────────────────────────────────
                        # PIPELINE
                        # ─────────────────────────────────────────────────
                        conn.state = ConnectionState.PROCESSING

                        try:
                            response = self.dispatch(request)
                        except Exception as e:
                            logger.exception(f"[{conn.id}] Handler error: {e}")
                            response = self.policy.set_cors_headers(
                                self.policy.error_response(
                                    INTERNAL_ERROR_MESSAGE,
                                    HTTPStatus.INTERNAL_SERVER_ERROR,
                                )
                            )

                        # ─────────────────────────────────────────────────
                        # CONNECTION HEADERS + SEND
                        # ─────────────────────────────────────────────────
                        keep_alive = (
                            request.is_keep_alive
                            and self.config.keep_alive
                            and self._running.is_set()
                        )
                        if keep_alive:
                            response.headers.setdefault("Connection", "keep-alive")
                            response.headers.setdefault(
                                "Keep-Alive",
                                f"timeout={int(self.config.keep_alive_timeout)}"
                            )
                        else:
                            response.headers["Connection"] = "close"

                        if not conn.send_response(response.to_bytes(self.config.server_name)):
                            break

                        if not keep_alive:
                            break

                        conn.set_keep_alive()

                    except TimeoutError:
                        self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                        break

                    except RequestTooLarge as e:
                        self._send_error(conn, HTTPStatus.REQUEST_ENTITY_TOO_LARGE, str(e))
                        break

                    except Exception as e:
                        logger.exception(f"[{conn.id}] Connection error: {e}")
                        break
        finally:
            with self._connections_lock:
                self._connections.discard(conn)

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        """
        Error response for failures outside the pipeline (parse errors,
        timeouts, overload). Same envelope and CORS headers as handler errors.
        """
        response = self.policy.set_cors_headers(self.policy.error_response(message, status))
        response.headers["Connection"] = "close"
        conn.send_response(response.to_bytes(self.config.server_name))


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Lifecycle: start()/stop() from any thread, serialized by one lock,
#    bind result reported through a readiness event.
# 2. Request flow: accept → queue → parse → Logging → CORS → Router → handler.
# 3. Every response, including transport errors, carries the CORS headers.
# 4. Route table, policy and metrics are built once and survive restarts.
# =============================================================================
