"""
=============================================================================
FLUXDB SERVER
=============================================================================

The main server class that ties every component together.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                            FluxServer                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   ┌──────────────┐                                                  │
    │   │ SocketServer │  accept() loop on bind:port                      │
    │   └──────┬───────┘                                                  │
    │          │ Connection                                               │
    │          ▼                                                           │
    │   ┌──────────────────────────── one thread per connection ───────┐  │
    │   │                                                               │  │
    │   │   codec.read_command(conn.reader)       bytes → Command      │  │
    │   │          │                                                    │  │
    │   │          ▼                                                    │  │
    │   │   middleware ──► Dispatcher ──► Store   Command → Frame       │  │
    │   │          │                                                    │  │
    │   │          ▼                                                    │  │
    │   │   conn.send(codec.encode(frame))        Frame → bytes         │  │
    │   │                                                               │  │
    │   └───────────────────────────────────────────────────────────────┘  │
    │                                                                      │
    │   Shared: Store (data + config, each behind a RW lock), ServerStats │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
TWO KINDS OF ERRORS
=============================================================================

    COMMAND ERROR                           PROTOCOL ERROR
    ─────────────                           ──────────────
    unknown verb, wrong arity,              bad length, missing CRLF,
    bad option                              truncated bulk, oversized frame

    -ERR <message>                          -ERR Protocol error: <detail>
    connection stays open                   connection is CLOSED

After a protocol error the byte stream position is unknown, so there is no
safe way to find the start of the next command.

=============================================================================
"""

import logging
import threading
from typing import Callable, Dict, Optional, Tuple

from .commands import Dispatcher
from .config import ServerConfig
from .core import Connection, ServerStats, SocketServer
from .middleware import Middleware, MiddlewarePipeline
from .protocol import Command, Error, Frame, ProtocolError, get_codec
from .store import Store


logger = logging.getLogger(__name__)


class FluxServer:
    """
    A threaded RESP key-value server.

    Usage:
        server = FluxServer(ServerConfig(port=6379))
        server.use(CommandLoggingMiddleware())
        server.run()   # Blocks until SIGINT/SIGTERM or shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        # ─────────────────────────────────────────────────────────────────
        # CORE COMPONENTS
        # ─────────────────────────────────────────────────────────────────

        self._socket_server = SocketServer(backlog=self.config.backlog)
        self._codec = get_codec(self.config.protocol, **self.config.codec_limits())
        self.stats = ServerStats()

        # ─────────────────────────────────────────────────────────────────
        # APPLICATION COMPONENTS
        # ─────────────────────────────────────────────────────────────────

        self.store = Store.with_settings(self.config.runtime_settings())
        self._dispatcher = Dispatcher(self.store, stats=self.stats)
        self._middleware = MiddlewarePipeline()

        # ─────────────────────────────────────────────────────────────────
        # RUNTIME STATE
        # ─────────────────────────────────────────────────────────────────

        self._handler: Optional[Callable[[Command], Frame]] = None
        self._connections: Dict[str, Connection] = {}
        self._connections_lock = threading.Lock()
        self._running = False

    # =========================================================================
    # CONFIGURATION METHODS
    # =========================================================================

    def use(self, middleware: Middleware) -> "FluxServer":
        """Add middleware. First added runs outermost."""
        self._middleware.add(middleware)
        return self

    @property
    def dispatcher(self) -> Dispatcher:
        """The dispatcher, for registering extra commands on its table."""
        return self._dispatcher

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port when configured with port 0."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def connection_count(self) -> int:
        with self._connections_lock:
            return len(self._connections)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Start the server (blocking).

        The listening address comes from the runtime configuration store
        (`bind` and `port`), read once here. Changing them later with
        CONFIG SET does not move the listener.

        Raises:
            OSError: If the address cannot be bound.
        """
        self._setup_logging()

        self._handler = self._middleware.wrap(self._dispatcher.dispatch)

        host = self.store.get_config("bind") or self.config.host
        port = int(self.store.get_config("port") or self.config.port)

        logger.info(
            f"Starting {self.config.server_name} on {host}:{port} "
            f"(protocol={self._codec.name})"
        )

        self._running = True
        try:
            self._socket_server.start(host, port, self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is accepting connections."""
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        """Stop accepting and close every live connection. Thread-safe."""
        self._socket_server.shutdown()
        self._close_all_connections()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("fluxdb").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._close_all_connections()
        logger.info("Server stopped")

    def _close_all_connections(self):
        with self._connections_lock:
            connections = list(self._connections.values())

        for conn in connections:
            conn.close()

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Called by SocketServer for each accepted client."""
        with self._connections_lock:
            self._connections[conn.id] = conn
        self.stats.connection_opened()

        thread = threading.Thread(
            target=self._process_connection,
            args=(conn,),
            name=f"fluxdb-conn-{conn.id}",
            daemon=True,
        )
        thread.start()

    def _process_connection(self, conn: Connection):
        """
        Per-connection command loop (runs in its own thread).

        =====================================================================
        COMMAND LOOP
        =====================================================================

        1. Decode the next command from the buffered reader
        2. Skip empty and null commands
        3. Run it through middleware + dispatcher
        4. Encode and send the reply
        5. Close after QUIT, otherwise repeat

        Replies go out in the same order the commands came in.

        =====================================================================
        """
        logger.debug(f"[{conn.id}] Client connected from {conn.client_ip}:{conn.client_port}")

        try:
            with conn:
                while self._running and not conn.is_closed:
                    conn.begin_read()
                    try:
                        command = self._codec.read_command(conn.reader)
                    except ProtocolError as e:
                        logger.warning(f"[{conn.id}] Protocol error from {conn.client_ip}: {e}")
                        self.stats.protocol_error()
                        conn.send(self._codec.encode(Error(f"ERR Protocol error: {e}")))
                        break
                    except (OSError, ValueError) as e:
                        # ValueError: reader closed under us by shutdown()
                        if not conn.is_closed:
                            logger.warning(f"[{conn.id}] Read failed: {e}")
                        break

                    if command is None:
                        logger.debug(f"[{conn.id}] Client disconnected")
                        break

                    if not command:
                        continue

                    command.client_address = conn.address
                    conn.begin_dispatch()

                    reply = self._execute(conn, command)

                    if not conn.send(self._codec.encode(reply)):
                        break

                    if command.closes_connection:
                        break
        finally:
            self.stats.connection_closed()
            with self._connections_lock:
                self._connections.pop(conn.id, None)

    def _execute(self, conn: Connection, command: Command) -> Frame:
        try:
            return self._handler(command)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error in {command.name}: {e}")
            return Error("ERR internal error")


def create_app(config: Optional[ServerConfig] = None) -> FluxServer:
    """
    Create a FluxDB server application.

    Example:
        app = create_app(ServerConfig(port=7000))
        app.use(CommandLoggingMiddleware())
        app.run()
    """
    return FluxServer(config)


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# FluxServer owns one of everything and shares it across connection threads:
#
# 1. Store            data + config maps, each behind its own RW lock
# 2. Dispatcher       command table lookup, arity check, handler call
# 3. Middleware       wraps dispatcher.dispatch once, in run()
# 4. Codec            chosen by ServerConfig.protocol, stateless, shared
# 5. SocketServer     accept loop; one daemon thread per connection
#
# EXTENDING THE SERVER:
# - Register extra commands on server.dispatcher.table before run()
# - Add middleware with server.use(...)
# =============================================================================
