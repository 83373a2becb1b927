"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

The listening half of the server: create the socket, bind, listen, and hand
every accepted client to a callback. It knows nothing about commands.

=============================================================================
SOCKET LIFECYCLE
=============================================================================

    socket() ──► setsockopt() ──► bind() ──► listen() ──► accept() loop
                                                              │
                                        ┌─────────────────────┘
                                        ▼
                               Connection(client_socket)
                                        │
                                        ▼
                             connection_handler(conn)

=============================================================================
INTERRUPTIBLE ACCEPT
=============================================================================

accept() blocks until a client arrives. To notice shutdown() the listening
socket gets a 1 second timeout and the loop polls a flag:

    while running:
        try:
            accept()          # returns within 1 second
        except timeout:
            continue          # re-check running

=============================================================================
PORT 0
=============================================================================

Binding port 0 lets the OS choose a free port (used by the tests). The
`address` property reports the real bound address via getsockname(), and
wait_until_ready() lets another thread block until bind/listen is done.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Optional, Tuple

from .connection import Connection


logger = logging.getLogger(__name__)


ACCEPT_POLL_INTERVAL = 1.0


class SocketServer:
    """
    Low-level TCP socket server.

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(backlog=128)
        server.start("127.0.0.1", 6379, handle_connection)  # Blocks
    """

    def __init__(self, backlog: int = 128):
        self.backlog = backlog

        self._socket: Optional[socket.socket] = None
        self._bound: Tuple[str, int] = ("", 0)
        self._running = False

        self._ready_event = threading.Event()

        # Original handlers, restored on cleanup
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port), with the real port when bound to 0."""
        return self._bound

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Avoid "Address already in use" when restarting within TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    def _setup_signals(self):
        """
        Install SIGTERM/SIGINT handlers for graceful shutdown.

        Python only allows signal handlers in the main thread. When the
        server runs in a background thread (tests, embedding) the caller is
        responsible for calling shutdown().
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, host: str, port: int, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and accept connections until shutdown() is called.

        This method BLOCKS.

        Raises:
            OSError: If the address cannot be bound (port in use,
                     permission denied). Nothing is left listening.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((host, port))
        except OSError as e:
            logger.error(f"Failed to bind to {host}:{port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.backlog)
        self._bound = self._socket.getsockname()[:2]

        self._running = True
        self._setup_signals()
        self._ready_event.set()

        logger.info(f"Server listening on {self._bound[0]}:{self._bound[1]}")

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                # Normal: lets us re-check self._running
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(socket=client_socket, address=client_address[:2])
            connection_handler(conn)

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. False on timeout."""
        return self._ready_event.wait(timeout)

    def shutdown(self):
        """Stop accepting connections. Idempotent, callable from any thread."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._ready_event.clear()
        logger.info("Socket server stopped")
