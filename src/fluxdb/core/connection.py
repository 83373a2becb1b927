"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module wraps an accepted client socket with the API the command loop
needs: a buffered byte stream to decode from, a send method, and a close
that is safe to call from any thread.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

TCP does NOT preserve message boundaries. A client that sends

    *2\\r\\n$3\\r\\nGET\\r\\n$3\\r\\nfoo\\r\\n

may be read by the server as one chunk, or as "*2\\r\\n$3\\r" followed by
"\\nGET\\r\\n$3\\r\\nfoo\\r\\n", or byte by byte. The codec must never assume
that one recv() is one command.

Instead of hand-rolling a receive buffer, the connection exposes
socket.makefile("rb"): a BufferedReader that already knows how to
readline() across chunk boundaries and read(n) exactly n bytes. The codec
pulls from it; whatever it does not consume stays buffered for the next
command, which is what makes pipelining work:

    Client sends (one packet):  PING\\r\\nPING\\r\\nPING\\r\\n

    read_command() → PING   (two more lines still buffered)
    read_command() → PING
    read_command() → PING
    read_command() → blocks for more data

=============================================================================
CONNECTION LIFECYCLE
=============================================================================

    ┌─────┐  accept   ┌─────────┐  command  ┌─────────────┐  reply  ┌─────────┐
    │ NEW │ ────────► │ READING │ ────────► │ DISPATCHING │ ──────► │ WRITING │
    └─────┘           └─────────┘           └─────────────┘         └────┬────┘
                           ▲                                              │
                           └──────────────────────────────────────────────┘
                                         next command

    READING ──(EOF / protocol error / QUIT / shutdown)──► CLOSING ──► CLOSED

=============================================================================
"""

import logging
import socket
import threading
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Optional


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states, used for logging and shutdown."""
    NEW = "new"                  # Just accepted
    READING = "reading"          # Waiting for / decoding the next command
    DISPATCHING = "dispatching"  # Command decoded, handler executing
    WRITING = "writing"          # Sending the reply
    CLOSING = "closing"          # Shutdown sequence in progress
    CLOSED = "closed"            # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Responsibilities                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. BUFFERED READING                                                 │
    │     └── reader is a BufferedReader over the socket                  │
    │     └── pipelined commands stay buffered between reads              │
    │                                                                      │
    │  2. STATE TRACKING                                                   │
    │     └── which phase of the command loop we are in                    │
    │                                                                      │
    │  3. COMMAND COUNTING                                                 │
    │     └── how many commands this client has sent                       │
    │                                                                      │
    │  4. CLOSE FROM ANY THREAD                                            │
    │     └── server shutdown closes sockets owned by worker threads       │
    │     └── shutdown(SHUT_RDWR) wakes a thread blocked in a read         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    There are no read timeouts: an idle client keeps its connection until
    it disconnects or the server shuts down.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Unique connection identifier (for logging).
        state: Current connection state.
        commands_handled: Number of commands processed on this connection.
    """

    # Required parameters
    socket: socket.socket
    address: tuple[str, int]

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    commands_handled: int = 0

    _reader: Optional[BinaryIO] = field(default=None, repr=False)
    _close_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self):
        # The listening socket has an accept timeout; accepted sockets
        # must block indefinitely.
        self.socket.settimeout(None)
        self._reader = self.socket.makefile("rb")

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def reader(self) -> BinaryIO:
        """Buffered binary stream the codec decodes commands from."""
        return self._reader

    @property
    def is_closed(self) -> bool:
        return self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED)

    # =========================================================================
    # STATE TRANSITIONS
    # =========================================================================

    def begin_read(self):
        if self.is_closed:
            return
        self.state = ConnectionState.READING

    def begin_dispatch(self):
        self.state = ConnectionState.DISPATCHING
        self.commands_handled += 1

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> bool:
        """
        Send reply bytes to the client.

        Uses sendall() so a large reply is never partially written.

        Returns:
            True if send succeeded, False if the connection is gone.
        """
        if self.is_closed:
            return False

        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection. Idempotent and thread-safe.

        shutdown(SHUT_RDWR) comes first: it interrupts a worker thread that
        is blocked reading from this socket (the reader sees EOF), which is
        how server shutdown reaches idle clients.
        """
        with self._close_lock:
            if self.state == ConnectionState.CLOSED:
                return
            self.state = ConnectionState.CLOSING

            try:
                self.socket.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass  # Peer already gone

            try:
                self._reader.close()
            except (OSError, ValueError):
                pass

            try:
                self.socket.close()
            except OSError:
                pass

            self.state = ConnectionState.CLOSED

        logger.debug(f"[{self.id}] Connection closed after {self.commands_handled} commands")

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        """
        Allows using Connection with 'with' for automatic cleanup:

            with conn:
                command = codec.read_command(conn.reader)
                conn.send(codec.encode(reply))
            # Connection automatically closed here
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
