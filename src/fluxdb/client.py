"""
A minimal blocking RESP client.

Used by the integration tests and handy for scripting against a running
server:

    with FluxClient("127.0.0.1", 6379) as client:
        client.execute("SET", "foo", "bar")     # → "OK"
        client.execute("GET", "foo")            # → "bar"
        client.execute("GET", "missing")        # → None
        client.execute("DEL", "foo")            # → 1

Replies are converted to plain Python values: simple and bulk strings to
str, integers to int, arrays to lists, null to None. An error reply raises
ReplyError.
"""

import socket
from typing import Any, Optional

from .protocol.codec import ProtocolError
from .protocol.frames import Array, BulkString, Error, Frame, Integer, SimpleString
from .protocol.resp import RespCodec, encode_command


class ReplyError(Exception):
    """The server answered with an error reply ("-ERR ...")."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class FluxClient:
    def __init__(self, host: str = "127.0.0.1", port: int = 6379, timeout: Optional[float] = 5.0):
        self.host = host
        self.port = port
        self._socket = socket.create_connection((host, port), timeout=timeout)
        self._reader = self._socket.makefile("rb")
        self._codec = RespCodec()

    def execute(self, *args: str) -> Any:
        """
        Send one command and return its decoded reply.

        Raises:
            ReplyError: The server replied with an error.
            ConnectionError: The server closed the connection.
        """
        self.send_raw(encode_command(str(arg) for arg in args))
        return self._to_python(self.read_reply())

    def send_raw(self, data: bytes) -> None:
        """Write raw bytes, for pipelining or sending malformed input."""
        self._socket.sendall(data)

    def read_reply(self) -> Frame:
        """Read one reply frame without converting it."""
        try:
            frame = self._codec.read_reply(self._reader)
        except ProtocolError as e:
            raise ConnectionError(f"Malformed or truncated reply: {e}") from e
        if frame is None:
            raise ConnectionError("Connection closed by server")
        return frame

    def _to_python(self, frame: Frame) -> Any:
        if isinstance(frame, Error):
            raise ReplyError(frame.message)
        if isinstance(frame, (SimpleString, BulkString)):
            return frame.value
        if isinstance(frame, Integer):
            return frame.value
        if isinstance(frame, Array):
            if frame.items is None:
                return None
            return [self._to_python(item) for item in frame.items]
        raise TypeError(f"Unexpected reply frame: {frame!r}")

    def close(self) -> None:
        try:
            self._reader.close()
        finally:
            self._socket.close()

    def __enter__(self) -> "FluxClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
