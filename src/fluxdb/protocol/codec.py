"""
=============================================================================
CODEC INTERFACE
=============================================================================

A codec is the "decode next command / encode one reply" capability of a
connection. FluxDB ships two interchangeable implementations:

    ┌───────────────┬──────────────────────────────┬──────────────────────┐
    │ Codec         │ Requests                     │ Replies              │
    ├───────────────┼──────────────────────────────┼──────────────────────┤
    │ RespCodec     │ *N / $N framed, inline       │ +  -  :  $  *        │
    │               │ fallback for plain lines     │ terminated by \\r\\n   │
    ├───────────────┼──────────────────────────────┼──────────────────────┤
    │ InlineCodec   │ one whitespace-split line    │ one text line        │
    │               │ per command                  │ terminated by \\n     │
    └───────────────┴──────────────────────────────┴──────────────────────┘

The server picks ONE codec for all its connections (ServerConfig.protocol).
The codec never touches sockets; it reads from a buffered binary stream
(socket.makefile("rb") in production, io.BytesIO in tests).

=============================================================================
STREAM CONTRACT
=============================================================================

    read_command(stream) → Command   one complete command
                         → None      clean end of stream (client hung up
                                     between commands)
                         raises ProtocolError on anything malformed,
                         including a stream that ends mid-frame

After a ProtocolError the stream position is meaningless; there is no
resynchronization, so the caller must close the connection.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import BinaryIO, Optional

from .command import Command
from .frames import Frame


# Tokens are str; bytes that are not valid UTF-8 survive the round trip
# through surrogate escapes, so values stay binary-safe.
ENCODING = "utf-8"
ENCODING_ERRORS = "surrogateescape"

CRLF = b"\r\n"

DEFAULT_MAX_INLINE_LENGTH = 64 * 1024
DEFAULT_MAX_BULK_LENGTH = 512 * 1024 * 1024
DEFAULT_MAX_MULTIBULK_LENGTH = 1024 * 1024


class ProtocolError(Exception):
    """
    Raised when the incoming byte stream cannot be decoded.

    The message is short and client-safe; the connection loop sends it back
    as "-ERR Protocol error: <message>" before closing.
    """


def decode_token(data: bytes) -> str:
    return data.decode(ENCODING, ENCODING_ERRORS)


def encode_token(text: str) -> bytes:
    return text.encode(ENCODING, ENCODING_ERRORS)


def read_line(stream: BinaryIO, max_length: int) -> Optional[bytes]:
    """
    Read one LF-terminated line, including the terminator.

    Returns:
        The line, or None if the stream was already at EOF.

    Raises:
        ProtocolError: if the line is longer than max_length, or the stream
                       ends before the LF arrives.
    """
    line = stream.readline(max_length + 1)
    if not line:
        return None

    if not line.endswith(b"\n"):
        if len(line) > max_length:
            raise ProtocolError("too big inline request")
        raise ProtocolError("unexpected end of stream")

    return line


class Codec(ABC):
    """Base class for wire codecs."""

    name: str = ""

    def __init__(self, max_inline_length: int = DEFAULT_MAX_INLINE_LENGTH):
        self.max_inline_length = max_inline_length

    @abstractmethod
    def read_command(self, stream: BinaryIO) -> Optional[Command]:
        """Decode the next command from the stream (see module docstring)."""

    @abstractmethod
    def encode(self, frame: Frame) -> bytes:
        """Render one reply frame as bytes ready for sendall()."""
