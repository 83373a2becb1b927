"""
=============================================================================
RESP (REdis Serialization Protocol) CODEC
=============================================================================

RESP is a text-based, self-delimiting protocol: every frame starts with a
one-byte type marker and either ends at CRLF or declares its own length.

=============================================================================
FRAME TYPES
=============================================================================

    ┌────────┬─────────────────┬──────────────────────────────────────────┐
    │ Marker │ Type            │ Example                                  │
    ├────────┼─────────────────┼──────────────────────────────────────────┤
    │   +    │ Simple string   │ +OK\\r\\n                                  │
    │   -    │ Error           │ -ERR unknown command 'FOO'\\r\\n           │
    │   :    │ Integer         │ :1000\\r\\n                                │
    │   $    │ Bulk string     │ $6\\r\\nfoobar\\r\\n    null: $-1\\r\\n         │
    │   *    │ Array           │ *2\\r\\n$3\\r\\nGET\\r\\n$3\\r\\nfoo\\r\\n           │
    └────────┴─────────────────┴──────────────────────────────────────────┘

Clients send commands as an array of bulk strings:

    GET foo  →  *2\\r\\n  $3\\r\\n GET\\r\\n  $3\\r\\n foo\\r\\n
                └─┬─┘  └─┬─┘ └─┬─┘   └─┬─┘ └─┬─┘
                 2      len   data     len  data
               elements  3             3

=============================================================================
WHY LENGTH PREFIXES?
=============================================================================

Bulk strings declare their byte length up front, so the reader never scans
the payload for a delimiter. Values may contain \\r\\n, NUL bytes or
arbitrary binary data: they are "binary safe".

=============================================================================
INLINE COMMANDS
=============================================================================

If the first byte is not '*' or '$', the line is treated as an inline
command, so `telnet localhost 6379` followed by "PING" just works:

    PING\\r\\n           → ["PING"]
    SET foo bar\\r\\n    → ["SET", "foo", "bar"]

=============================================================================
INTERVIEW QUESTIONS ABOUT RESP
=============================================================================

Q: "What happens when a client claims a 5-byte bulk string, sends 2 bytes
   and disconnects?"
A: "The decoder raises ProtocolError (unexpected end of stream). The
   connection is closed; the server keeps serving everyone else."

Q: "How do you stop a client from making you allocate 10 GB with one
   header line?"
A: "Declared lengths are capped (max_bulk_length, max_multibulk_length),
   and bodies are read in fixed-size chunks, so memory only grows with
   bytes that actually arrive."

=============================================================================
"""

import re
from typing import BinaryIO, Iterable, List, Optional

from .codec import (
    CRLF,
    DEFAULT_MAX_BULK_LENGTH,
    DEFAULT_MAX_INLINE_LENGTH,
    DEFAULT_MAX_MULTIBULK_LENGTH,
    Codec,
    ProtocolError,
    decode_token,
    encode_token,
    read_line,
)
from .command import Command
from .frames import (
    NULL_ARRAY,
    NULL_BULK,
    Array,
    BulkString,
    Error,
    Frame,
    Integer,
    SimpleString,
)


# Bodies are pulled off the stream at most this many bytes at a time
READ_CHUNK_SIZE = 64 * 1024


# =============================================================================
# ENCODING
# =============================================================================


def _single_line(text: str) -> str:
    """Simple strings and errors cannot contain line breaks."""
    return text.replace("\r\n", " ").replace("\r", " ").replace("\n", " ")


def encode_simple_string(text: str) -> bytes:
    return b"+" + encode_token(_single_line(text)) + CRLF


def encode_error(message: str) -> bytes:
    return b"-" + encode_token(_single_line(message)) + CRLF


def encode_integer(value: int) -> bytes:
    return b":%d\r\n" % value


def encode_bulk_string(value: Optional[str]) -> bytes:
    """
    Encode a bulk string. The length prefix counts BYTES, not characters:

        encode_bulk_string("héllo") → b"$6\\r\\nh\\xc3\\xa9llo\\r\\n"
    """
    if value is None:
        return encode_null_bulk_string()
    data = encode_token(value)
    return b"$%d\r\n" % len(data) + data + CRLF


def encode_null_bulk_string() -> bytes:
    return b"$-1\r\n"


def encode_array(items: Optional[List[Frame]]) -> bytes:
    if items is None:
        return b"*-1\r\n"
    return b"*%d\r\n" % len(items) + b"".join(encode_frame(item) for item in items)


def encode_frame(frame: Frame) -> bytes:
    """Encode any reply frame."""
    if isinstance(frame, SimpleString):
        return encode_simple_string(frame.value)
    if isinstance(frame, Error):
        return encode_error(frame.message)
    if isinstance(frame, Integer):
        return encode_integer(frame.value)
    if isinstance(frame, BulkString):
        return encode_bulk_string(frame.value)
    if isinstance(frame, Array):
        return encode_array(frame.items)
    raise TypeError(f"Cannot encode {type(frame).__name__} as RESP")


def encode_command(tokens: Iterable[str]) -> bytes:
    """Encode a command the way clients send it: an array of bulk strings."""
    tokens = list(tokens)
    return b"*%d\r\n" % len(tokens) + b"".join(encode_bulk_string(t) for t in tokens)


# =============================================================================
# DECODING
# =============================================================================


class RespCodec(Codec):
    """
    RESP request decoder and reply encoder.

    =========================================================================
    DECODER STATE MACHINE
    =========================================================================

        read 1 byte
            │
            ├── EOF ─────────────► None (client hung up cleanly)
            │
            ├── '*' ─► length line ─┬─ < 0 ─► Command(null=True)
            │                       └─ N ───► N × ( '$' bulk )
            │
            ├── '$' ─► length line ─┬─ < 0 ─► [""]
            │                       └─ N ───► N bytes + CRLF
            │
            └── other ─► rest of line ─► whitespace split

    =========================================================================
    """

    name = "resp"

    LENGTH_PATTERN = re.compile(rb"-?[0-9]+")

    def __init__(
        self,
        max_inline_length: int = DEFAULT_MAX_INLINE_LENGTH,
        max_bulk_length: int = DEFAULT_MAX_BULK_LENGTH,
        max_multibulk_length: int = DEFAULT_MAX_MULTIBULK_LENGTH,
    ):
        super().__init__(max_inline_length=max_inline_length)
        self.max_bulk_length = max_bulk_length
        self.max_multibulk_length = max_multibulk_length

    def encode(self, frame: Frame) -> bytes:
        return encode_frame(frame)

    # ─────────────────────────────────────────────────────────────────────
    # REQUESTS
    # ─────────────────────────────────────────────────────────────────────

    def read_command(self, stream: BinaryIO) -> Optional[Command]:
        marker = stream.read(1)
        if not marker:
            return None

        if marker == b"*":
            return self._read_array(stream)
        if marker == b"$":
            return Command([self._read_bulk(stream)])
        return self._read_inline(stream, marker)

    def _read_array(self, stream: BinaryIO) -> Command:
        count = self._read_length(stream, "multibulk")
        if count < 0:
            return Command.null_command()
        if count > self.max_multibulk_length:
            raise ProtocolError("invalid multibulk length")

        tokens = []
        for _ in range(count):
            marker = stream.read(1)
            if not marker:
                raise ProtocolError("unexpected end of stream")
            if marker != b"$":
                raise ProtocolError(f"expected '$', got '{marker.decode('latin-1')}'")
            tokens.append(self._read_bulk(stream))

        return Command(tokens)

    def _read_bulk(self, stream: BinaryIO) -> str:
        length = self._read_length(stream, "bulk")
        if length < 0:
            return ""  # null bulk string inside a request is an empty token
        if length > self.max_bulk_length:
            raise ProtocolError("invalid bulk length")
        return decode_token(self._read_body(stream, length))

    def _read_inline(self, stream: BinaryIO, marker: bytes) -> Command:
        if marker == b"\n":
            return Command([])  # blank line

        rest = read_line(stream, self.max_inline_length)
        if rest is None:
            raise ProtocolError("unexpected end of stream")

        return Command(decode_token(marker + rest).split())

    def _read_length(self, stream: BinaryIO, kind: str) -> int:
        """Read a "<digits>\\r\\n" header line (the marker is already consumed)."""
        line = read_line(stream, self.max_inline_length)
        if line is None:
            raise ProtocolError("unexpected end of stream")

        text = line.strip()
        if not self.LENGTH_PATTERN.fullmatch(text):
            raise ProtocolError(f"invalid {kind} length: {decode_token(text)!r}")
        return int(text)

    def _read_body(self, stream: BinaryIO, length: int) -> bytes:
        """Read exactly `length` bytes plus the mandatory CRLF."""
        body = bytearray()
        remaining = length
        while remaining:
            chunk = stream.read(min(remaining, READ_CHUNK_SIZE))
            if not chunk:
                raise ProtocolError("unexpected end of stream")
            body += chunk
            remaining -= len(chunk)

        terminator = stream.read(2)
        if terminator != CRLF:
            if len(terminator) < 2:
                raise ProtocolError("unexpected end of stream")
            raise ProtocolError("expected CRLF after bulk string")

        return bytes(body)

    # ─────────────────────────────────────────────────────────────────────
    # REPLIES (client side)
    # ─────────────────────────────────────────────────────────────────────

    def read_reply(self, stream: BinaryIO) -> Optional[Frame]:
        """
        Decode one reply frame of any type.

        Returns None on a clean EOF before the first byte.
        """
        marker = stream.read(1)
        if not marker:
            return None

        if marker in (b"+", b"-", b":"):
            line = read_line(stream, self.max_inline_length)
            if line is None:
                raise ProtocolError("unexpected end of stream")
            text = decode_token(line.rstrip(b"\r\n"))

            if marker == b"+":
                return SimpleString(text)
            if marker == b"-":
                return Error(text)
            if not self.LENGTH_PATTERN.fullmatch(text.encode("ascii", "replace")):
                raise ProtocolError(f"invalid integer: {text!r}")
            return Integer(int(text))

        if marker == b"$":
            length = self._read_length(stream, "bulk")
            if length < 0:
                return NULL_BULK
            if length > self.max_bulk_length:
                raise ProtocolError("invalid bulk length")
            return BulkString(decode_token(self._read_body(stream, length)))

        if marker == b"*":
            count = self._read_length(stream, "multibulk")
            if count < 0:
                return NULL_ARRAY
            if count > self.max_multibulk_length:
                raise ProtocolError("invalid multibulk length")
            items = []
            for _ in range(count):
                item = self.read_reply(stream)
                if item is None:
                    raise ProtocolError("unexpected end of stream")
                items.append(item)
            return Array(items)

        raise ProtocolError(f"unknown reply type '{marker.decode('latin-1')}'")
