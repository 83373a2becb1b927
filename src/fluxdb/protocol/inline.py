"""
=============================================================================
LEGACY LINE PROTOCOL
=============================================================================

The simplest protocol that can possibly work: one command per line, one
reply per line.

    client → SET foo bar\\n
    server ← OK\\n
    client → GET foo\\n
    server ← bar\\n
    client → GET missing\\n
    server ← (nil)\\n
    client → DEL foo missing\\n
    server ← 1\\n

No type markers, no length prefixes, nothing binary-safe: a value cannot
contain whitespace, and the client has to know what kind of answer to
expect. It exists for netcat-style scripting and old clients.

Reply rendering:

    SimpleString("OK")            → OK
    Error("ERR syntax error")     → ERR syntax error
    Integer(2)                    → 2
    BulkString("bar")             → bar
    BulkString(None)              → (nil)
    Array([a, b, c])              → a b c
    Array([])                     → (empty array)

Line breaks inside a bulk value are written as a literal backslash-n so a
reply always stays on one line.

=============================================================================
"""

from typing import BinaryIO, Optional

from .codec import Codec, decode_token, encode_token, read_line
from .command import Command
from .frames import Array, BulkString, Error, Frame, Integer, SimpleString


NIL = "(nil)"
EMPTY_ARRAY = "(empty array)"


class InlineCodec(Codec):
    """Newline-delimited, whitespace-tokenized codec."""

    name = "inline"

    def read_command(self, stream: BinaryIO) -> Optional[Command]:
        line = read_line(stream, self.max_inline_length)
        if line is None:
            return None
        # str.split() with no argument also drops the trailing \r\n
        return Command(decode_token(line).split())

    def encode(self, frame: Frame) -> bytes:
        return encode_token(self.render(frame)) + b"\n"

    def render(self, frame: Frame) -> str:
        """Render a frame as a single line of text (without terminator)."""
        if isinstance(frame, SimpleString):
            return _escape(frame.value)
        if isinstance(frame, Error):
            return _escape(frame.message)
        if isinstance(frame, Integer):
            return str(frame.value)
        if isinstance(frame, BulkString):
            return NIL if frame.value is None else _escape(frame.value)
        if isinstance(frame, Array):
            if frame.items is None:
                return NIL
            if not frame.items:
                return EMPTY_ARRAY
            return " ".join(self.render(item) for item in frame.items)
        raise TypeError(f"Cannot render {type(frame).__name__} as a text line")


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\r", "\\r").replace("\n", "\\n")


__all__ = ["InlineCodec"]
