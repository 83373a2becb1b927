"""
Protocol package - turning bytes into commands and replies into bytes.

    frames.py   Reply frame types (SimpleString, Error, Integer, ...)
    command.py  The decoded Command
    codec.py    Codec interface, ProtocolError, stream helpers
    resp.py     RESP codec (default)
    inline.py   Legacy newline-delimited codec
"""

from typing import Dict, Type

from .codec import Codec, ProtocolError
from .command import Command
from .frames import (
    Array,
    BulkString,
    Error,
    Frame,
    Integer,
    SimpleString,
    OK,
    PONG,
    NULL_BULK,
    NULL_ARRAY,
    bulk_array,
    frame_kind,
)
from .inline import InlineCodec
from .resp import RespCodec, encode_command, encode_frame


CODECS: Dict[str, Type[Codec]] = {
    RespCodec.name: RespCodec,
    InlineCodec.name: InlineCodec,
}


def get_codec(name: str, **limits: int) -> Codec:
    """
    Create a codec by name ("resp" or "inline").

    Keyword arguments are size limits; limits a codec does not use are
    ignored (the inline codec only has max_inline_length).
    """
    try:
        codec_class = CODECS[name]
    except KeyError:
        raise ValueError(
            f"Unknown protocol: {name!r}. Expected one of: {', '.join(sorted(CODECS))}"
        ) from None

    if codec_class is InlineCodec:
        limits = {k: v for k, v in limits.items() if k == "max_inline_length"}
    return codec_class(**limits)


__all__ = [
    "Codec",
    "ProtocolError",
    "Command",
    "Frame",
    "SimpleString",
    "Error",
    "Integer",
    "BulkString",
    "Array",
    "OK",
    "PONG",
    "NULL_BULK",
    "NULL_ARRAY",
    "bulk_array",
    "frame_kind",
    "RespCodec",
    "InlineCodec",
    "encode_command",
    "encode_frame",
    "CODECS",
    "get_codec",
]
